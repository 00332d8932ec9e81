"""Cooperative cancellation token shared by the flusher and the sender."""

from __future__ import annotations

import threading


class CancellationToken:
    """One-shot cancellation signal checked at every suspension point.

    Examples
    --------
    >>> token = CancellationToken()
    >>> token.cancelled
    False
    >>> token.wait(0)
    False
    >>> token.cancel()
    >>> token.wait(10)
    True
    """

    def __init__(self) -> None:
        self._event = threading.Event()

    @property
    def cancelled(self) -> bool:
        """Return ``True`` once :meth:`cancel` has been called."""

        return self._event.is_set()

    @property
    def event(self) -> threading.Event:
        """Expose the underlying event for retry stop conditions."""

        return self._event

    def cancel(self) -> None:
        """Signal cancellation and wake every pending :meth:`wait`."""

        self._event.set()

    def wait(self, seconds: float | None) -> bool:
        """Sleep up to ``seconds``; return ``True`` when woken by cancellation."""

        if seconds is not None and seconds <= 0:
            return self._event.is_set()
        return self._event.wait(seconds)


__all__ = ["CancellationToken"]
