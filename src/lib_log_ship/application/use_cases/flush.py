"""Background flushing of the buffer into the sender.

Purpose
-------
Decide *when* buffered log lines leave the process and hand each drained batch
to the sender, on a dedicated thread, without ever blocking producers.

Contents
--------
* :class:`FlushScheduler` - the flush loop, parameterised by an
  ``aggregate(items)`` function and a blocking ``send(payload, cancel)``
  function.
* :class:`BufferFlusher` - owns the scheduler thread and bounds shutdown time.

System Role
-----------
Sits between :class:`lib_log_ship.application.ports.EvictingBufferPort` and
:class:`lib_log_ship.application.ports.SenderPort`. The wake cadence
(``flush_period``) is independent of the flush triggers
(``max_flush_interval`` and ``items_per_batch``) so the accuracy of noticing a
breached threshold can be tuned separately from the thresholds themselves.
"""

from __future__ import annotations

import logging
import threading
import time
from collections.abc import Callable
from typing import Generic, TypeVar

from lib_log_ship.application.ports.buffer import EvictingBufferPort
from lib_log_ship.application.ports.diagnostics import DiagnosticHook, emit_diagnostic
from lib_log_ship.domain.cancellation import CancellationToken

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")
P = TypeVar("P")

Aggregate = Callable[[list[T]], P]
SendBlocking = Callable[[P, CancellationToken], object]


class FlushScheduler(Generic[T, P]):
    """Periodically drain ``buffer`` and push aggregated batches to ``send``.

    Parameters
    ----------
    buffer:
        Shared buffer written by producer threads.
    aggregate:
        Turns the drained items into one outbound payload.
    send:
        Delivers one payload, blocking until done; receives the scheduler's
        send cancellation token.
    flush_period:
        Seconds between two wake-ups of the loop.
    max_flush_interval:
        Maximum number of seconds an item may sit in the buffer.
    items_per_batch:
        Buffer size that forces a flush on the next wake-up.
    flush_all_before_stopping:
        When ``True`` the final flush keeps draining, in batches of
        ``items_per_batch``, until the buffer is observed empty.
    clock:
        Monotonic time source in seconds.
    """

    def __init__(
        self,
        buffer: EvictingBufferPort[T],
        aggregate: Aggregate[T, P],
        send: SendBlocking[P],
        *,
        flush_period: float,
        max_flush_interval: float,
        items_per_batch: int,
        flush_all_before_stopping: bool = False,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | None = None,
        diagnostic: DiagnosticHook | None = None,
    ) -> None:
        if flush_period <= 0:
            raise ValueError("flush_period must be positive")
        if max_flush_interval < 0:
            raise ValueError("max_flush_interval must not be negative")
        if items_per_batch < 1:
            raise ValueError("items_per_batch must be at least 1")
        self._buffer = buffer
        self._aggregate = aggregate
        self._send = send
        self._flush_period = flush_period
        self._max_flush_interval = max_flush_interval
        self._items_per_batch = items_per_batch
        self._flush_all_before_stopping = flush_all_before_stopping
        self._clock = clock
        self._logger = logger or LOGGER
        self._diagnostic = diagnostic
        self._terminating = False
        self._wake = CancellationToken()
        self._send_cancel = CancellationToken()
        self._time_of_last_flush = clock()
        self.flush_count = 0

    @property
    def flush_period(self) -> float:
        return self._flush_period

    @property
    def terminating(self) -> bool:
        return self._terminating

    @property
    def send_cancellation(self) -> CancellationToken:
        """Token handed to every ``send`` call; cancelled on forced shutdown."""

        return self._send_cancel

    def needs_flushing(self) -> bool:
        """Return ``True`` when the time or size trigger is satisfied."""

        next_flush = self._time_of_last_flush + self._max_flush_interval
        return self._clock() >= next_flush or self._buffer.size() >= self._items_per_batch

    def request_stop(self) -> None:
        """Mark the loop as terminating and wake it up immediately."""

        self._terminating = True
        self._wake.cancel()

    def cancel_sends(self) -> None:
        """Abandon any send that is currently retrying."""

        self._send_cancel.cancel()

    def run(self) -> None:
        """Thread body: wake every ``flush_period`` until a stop is requested."""

        while True:
            terminating = self._terminating
            self.run_task(terminating)
            if terminating:
                return
            # A wake caused by request_stop() just re-enters the loop early.
            self._wake.wait(self._flush_period)

    def run_task(self, terminating: bool) -> None:
        """Perform one flush check, flushing everything when ``terminating``."""

        if terminating and self._buffer.size() > 0:
            if self._flush_all_before_stopping:
                self._flush_until_empty()
            else:
                self._flush_and_send_catching_exceptions()
        elif self.needs_flushing():
            self._flush_and_send_catching_exceptions()

    def flush_and_send(self, max_items: int | None = None) -> int:
        """Drain a point-in-time snapshot, aggregate it, and send it.

        Items arriving during the drain are left for the next cycle. Returns
        the number of items handed to the sender.
        """

        size = self._buffer.size() if max_items is None else max_items
        items: list[T] = []
        self._buffer.drain_to(items, size)
        if not items:
            return 0
        self._logger.debug(
            "Flushing and sending out %d messages (%d messages left)",
            len(items),
            self._buffer.size(),
        )
        payload = self._aggregate(items)
        self._send(payload, self._send_cancel)
        self._time_of_last_flush = self._clock()
        self.flush_count += 1
        return len(items)

    def _flush_and_send_catching_exceptions(self, max_items: int | None = None) -> int:
        try:
            return self.flush_and_send(max_items)
        except Exception as exc:  # noqa: BLE001
            self._logger.warning("Exception while attempting to flush and send", exc_info=exc)
            emit_diagnostic(
                self._diagnostic,
                "flush_failed",
                {"exception": repr(exc)},
                logger=self._logger,
            )
            return 0

    def _flush_until_empty(self) -> None:
        while self._buffer.size() > 0 and not self._send_cancel.cancelled:
            if self._flush_and_send_catching_exceptions(self._items_per_batch) == 0:
                # A failed batch is gone; stop rather than spin on errors.
                break


class BufferFlusher:
    """Own the flusher thread and bound the time spent shutting it down.

    Examples
    --------
    >>> from lib_log_ship.adapters.fifo_buffer import FifoEvictingBuffer
    >>> sent = []
    >>> buffer = FifoEvictingBuffer(100, len)
    >>> scheduler = FlushScheduler(
    ...     buffer,
    ...     aggregate="".join,
    ...     send=lambda payload, cancel: sent.append(payload),
    ...     flush_period=60.0,
    ...     max_flush_interval=60.0,
    ...     items_per_batch=100,
    ... )
    >>> flusher = BufferFlusher(scheduler, max_flush_timeout=5.0)
    >>> flusher.start()
    >>> buffer.add("a\\n"), buffer.add("b\\n")
    (True, True)
    >>> flusher.stop()
    True
    >>> sent
    ['a\\nb\\n']
    """

    def __init__(
        self,
        scheduler: FlushScheduler[T, P],
        *,
        max_flush_timeout: float,
        thread_name: str = "lib-log-ship-flusher",
        logger: logging.Logger | None = None,
        diagnostic: DiagnosticHook | None = None,
    ) -> None:
        if max_flush_timeout < 0:
            raise ValueError("max_flush_timeout must not be negative")
        self._scheduler = scheduler
        self._max_flush_timeout = max_flush_timeout
        self._thread_name = thread_name
        self._logger = logger or LOGGER
        self._diagnostic = diagnostic
        self._thread: threading.Thread | None = None

    @property
    def scheduler(self) -> FlushScheduler[T, P]:
        return self._scheduler

    @property
    def is_running(self) -> bool:
        """Return ``True`` while the flusher thread is alive."""

        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        """Spawn the flusher thread unless it is already running."""

        if self.is_running:
            return
        if self._scheduler.terminating:
            raise RuntimeError("BufferFlusher cannot be restarted after stop()")
        self._thread = threading.Thread(target=self._scheduler.run, name=self._thread_name, daemon=True)
        self._thread.start()

    def stop(self) -> bool:
        """Request a final flush and wait for it within the grace period.

        Returns ``True`` when the thread exited in time. On timeout any send
        still retrying is cancelled, a warning is logged, and ``False`` is
        returned without waiting further.
        """

        thread = self._thread
        self._scheduler.request_stop()
        if thread is None:
            return True
        grace = self._max_flush_timeout + self._scheduler.flush_period
        thread.join(grace)
        if not thread.is_alive():
            self._logger.debug("Buffer flusher stopped")
            return True
        self._scheduler.cancel_sends()
        self._logger.warning("Timed out waiting for buffer flusher to finish.")
        emit_diagnostic(
            self._diagnostic,
            "flush_shutdown_timeout",
            {"timeout": grace},
            logger=self._logger,
        )
        return False


__all__ = ["Aggregate", "BufferFlusher", "FlushScheduler", "SendBlocking"]
