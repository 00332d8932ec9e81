"""Live runtime aggregate and the process-wide slot holding it."""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass
from threading import RLock

from lib_log_ship.adapters.fifo_buffer import FifoEvictingBuffer
from lib_log_ship.adapters.http_sender import RetryingHttpSender
from lib_log_ship.application.use_cases.flush import BufferFlusher

from ._settings import ShipperSettings

LOGGER = logging.getLogger(__name__)


@dataclass(slots=True)
class ShippingRuntime:
    """Aggregate of live collaborators assembled by the composition root."""

    settings: ShipperSettings
    buffer: FifoEvictingBuffer[str | bytes]
    sender: RetryingHttpSender
    flusher: BufferFlusher

    def add(self, item: str | bytes) -> bool:
        """Buffer ``item`` for delivery; never blocks and never raises on overflow."""

        return self.buffer.add(item)

    def start(self) -> None:
        self.flusher.start()

    def stop(self) -> bool:
        """Flush what is buffered, stop the flusher, and release the client.

        Returns ``False`` when the flusher missed its shutdown deadline.
        """

        stopped = self.flusher.stop()
        if stopped:
            self.sender.close()
        else:
            # The flusher thread may still be using the client.
            LOGGER.debug("Leaving HTTP client open for the lingering flusher thread")
        return stopped


_STATE: ShippingRuntime | None = None
_STATE_LOCK = RLock()

_NOT_INITIALISED = "lib_log_ship.init() must be called before using the shipping API"


def install_runtime(factory: Callable[[], ShippingRuntime]) -> ShippingRuntime:
    """Build a runtime with ``factory`` and make it the active one.

    The check and the install happen under one lock, so of two concurrent
    callers exactly one builds a runtime and the other gets ``RuntimeError``.
    """

    global _STATE
    with _STATE_LOCK:
        if _STATE is not None:
            raise RuntimeError("lib_log_ship is already initialised; call shutdown() first")
        _STATE = factory()
        return _STATE


def release_runtime() -> ShippingRuntime:
    """Detach and return the active runtime; the caller stops it."""

    global _STATE
    with _STATE_LOCK:
        if _STATE is None:
            raise RuntimeError(_NOT_INITIALISED)
        runtime, _STATE = _STATE, None
        return runtime


def current_runtime() -> ShippingRuntime:
    """Return the active runtime or raise when uninitialised."""

    runtime = _STATE
    if runtime is None:
        raise RuntimeError(_NOT_INITIALISED)
    return runtime


def is_initialised() -> bool:
    return _STATE is not None


__all__ = [
    "ShippingRuntime",
    "current_runtime",
    "install_runtime",
    "is_initialised",
    "release_runtime",
]
