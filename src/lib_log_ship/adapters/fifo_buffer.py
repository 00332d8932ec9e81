"""Cost-bounded buffer that evicts the oldest items under pressure.

Purpose
-------
Guarantee bounded memory use for buffered log lines while never raising into
the producer thread: when a new line does not fit, older lines are sacrificed
first ("oldest data lost first").

Contents
--------
* :class:`FifoEvictingBuffer` - :class:`EvictingBufferPort` implementation
  layered on :class:`lib_log_ship.domain.cost_queue.CostBoundedQueue`.

System Role
-----------
The single shared mutable resource between producers and the flusher thread.
Alternative eviction strategies implement the same port without touching the
queue's accounting.
"""

from __future__ import annotations

import logging
import threading
from collections.abc import MutableSequence
from typing import TypeVar

from lib_log_ship.application.ports.buffer import EvictingBufferPort
from lib_log_ship.application.ports.diagnostics import DiagnosticHook, emit_diagnostic
from lib_log_ship.domain.cost_queue import CostBoundedQueue, CostFunction

LOGGER = logging.getLogger(__name__)

T = TypeVar("T")


class FifoEvictingBuffer(EvictingBufferPort[T]):
    """Evict oldest items until a new item fits; drop it if it never can.

    Examples
    --------
    >>> buffer = FifoEvictingBuffer(20, len)
    >>> [buffer.add(text) for text in ("a" * 10, "b" * 10, "c" * 10)]
    [True, True, True]
    >>> drained = []
    >>> buffer.drain_to(drained, 10)
    2
    >>> [item[0] for item in drained]
    ['b', 'c']
    >>> buffer.add("x" * 21)
    False
    """

    def __init__(
        self,
        capacity: int,
        cost: CostFunction[T],
        *,
        logger: logging.Logger | None = None,
        diagnostic: DiagnosticHook | None = None,
    ) -> None:
        self._queue: CostBoundedQueue[T] = CostBoundedQueue(capacity, cost)
        self._cost_of = cost
        self._logger = logger or LOGGER
        self._diagnostic = diagnostic
        self._counter_lock = threading.Lock()
        self._evicted = 0
        self._dropped = 0

    @property
    def evicted_count(self) -> int:
        """Return how many buffered items were evicted to make room."""

        with self._counter_lock:
            return self._evicted

    @property
    def dropped_count(self) -> int:
        """Return how many oversized items were rejected outright."""

        with self._counter_lock:
            return self._dropped

    @property
    def capacity(self) -> int:
        return self._queue.capacity

    def cost(self) -> int:
        """Return the summed cost of buffered items."""

        return self._queue.cost()

    def size(self) -> int:
        return self._queue.size()

    def __len__(self) -> int:
        return self._queue.size()

    def drain_to(self, sink: MutableSequence[T], max_items: int) -> int:
        return self._queue.drain_to(sink, max_items)

    def add(self, item: T) -> bool:
        """Insert ``item``, evicting the oldest entries until it fits.

        Returns ``False`` only when ``item`` alone exceeds the capacity; the
        item is then dropped and the buffered items stay untouched.
        """

        if self._cost_of(item) > self.capacity:
            self._on_drop(item)
            return False
        while not self._queue.offer(item):
            evicted = self._queue.poll()
            # None means a concurrent drain emptied the queue; retry the offer.
            if evicted is not None:
                self._on_evict(evicted)
        return True

    def _on_evict(self, item: T) -> None:
        with self._counter_lock:
            self._evicted += 1
            total = self._evicted
        self._logger.debug("Buffer full; evicted oldest message (%d evicted so far)", total)
        emit_diagnostic(
            self._diagnostic,
            "buffer_evicted",
            {"evicted_total": total, "capacity": self.capacity},
            logger=self._logger,
        )

    def _on_drop(self, item: T) -> None:
        with self._counter_lock:
            self._dropped += 1
            total = self._dropped
        self._logger.warning(
            "Dropping message larger than the buffer capacity (%d cost units)",
            self.capacity,
        )
        emit_diagnostic(
            self._diagnostic,
            "buffer_dropped",
            {"dropped_total": total, "capacity": self.capacity},
            logger=self._logger,
        )


__all__ = ["FifoEvictingBuffer"]
