"""Concurrent queue bounded by accumulated cost instead of item count.

Purpose
-------
Hold serialized log lines between the producing threads and the flusher while
keeping the total cost (usually bytes) below a fixed ceiling.

Contents
--------
* :data:`CostFunction` - signature of the injected per-item cost function.
* :class:`CostBoundedQueue` - FIFO queue with check-and-commit cost accounting.

System Role
-----------
Lowest layer of the buffering core. :class:`lib_log_ship.adapters.fifo_buffer.FifoEvictingBuffer`
builds its eviction policy on top of this queue; the flusher thread drains it.
"""

from __future__ import annotations

import threading
from collections import deque
from collections.abc import Callable, MutableSequence
from typing import Deque, Generic, TypeVar

T = TypeVar("T")

CostFunction = Callable[[T], int]


class CostBoundedQueue(Generic[T]):
    """FIFO queue whose summed item cost never exceeds ``capacity``.

    The item store is a :class:`collections.deque`, whose ``append`` and
    ``popleft`` are atomic. The running cost is updated under a short lock so
    concurrent :meth:`offer` calls can never jointly exceed the capacity.

    Examples
    --------
    >>> queue = CostBoundedQueue(20, len)
    >>> queue.offer("a" * 10), queue.offer("b" * 10), queue.offer("c")
    (True, True, False)
    >>> queue.cost(), queue.size()
    (20, 2)
    >>> queue.poll()
    'aaaaaaaaaa'
    >>> queue.cost()
    10
    """

    def __init__(self, capacity: int, cost: CostFunction[T]) -> None:
        if capacity <= 0:
            raise ValueError("capacity must be positive")
        self._capacity = capacity
        self._cost_of = cost
        self._items: Deque[T] = deque()
        self._cost = 0
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        """Return the configured cost ceiling."""

        return self._capacity

    def cost(self) -> int:
        """Return the summed cost of all queued items (snapshot)."""

        return self._cost

    def size(self) -> int:
        """Return the number of queued items (snapshot)."""

        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def offer(self, item: T) -> bool:
        """Insert ``item`` when it fits, returning ``False`` otherwise.

        A rejected offer leaves both the contents and the tracked cost
        untouched.
        """

        item_cost = self._cost_of(item)
        if item_cost < 0:
            raise ValueError("item cost must not be negative")
        with self._lock:
            total = self._cost + item_cost
            if total > self._capacity:
                return False
            self._cost = total
            # Appended under the lock so a concurrent poll can never observe
            # the item before its cost was committed.
            self._items.append(item)
        return True

    def poll(self) -> T | None:
        """Remove and return the oldest item, or ``None`` when empty."""

        try:
            item = self._items.popleft()
        except IndexError:
            return None
        self._release(item)
        return item

    def drain_to(self, sink: MutableSequence[T], max_items: int) -> int:
        """Move up to ``max_items`` oldest items into ``sink``.

        Items offered while the drain runs stay queued for the next call.
        Returns the number of items actually moved.
        """

        drained = 0
        while drained < max_items:
            item = self.poll()
            if item is None:
                break
            sink.append(item)
            drained += 1
        return drained

    def _release(self, item: T) -> None:
        item_cost = self._cost_of(item)
        with self._lock:
            self._cost -= item_cost


__all__ = ["CostBoundedQueue", "CostFunction"]
