"""Port describing a cost-bounded buffer with a pluggable eviction policy."""

from __future__ import annotations

from collections.abc import MutableSequence
from typing import Protocol, TypeVar, runtime_checkable

T = TypeVar("T")


@runtime_checkable
class EvictingBufferPort(Protocol[T]):
    """Bounded buffer shared between producer threads and the flusher."""

    @property
    def capacity(self) -> int:
        """Return the cost ceiling enforced by the buffer."""

    def add(self, item: T) -> bool:
        """Store ``item``, evicting older items when the policy allows it."""

    def size(self) -> int:
        """Return the current number of buffered items."""

    def drain_to(self, sink: MutableSequence[T], max_items: int) -> int:
        """Move up to ``max_items`` oldest items into ``sink``."""


__all__ = ["EvictingBufferPort"]
