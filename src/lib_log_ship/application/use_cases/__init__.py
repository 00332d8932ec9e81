"""Use cases orchestrating buffering, aggregation, and delivery."""

from __future__ import annotations

from .aggregate import concatenate
from .flush import BufferFlusher, FlushScheduler

__all__ = ["BufferFlusher", "FlushScheduler", "concatenate"]
