"""Domain primitives used by the buffering and delivery core."""

from __future__ import annotations

from .backoff import exponential_backoff, jitter, nominal_backoff
from .cancellation import CancellationToken
from .cost_queue import CostBoundedQueue, CostFunction
from .costs import byte_cost, char_cost, payload_cost

__all__ = [
    "CancellationToken",
    "CostBoundedQueue",
    "CostFunction",
    "byte_cost",
    "char_cost",
    "exponential_backoff",
    "jitter",
    "nominal_backoff",
    "payload_cost",
]
