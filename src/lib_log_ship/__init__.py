"""Public package surface of the log shipping core.

Typical use::

    import logging
    import lib_log_ship

    lib_log_ship.init(url="https://collector.example/receiver/v1/http/TOKEN")
    logging.getLogger().addHandler(lib_log_ship.get_handler())
    ...
    lib_log_ship.shutdown()
"""

from __future__ import annotations

from .adapters import FifoEvictingBuffer, ProxySettings, RetryingHttpSender, ShippingHandler, create_http_client
from .application.use_cases import BufferFlusher, FlushScheduler, concatenate
from .domain import CancellationToken, CostBoundedQueue, exponential_backoff
from .runtime import (
    RuntimeSnapshot,
    ShipperSettings,
    ShippingRuntime,
    add,
    build_runtime,
    build_settings,
    get_handler,
    init,
    inspect_runtime,
    is_initialised,
    shutdown,
    summary_info,
)

__all__ = [
    "BufferFlusher",
    "CancellationToken",
    "CostBoundedQueue",
    "FifoEvictingBuffer",
    "FlushScheduler",
    "ProxySettings",
    "RetryingHttpSender",
    "RuntimeSnapshot",
    "ShipperSettings",
    "ShippingHandler",
    "ShippingRuntime",
    "add",
    "build_runtime",
    "build_settings",
    "concatenate",
    "create_http_client",
    "exponential_backoff",
    "get_handler",
    "init",
    "inspect_runtime",
    "is_initialised",
    "shutdown",
    "summary_info",
]
