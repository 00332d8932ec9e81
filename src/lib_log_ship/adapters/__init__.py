"""Concrete adapters implementing the shipping ports."""

from __future__ import annotations

from .fifo_buffer import FifoEvictingBuffer
from .http_client import ProxySettings, create_http_client
from .http_sender import RetryingHttpSender
from .logging_handler import ShippingHandler

__all__ = [
    "FifoEvictingBuffer",
    "ProxySettings",
    "RetryingHttpSender",
    "ShippingHandler",
    "create_http_client",
]
