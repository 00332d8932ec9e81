"""Runtime composition helpers wiring domain, application, and adapters.

Purpose
-------
Translate :class:`ShipperSettings` into a live :class:`ShippingRuntime`: the
FIFO evicting buffer, the HTTP sender, and the flusher thread that connects
them.

System Role
-----------
The only place where concrete adapters meet the generic flush scheduler; the
scheduler itself just receives ``aggregate`` and ``send`` callables.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable

import httpx

from lib_log_ship.adapters.fifo_buffer import FifoEvictingBuffer
from lib_log_ship.adapters.http_client import create_http_client
from lib_log_ship.adapters.http_sender import RetryingHttpSender
from lib_log_ship.application.ports.diagnostics import DiagnosticHook
from lib_log_ship.application.use_cases.aggregate import concatenate
from lib_log_ship.application.use_cases.flush import BufferFlusher, FlushScheduler
from lib_log_ship.domain.cancellation import CancellationToken
from lib_log_ship.domain.cost_queue import CostFunction
from lib_log_ship.domain.costs import payload_cost

from ._settings import ShipperSettings
from ._state import ShippingRuntime


def build_runtime(
    settings: ShipperSettings,
    *,
    client: httpx.Client | None = None,
    cost: CostFunction[str | bytes] = payload_cost,
    diagnostic: DiagnosticHook | None = None,
    clock: Callable[[], float] = time.monotonic,
    logger: logging.Logger | None = None,
) -> ShippingRuntime:
    """Assemble buffer, sender, and flusher from ``settings``.

    When ``client`` is omitted a client is created from the timeout and proxy
    settings and closed again on :meth:`ShippingRuntime.stop`.
    """

    buffer: FifoEvictingBuffer[str | bytes] = FifoEvictingBuffer(
        settings.max_queue_size_bytes,
        cost,
        logger=logger,
        diagnostic=diagnostic,
    )
    sender = _create_sender(settings, client, diagnostic, logger)

    def send(payload: bytes, cancel: CancellationToken) -> bool:
        return sender.send(payload, cancel=cancel)

    scheduler: FlushScheduler[str | bytes, bytes] = FlushScheduler(
        buffer,
        concatenate,
        send,
        flush_period=settings.flushing_accuracy,
        max_flush_interval=settings.max_flush_interval,
        items_per_batch=settings.messages_per_request,
        flush_all_before_stopping=settings.flush_all_before_stopping,
        clock=clock,
        logger=logger,
        diagnostic=diagnostic,
    )
    flusher = BufferFlusher(
        scheduler,
        max_flush_timeout=settings.max_flush_timeout,
        logger=logger,
        diagnostic=diagnostic,
    )
    return ShippingRuntime(settings=settings, buffer=buffer, sender=sender, flusher=flusher)


def _create_sender(
    settings: ShipperSettings,
    client: httpx.Client | None,
    diagnostic: DiagnosticHook | None,
    logger: logging.Logger | None,
) -> RetryingHttpSender:
    owns_client = client is None
    if client is None:
        client = create_http_client(
            connection_timeout=settings.connection_timeout,
            socket_timeout=settings.socket_timeout,
            proxy=settings.proxy,
        )
    return RetryingHttpSender(
        settings.url,
        client,
        retry_interval=settings.retry_interval,
        retryable_status_pattern=settings.retryable_http_code_regex,
        max_retries=settings.max_retries,
        compress=settings.compress,
        source_name=settings.source_name,
        source_host=settings.source_host,
        source_category=settings.source_category,
        client_name=settings.client_name,
        owns_client=owns_client,
        logger=logger,
        diagnostic=diagnostic,
    )


__all__ = ["build_runtime"]
