"""Runtime façade that wires the buffering and delivery core.

Purpose
-------
Expose a stable entry point (``init``, ``add``, ``get_handler``, ``shutdown``)
that host applications use instead of composing buffer, flusher, and sender
themselves.

Contents
--------
* ``init`` - composition root; builds and starts the runtime singleton.
* ``add`` - non-blocking ingestion of one serialized log line.
* ``get_handler`` - :class:`logging.Handler` feeding the active runtime.
* ``shutdown`` - bounded-time final flush and teardown.
* ``inspect_runtime`` - read-only snapshot of buffer and flusher state.
* ``summary_info`` - metadata banner used by the CLI.

System Role
-----------
Outer shell of the package: inner layers never import from here.
"""

from __future__ import annotations

import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any

import httpx

from lib_log_ship.adapters.logging_handler import Serializer, ShippingHandler
from lib_log_ship.application.ports.diagnostics import DiagnosticHook
from lib_log_ship.domain.cost_queue import CostFunction
from lib_log_ship.domain.costs import payload_cost

from ._composition import build_runtime
from ._settings import ShipperSettings, build_settings
from ._state import ShippingRuntime, current_runtime, install_runtime, is_initialised, release_runtime

LOGGER = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeSnapshot:
    """Immutable view over the active shipping runtime."""

    url: str
    buffered_items: int
    buffered_cost: int
    capacity: int
    evicted: int
    dropped: int
    flushes: int
    running: bool


def init(
    settings: ShipperSettings | None = None,
    *,
    client: httpx.Client | None = None,
    cost: CostFunction[str | bytes] = payload_cost,
    diagnostic: DiagnosticHook | None = None,
    clock: Callable[[], float] = time.monotonic,
    **overrides: Any,
) -> ShippingRuntime:
    """Compose the shipping runtime, start its flusher, and install it.

    Parameters
    ----------
    settings:
        Fully resolved settings. When ``None`` they are built from
        ``overrides`` plus ``LOG_SHIP_*`` environment variables.
    client:
        Optional pre-configured :class:`httpx.Client`; the runtime builds and
        owns one when omitted.
    cost:
        Cost function bounding the buffer; defaults to byte/character length.
    diagnostic:
        Callback invoked with internal events (``buffer_evicted``,
        ``buffer_dropped``, ``send_retry``, ``send_abandoned``,
        ``send_rejected``, ``flush_failed``, ``flush_shutdown_timeout``).
    **overrides:
        Keyword arguments forwarded to :func:`build_settings`.

    Raises
    ------
    RuntimeError
        When a runtime is already active.
    ValueError
        When the configuration is invalid.
    """

    if settings is not None and overrides:
        raise ValueError("Pass either settings or keyword overrides, not both")

    def compose() -> ShippingRuntime:
        resolved = settings if settings is not None else build_settings(**overrides)
        runtime = build_runtime(resolved, client=client, cost=cost, diagnostic=diagnostic, clock=clock)
        runtime.start()
        return runtime

    runtime = install_runtime(compose)
    LOGGER.debug("lib_log_ship runtime started for %s", runtime.settings.url)
    return runtime


def add(item: str | bytes) -> bool:
    """Buffer one serialized log line; ``False`` means it was dropped."""

    return current_runtime().add(item)


def get_handler(
    *,
    level: int = logging.NOTSET,
    formatter: logging.Formatter | None = None,
    serializer: Serializer | None = None,
) -> ShippingHandler:
    """Return a :class:`ShippingHandler` bound to the active runtime's buffer."""

    handler = ShippingHandler(current_runtime().buffer, serializer=serializer, level=level)
    if formatter is not None:
        handler.setFormatter(formatter)
    return handler


def shutdown() -> bool:
    """Flush pending lines, stop the flusher, and clear the runtime.

    Returns ``False`` when the flusher missed its shutdown deadline; the
    runtime is cleared either way.
    """

    return release_runtime().stop()


def inspect_runtime() -> RuntimeSnapshot:
    """Return a read-only snapshot of the current runtime state."""

    runtime = current_runtime()
    return RuntimeSnapshot(
        url=runtime.settings.url,
        buffered_items=runtime.buffer.size(),
        buffered_cost=runtime.buffer.cost(),
        capacity=runtime.buffer.capacity,
        evicted=runtime.buffer.evicted_count,
        dropped=runtime.buffer.dropped_count,
        flushes=runtime.flusher.scheduler.flush_count,
        running=runtime.flusher.is_running,
    )


def summary_info() -> str:
    """Return the metadata banner used by the CLI entry point.

    >>> "version" in summary_info()
    True
    """

    from lib_log_ship import __init__conf__

    lines: list[str] = []

    def _capture(text: str) -> None:
        lines.append(text)

    __init__conf__.print_info(writer=_capture)
    return "".join(lines)


__all__ = [
    "RuntimeSnapshot",
    "ShipperSettings",
    "ShippingRuntime",
    "add",
    "build_runtime",
    "build_settings",
    "get_handler",
    "init",
    "inspect_runtime",
    "is_initialised",
    "shutdown",
    "summary_info",
]
