"""Diagnostic hook shared by every component of the shipping core.

Hosts pass a ``diagnostic(name, payload)`` callable to observe drops,
evictions, send failures, and shutdown timeouts without scraping logs.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import Any

DiagnosticHook = Callable[[str, dict[str, Any]], None]


def emit_diagnostic(
    hook: DiagnosticHook | None,
    name: str,
    payload: dict[str, Any],
    *,
    logger: logging.Logger,
) -> None:
    """Invoke ``hook`` while guarding against callback failures."""

    if hook is None:
        return
    try:
        hook(name, payload)
    except Exception as exc:  # noqa: BLE001
        logger.error("Diagnostic hook raised while reporting %s", name, exc_info=exc)


__all__ = ["DiagnosticHook", "emit_diagnostic"]
