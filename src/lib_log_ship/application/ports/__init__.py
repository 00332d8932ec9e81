"""Protocols implemented by the adapters of the shipping core."""

from __future__ import annotations

from .buffer import EvictingBufferPort
from .diagnostics import DiagnosticHook, emit_diagnostic
from .sender import SenderPort

__all__ = ["DiagnosticHook", "EvictingBufferPort", "SenderPort", "emit_diagnostic"]
