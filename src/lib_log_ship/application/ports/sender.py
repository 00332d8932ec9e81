"""Port describing the blocking delivery of one aggregated payload."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from lib_log_ship.domain.cancellation import CancellationToken


@runtime_checkable
class SenderPort(Protocol):
    """Deliver a payload, retrying internally until done or cancelled."""

    def send(self, payload: bytes, *, cancel: CancellationToken | None = None) -> bool:
        """Block until ``payload`` is delivered, rejected, or abandoned."""

    def close(self) -> None:
        """Release transport resources owned by the sender."""


__all__ = ["SenderPort"]
