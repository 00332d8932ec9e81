"""Standard-library ``logging`` front-end feeding the shipping buffer.

Purpose
-------
Let host applications route ordinary ``logging`` records into the buffer
without knowing about the flusher or the sender.

Contents
--------
* :data:`Serializer` - ``LogRecord -> str | bytes`` function type.
* :class:`ShippingHandler` - :class:`logging.Handler` calling ``add`` per record.

System Role
-----------
Runs on the producer thread: it formats the record and hands it to the
buffer, which never blocks and never raises for capacity reasons.
"""

from __future__ import annotations

import logging
from collections.abc import Callable

from lib_log_ship.application.ports.buffer import EvictingBufferPort

Serializer = Callable[[logging.LogRecord], "str | bytes"]


class ShippingHandler(logging.Handler):
    """Serialize each record and add it to the shipping buffer.

    Without an explicit ``serializer`` the handler's formatter renders the
    record and a trailing newline is appended, producing line-oriented batches.

    Examples
    --------
    >>> from lib_log_ship.adapters.fifo_buffer import FifoEvictingBuffer
    >>> buffer = FifoEvictingBuffer(1000, len)
    >>> handler = ShippingHandler(buffer)
    >>> handler.setFormatter(logging.Formatter("%(levelname)s %(message)s"))
    >>> record = logging.makeLogRecord({"msg": "hello", "levelname": "INFO", "levelno": logging.INFO})
    >>> handler.handle(record)
    True
    >>> drained = []
    >>> buffer.drain_to(drained, 10)
    1
    >>> drained
    ['INFO hello\\n']
    """

    def __init__(
        self,
        buffer: EvictingBufferPort[str | bytes],
        *,
        serializer: Serializer | None = None,
        level: int = logging.NOTSET,
    ) -> None:
        super().__init__(level=level)
        self._buffer = buffer
        self._serializer = serializer

    @property
    def buffer(self) -> EvictingBufferPort[str | bytes]:
        return self._buffer

    def serialize(self, record: logging.LogRecord) -> str | bytes:
        """Render ``record`` into the item stored in the buffer."""

        if self._serializer is not None:
            return self._serializer(record)
        return self.format(record) + "\n"

    def emit(self, record: logging.LogRecord) -> None:
        try:
            self._buffer.add(self.serialize(record))
        except Exception:  # noqa: BLE001
            self.handleError(record)


__all__ = ["Serializer", "ShippingHandler"]
