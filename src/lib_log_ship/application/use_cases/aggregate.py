"""Aggregation of drained log lines into one outbound payload."""

from __future__ import annotations

from collections.abc import Sequence


def concatenate(items: Sequence[str | bytes | bytearray], *, encoding: str = "utf-8") -> bytes:
    """Join ``items`` into a single byte payload, encoding text as ``encoding``.

    Items are expected to carry their own line terminators.

    >>> concatenate(["a\\n", b"b\\n"])
    b'a\\nb\\n'
    >>> concatenate([bytearray(b"c\\n")])
    b'c\\n'
    """

    return b"".join(bytes(item) if isinstance(item, (bytes, bytearray)) else item.encode(encoding) for item in items)


__all__ = ["concatenate"]
