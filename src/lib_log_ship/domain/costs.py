"""Cost functions used to account buffer occupancy.

Each function is pure: it only inspects the item it is given.
"""

from __future__ import annotations


def byte_cost(item: bytes) -> int:
    """Return the exact size of a byte payload.

    >>> byte_cost(b"abc")
    3
    """

    return len(item)


def char_cost(item: str) -> int:
    """Return the character count of ``item``.

    This approximates the serialized byte size; multi-byte UTF-8 characters
    are undercounted.

    >>> char_cost("abc")
    3
    >>> char_cost("é")
    1
    """

    return len(item)


def payload_cost(item: str | bytes | bytearray) -> int:
    """Dispatch to :func:`byte_cost` or :func:`char_cost` based on type."""

    if isinstance(item, (bytes, bytearray)):
        return byte_cost(bytes(item))
    return char_cost(item)


__all__ = ["byte_cost", "char_cost", "payload_cost"]
