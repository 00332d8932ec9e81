"""Runtime settings and environment overrides.

Purpose
-------
Collect every tunable of the shipping core in one immutable value and resolve
``LOG_SHIP_*`` environment variables on top of caller-supplied arguments.

Contents
--------
* :class:`ShipperSettings` - validated, frozen configuration.
* :func:`build_settings` - merge keyword arguments with environment overrides.
* Parsing helpers for booleans, integers, and millisecond durations.

System Role
-----------
Input to :func:`lib_log_ship.runtime._composition.build_runtime`. Durations are
stored in seconds; environment variables carry milliseconds like the
configuration attributes of the collector appenders they mirror.
"""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, fields
from typing import Any

from lib_log_ship.adapters.http_client import ProxySettings
from lib_log_ship.adapters.http_sender import DEFAULT_CLIENT_NAME, DEFAULT_RETRYABLE_STATUS_PATTERN

ENV_PREFIX = "LOG_SHIP_"

_TRUTHY = {"1", "true", "yes", "on"}
_FALSY = {"0", "false", "no", "off"}


@dataclass(slots=True, frozen=True)
class ShipperSettings:
    """Configuration of buffer, flusher, and sender.

    All durations are in seconds.
    """

    url: str
    max_queue_size_bytes: int = 1_000_000
    flushing_accuracy: float = 0.25
    max_flush_interval: float = 10.0
    messages_per_request: int = 100
    retry_interval: float = 10.0
    max_retries: int = -1
    connection_timeout: float = 1.0
    socket_timeout: float = 60.0
    max_flush_timeout: float = 10.0
    flush_all_before_stopping: bool = False
    retryable_http_code_regex: str | None = DEFAULT_RETRYABLE_STATUS_PATTERN
    compress: bool = True
    source_name: str | None = None
    source_host: str | None = None
    source_category: str | None = None
    client_name: str | None = DEFAULT_CLIENT_NAME
    proxy: ProxySettings | None = None

    def __post_init__(self) -> None:
        if not self.url or not self.url.lower().startswith(("http://", "https://")):
            raise ValueError("url must be an http:// or https:// URL")
        for name in ("max_queue_size_bytes", "messages_per_request"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("flushing_accuracy", "socket_timeout", "connection_timeout"):
            if getattr(self, name) <= 0:
                raise ValueError(f"{name} must be positive")
        for name in ("max_flush_interval", "retry_interval", "max_flush_timeout"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must not be negative")
        if self.max_retries < -1:
            raise ValueError("max_retries must be -1 (unlimited) or a non-negative integer")
        if self.retryable_http_code_regex:
            try:
                re.compile(self.retryable_http_code_regex)
            except re.error as exc:
                raise ValueError(f"retryable_http_code_regex is not a valid pattern: {exc}") from exc


_MILLISECOND_FIELDS = (
    "flushing_accuracy",
    "max_flush_interval",
    "retry_interval",
    "connection_timeout",
    "socket_timeout",
    "max_flush_timeout",
)
_INT_FIELDS = ("max_queue_size_bytes", "messages_per_request", "max_retries")
_BOOL_FIELDS = ("flush_all_before_stopping", "compress")
_STR_FIELDS = (
    "url",
    "retryable_http_code_regex",
    "source_name",
    "source_host",
    "source_category",
    "client_name",
)
_NULLABLE_FIELDS = frozenset(
    {"retryable_http_code_regex", "source_name", "source_host", "source_category", "client_name", "proxy"}
)


def build_settings(url: str | None = None, **overrides: Any) -> ShipperSettings:
    """Return settings from keyword arguments with ``LOG_SHIP_*`` overrides.

    Environment variables take precedence over arguments. Duration variables
    end in ``_MS`` and hold milliseconds.

    Raises
    ------
    ValueError
        When a value cannot be parsed, fails validation, or ``url`` is missing.

    Examples
    --------
    >>> import os
    >>> _ = os.environ.pop("LOG_SHIP_URL", None)
    >>> os.environ["LOG_SHIP_RETRY_INTERVAL_MS"] = "250"
    >>> build_settings("https://collector.example/receiver").retry_interval
    0.25
    >>> del os.environ["LOG_SHIP_RETRY_INTERVAL_MS"]
    """

    known = {item.name for item in fields(ShipperSettings)}
    unknown = set(overrides) - known
    if unknown:
        raise ValueError(f"Unknown settings: {', '.join(sorted(unknown))}")

    values: dict[str, Any] = dict(overrides)
    if url is not None:
        values["url"] = url

    for name in _STR_FIELDS:
        raw = os.getenv(_env_name(name))
        if raw is not None and raw.strip():
            values[name] = raw.strip()
    parsed: dict[str, Any] = {}
    for name in _INT_FIELDS:
        parsed[name] = _env_int(_env_name(name), None)
    for name in _MILLISECOND_FIELDS:
        parsed[name] = _env_millis(_env_name(name) + "_MS", None)
    for name in _BOOL_FIELDS:
        parsed[name] = _env_bool(_env_name(name), None)
    values.update({name: value for name, value in parsed.items() if value is not None})

    proxy = _env_proxy(values.get("proxy"))
    if proxy is not None:
        values["proxy"] = proxy

    if not values.get("url"):
        raise ValueError(f"url is required (pass it explicitly or set {ENV_PREFIX}URL)")
    # An explicit None on a nullable field disables it; elsewhere None means "use the default".
    return ShipperSettings(**{key: value for key, value in values.items() if value is not None or key in _NULLABLE_FIELDS})


def _env_name(field_name: str) -> str:
    return ENV_PREFIX + field_name.upper()


def _env_bool(name: str, default: bool | None) -> bool | None:
    """Return the boolean value of ``name`` or ``default`` when unset.

    >>> import os
    >>> os.environ["LOG_SHIP_EXAMPLE_BOOL"] = "off"
    >>> _env_bool("LOG_SHIP_EXAMPLE_BOOL", True)
    False
    >>> del os.environ["LOG_SHIP_EXAMPLE_BOOL"]
    """

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUTHY:
        return True
    if value in _FALSY:
        return False
    raise ValueError(f"{name} must be a boolean (1/0, true/false, yes/no, on/off), got {raw!r}")


def _env_int(name: str, default: int | None) -> int | None:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


def _env_millis(name: str, default: float | None) -> float | None:
    """Parse a millisecond value from ``name`` into seconds.

    >>> import os
    >>> os.environ["LOG_SHIP_EXAMPLE_MS"] = "1500"
    >>> _env_millis("LOG_SHIP_EXAMPLE_MS", None)
    1.5
    >>> del os.environ["LOG_SHIP_EXAMPLE_MS"]
    """

    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        millis = float(raw.strip())
    except ValueError as exc:
        raise ValueError(f"{name} must be a number of milliseconds, got {raw!r}") from exc
    return millis / 1000.0


def _env_proxy(fallback: ProxySettings | None) -> ProxySettings | None:
    host = os.getenv(ENV_PREFIX + "PROXY_HOST")
    if not host:
        return fallback
    port = _env_int(ENV_PREFIX + "PROXY_PORT", None)
    if port is None:
        raise ValueError(f"{ENV_PREFIX}PROXY_PORT is required when {ENV_PREFIX}PROXY_HOST is set")
    return ProxySettings(
        host=host,
        port=port,
        auth=os.getenv(ENV_PREFIX + "PROXY_AUTH") or None,
        user=os.getenv(ENV_PREFIX + "PROXY_USER") or None,
        password=os.getenv(ENV_PREFIX + "PROXY_PASSWORD") or None,
    )


__all__ = ["ENV_PREFIX", "ShipperSettings", "build_settings"]
