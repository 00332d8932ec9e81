"""HTTP sender that retries aggregated payloads with jittered backoff.

Purpose
-------
Deliver one aggregated batch per call over HTTP POST, retrying transient
failures (transport errors and retryable status codes) until the payload is
accepted or the caller cancels.

Contents
--------
* Header names shared with Sumo Logic compatible HTTP sources.
* :class:`RetryingHttpSender` - :class:`SenderPort` implementation on top of
  an injected :class:`httpx.Client`.

System Role
-----------
Called synchronously from the flusher thread, never from producers. Only one
send runs at a time, so the client needs no extra synchronisation.

Alignment Notes
---------------
A non-success, non-retryable response counts as "attempted": it is logged and
not retried, so permanently malformed requests cannot loop forever.
"""

from __future__ import annotations

import gzip
import logging
import random
import re
from typing import Any

import httpx
from tenacity import (
    RetryCallState,
    RetryError,
    Retrying,
    retry_if_exception_type,
    stop_after_attempt,
    stop_when_event_set,
)

from lib_log_ship.application.ports.diagnostics import DiagnosticHook, emit_diagnostic
from lib_log_ship.application.ports.sender import SenderPort
from lib_log_ship.domain.backoff import exponential_backoff
from lib_log_ship.domain.backoff import jitter as _jitter
from lib_log_ship.domain.backoff import nominal_backoff
from lib_log_ship.domain.cancellation import CancellationToken

LOGGER = logging.getLogger(__name__)

HEADER_NAME = "X-Sumo-Name"
HEADER_HOST = "X-Sumo-Host"
HEADER_CATEGORY = "X-Sumo-Category"
HEADER_CLIENT = "X-Sumo-Client"

DEFAULT_RETRYABLE_STATUS_PATTERN = r"^5.*"
DEFAULT_CLIENT_NAME = "lib-log-ship"

UNLIMITED_RETRIES = -1


class _RetryableResponse(Exception):
    """Raised internally when a response status warrants another attempt."""

    def __init__(self, status_code: int) -> None:
        super().__init__(f"retryable HTTP status {status_code}")
        self.status_code = status_code


class _SendCancelled(Exception):
    """Raised from the backoff sleep when the caller cancels the send."""


class RetryingHttpSender(SenderPort):
    """POST payloads to ``url`` with exponential backoff and jitter.

    Parameters
    ----------
    url:
        Collector endpoint receiving the batches.
    client:
        Ready-to-use :class:`httpx.Client`; connection pooling, timeouts and
        proxies are configured by whoever builds it.
    retry_interval:
        Base retry delay in seconds; the nominal delay doubles per attempt and
        is capped at 100 times this value.
    retryable_status_pattern:
        Regular expression matched against the decimal status code. ``503`` is
        always retryable. ``None`` keeps only ``503``.
    max_retries:
        Maximum number of retries after the first attempt; ``-1`` retries until
        cancelled.
    compress:
        Gzip the body and send ``Content-Encoding: gzip``.
    source_name, source_host, source_category:
        Optional descriptive headers attached to every request.
    client_name:
        Value of the client identification header.
    owns_client:
        When ``True`` :meth:`close` also closes ``client``.
    rng:
        Random source for jitter; defaults to the module-level generator.
    """

    def __init__(
        self,
        url: str,
        client: httpx.Client | None,
        *,
        retry_interval: float,
        retryable_status_pattern: str | None = DEFAULT_RETRYABLE_STATUS_PATTERN,
        max_retries: int = UNLIMITED_RETRIES,
        compress: bool = True,
        source_name: str | None = None,
        source_host: str | None = None,
        source_category: str | None = None,
        client_name: str | None = DEFAULT_CLIENT_NAME,
        owns_client: bool = False,
        rng: random.Random | None = None,
        logger: logging.Logger | None = None,
        diagnostic: DiagnosticHook | None = None,
    ) -> None:
        if retry_interval < 0:
            raise ValueError("retry_interval must not be negative")
        if max_retries < UNLIMITED_RETRIES:
            raise ValueError("max_retries must be -1 (unlimited) or a non-negative integer")
        self._url = url
        self._client = client
        self._retry_interval = retry_interval
        self._retryable: re.Pattern[str] | None = re.compile(retryable_status_pattern) if retryable_status_pattern else None
        self._max_retries = max_retries
        self._compress = compress
        self._headers = _build_headers(source_name, source_host, source_category, client_name, compress)
        self._owns_client = owns_client
        self._rng = rng
        self._logger = logger or LOGGER
        self._diagnostic = diagnostic

    @property
    def url(self) -> str:
        return self._url

    @property
    def headers(self) -> dict[str, str]:
        """Return a copy of the headers sent with every request."""

        return dict(self._headers)

    @property
    def is_initialized(self) -> bool:
        """Return ``True`` when an HTTP client is attached."""

        return self._client is not None

    def jitter(self, delay: float) -> float:
        return _jitter(delay, rng=self._rng)

    def exponential_backoff(self, n_try: int) -> float:
        """Return the jittered delay (seconds) before retry ``n_try``."""

        return exponential_backoff(self._retry_interval, n_try, rng=self._rng)

    def nominal_backoff(self, n_try: int) -> float:
        """Return the backoff for ``n_try`` without jitter."""

        return nominal_backoff(self._retry_interval, n_try)

    def is_retryable(self, status_code: int) -> bool:
        """Return ``True`` when ``status_code`` warrants another attempt."""

        if status_code == 503:
            return True
        return self._retryable is not None and self._retryable.match(str(status_code)) is not None

    def send(self, payload: bytes, *, cancel: CancellationToken | None = None) -> bool:
        """Deliver ``payload``, retrying transient failures.

        Returns ``True`` when the payload was accepted or rejected for good,
        ``False`` when it was abandoned because of cancellation or because the
        retry budget ran out. Transport errors never propagate.
        """

        client = self._client
        if client is None:
            self._logger.warning("HTTP sender not initialized; payload not sent")
            return False
        token = cancel or CancellationToken()
        if token.cancelled:
            return self._abandon(payload, attempts=0, cancelled=True, error=None)
        body = gzip.compress(payload) if self._compress else payload
        attempts = 0
        try:
            for attempt in self._retrying(token):
                with attempt:
                    attempts = attempt.retry_state.attempt_number
                    self._try_send(client, body)
        except RetryError as exc:
            return self._abandon(payload, attempts=attempts, cancelled=token.cancelled, error=exc.last_attempt.exception())
        except _SendCancelled:
            return self._abandon(payload, attempts=attempts, cancelled=True, error=None)
        return True

    def _retrying(self, token: CancellationToken) -> Retrying:
        """Build the retry controller for one ``send`` call.

        The backoff sleep waits on ``token`` so cancellation interrupts it.
        """

        stop = stop_when_event_set(token.event)
        if self._max_retries != UNLIMITED_RETRIES:
            stop = stop | stop_after_attempt(self._max_retries + 1)

        def sleep(seconds: float) -> None:
            if token.wait(seconds):
                raise _SendCancelled

        return Retrying(
            sleep=sleep,
            stop=stop,
            wait=lambda state: self.exponential_backoff(state.attempt_number),
            retry=retry_if_exception_type((httpx.HTTPError, _RetryableResponse)),
            before_sleep=self._log_retry,
            reraise=False,
        )

    def _log_retry(self, state: RetryCallState) -> None:
        error = state.outcome.exception() if state.outcome is not None else None
        self._logger.warning(
            "Could not send log batch to %s (attempt %d): %s",
            self._url,
            state.attempt_number,
            error,
        )
        emit_diagnostic(
            self._diagnostic,
            "send_retry",
            {"attempt": state.attempt_number, "exception": repr(error)},
            logger=self._logger,
        )

    def _abandon(self, payload: bytes, *, attempts: int, cancelled: bool, error: BaseException | None) -> bool:
        self._logger.warning("Payload not sent after %d attempt(s): %s", attempts, error or "cancelled")
        emit_diagnostic(
            self._diagnostic,
            "send_abandoned",
            {"attempts": attempts, "bytes": len(payload), "cancelled": cancelled},
            logger=self._logger,
        )
        return False

    def close(self) -> None:
        """Close the HTTP client when this sender created it."""

        if self._owns_client and self._client is not None:
            self._client.close()
        self._client = None

    def _try_send(self, client: httpx.Client, body: bytes) -> None:
        with client.stream("POST", self._url, content=body, headers=self._headers) as response:
            status = response.status_code
            if response.is_success:
                # Reading the body returns the connection to the pool.
                response.read()
                self._logger.debug("Successfully sent log batch to %s", self._url)
                return
            self._logger.warning("Received HTTP error from collector: %d", status)
            if self.is_retryable(status):
                raise _RetryableResponse(status)
            response.read()
            emit_diagnostic(
                self._diagnostic,
                "send_rejected",
                {"status_code": status},
                logger=self._logger,
            )


def _build_headers(
    source_name: str | None,
    source_host: str | None,
    source_category: str | None,
    client_name: str | None,
    compress: bool,
) -> dict[str, str]:
    headers: dict[str, Any] = {
        HEADER_NAME: source_name,
        HEADER_HOST: source_host,
        HEADER_CATEGORY: source_category,
        HEADER_CLIENT: client_name,
    }
    if compress:
        headers["Content-Encoding"] = "gzip"
    return {key: value for key, value in headers.items() if value is not None}


__all__ = [
    "DEFAULT_CLIENT_NAME",
    "DEFAULT_RETRYABLE_STATUS_PATTERN",
    "HEADER_CATEGORY",
    "HEADER_CLIENT",
    "HEADER_HOST",
    "HEADER_NAME",
    "RetryingHttpSender",
    "UNLIMITED_RETRIES",
]
