from __future__ import annotations

import gzip
import logging
import os
import threading
import time
from collections.abc import Iterator
from typing import Any

import httpx
import pytest

import lib_log_ship
import lib_log_ship.runtime as runtime_facade
from lib_log_ship.runtime import _composition, build_runtime, build_settings

URL = "https://collector.example/receiver/v1/http/token"


class Collector:
    """In-memory collector endpoint served through ``httpx.MockTransport``."""

    def __init__(self, *statuses: int) -> None:
        self.bodies: list[bytes] = []
        self.headers: list[httpx.Headers] = []
        self._statuses = list(statuses)
        self._lock = threading.Lock()

    def __call__(self, request: httpx.Request) -> httpx.Response:
        body = request.read()
        if request.headers.get("Content-Encoding") == "gzip":
            body = gzip.decompress(body)
        with self._lock:
            status = self._statuses.pop(0) if self._statuses else 200
            if 200 <= status < 300:
                self.bodies.append(body)
                self.headers.append(request.headers)
        return httpx.Response(status, request=request)

    def lines(self) -> list[str]:
        with self._lock:
            return [line for body in self.bodies for line in body.decode().splitlines()]

    def client(self) -> httpx.Client:
        return httpx.Client(transport=httpx.MockTransport(self))


@pytest.fixture(autouse=True)
def isolated_runtime(monkeypatch: pytest.MonkeyPatch) -> Iterator[None]:
    for name in list(os.environ):
        if name.startswith("LOG_SHIP_"):
            monkeypatch.delenv(name)
    yield
    if lib_log_ship.is_initialised():
        lib_log_ship.shutdown()


def fast_settings(**overrides: Any) -> lib_log_ship.ShipperSettings:
    options: dict[str, Any] = {
        "flushing_accuracy": 0.01,
        "max_flush_interval": 60.0,
        "retry_interval": 0.0,
        "max_flush_timeout": 5.0,
    }
    options.update(overrides)
    return build_settings(URL, **options)


def test_concurrent_init_installs_a_single_runtime(monkeypatch: pytest.MonkeyPatch) -> None:
    """Two threads racing through init build one runtime and the other is rejected."""

    collector = Collector()
    barrier = threading.Barrier(2)
    built: list[lib_log_ship.ShippingRuntime] = []
    errors: list[BaseException] = []
    real_build_runtime = runtime_facade.build_runtime

    def slow_build_runtime(*args: Any, **kwargs: Any) -> lib_log_ship.ShippingRuntime:
        time.sleep(0.1)
        runtime = real_build_runtime(*args, **kwargs)
        built.append(runtime)
        return runtime

    def racer() -> None:
        barrier.wait(5.0)
        try:
            lib_log_ship.init(fast_settings(), client=collector.client())
        except RuntimeError as exc:
            errors.append(exc)

    monkeypatch.setattr(runtime_facade, "build_runtime", slow_build_runtime)
    threads = [threading.Thread(target=racer) for _ in range(2)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join(10.0)

    assert len(built) == 1
    assert len(errors) == 1
    assert "already initialised" in str(errors[0])
    assert lib_log_ship.is_initialised() is True


def test_api_requires_init() -> None:
    """The module API raises until init is called."""

    with pytest.raises(RuntimeError, match="init\\(\\) must be called"):
        lib_log_ship.add("early\n")
    with pytest.raises(RuntimeError):
        lib_log_ship.shutdown()


def test_init_add_shutdown_delivers_everything() -> None:
    """Lines added between init and shutdown are all delivered."""

    collector = Collector()
    lib_log_ship.init(fast_settings(source_name="svc"), client=collector.client())

    for index in range(10):
        assert lib_log_ship.add(f"line-{index}\n") is True

    assert lib_log_ship.shutdown() is True
    assert lib_log_ship.is_initialised() is False
    assert collector.lines() == [f"line-{index}" for index in range(10)]
    assert collector.headers[0]["X-Sumo-Name"] == "svc"


def test_init_twice_is_rejected() -> None:
    """A second init without shutdown is rejected."""

    collector = Collector()
    lib_log_ship.init(fast_settings(), client=collector.client())

    with pytest.raises(RuntimeError, match="already initialised"):
        lib_log_ship.init(fast_settings(), client=collector.client())


def test_init_rejects_settings_and_overrides_together() -> None:
    """Settings and keyword overrides cannot be combined."""

    with pytest.raises(ValueError, match="either settings or keyword overrides"):
        lib_log_ship.init(fast_settings(), messages_per_request=3)
    assert lib_log_ship.is_initialised() is False


def test_init_builds_settings_from_keywords() -> None:
    """Keyword arguments to init become settings."""

    collector = Collector()
    runtime = lib_log_ship.init(url=URL, client=collector.client(), flushing_accuracy=0.01, compress=False)

    assert runtime.settings.compress is False
    lib_log_ship.add("kw\n")
    lib_log_ship.shutdown()

    assert collector.lines() == ["kw"]
    assert "Content-Encoding" not in collector.headers[0]


def test_handler_ships_logging_records() -> None:
    """Records logged through get_handler reach the collector."""

    collector = Collector()
    lib_log_ship.init(fast_settings(), client=collector.client())
    logger = logging.getLogger("tests.shipping.runtime")
    logger.propagate = False
    logger.setLevel(logging.INFO)
    handler = lib_log_ship.get_handler(formatter=logging.Formatter("%(levelname)s %(message)s"))
    logger.addHandler(handler)
    try:
        logger.info("shipped via logging")
        logger.debug("filtered")
    finally:
        logger.removeHandler(handler)

    lib_log_ship.shutdown()

    assert collector.lines() == ["INFO shipped via logging"]


def test_retryable_failures_are_retried_before_shutdown_completes() -> None:
    """Retryable statuses are retried until delivery during shutdown."""

    collector = Collector(503, 500)
    events: list[str] = []
    lib_log_ship.init(fast_settings(), client=collector.client(), diagnostic=lambda name, payload: events.append(name))

    lib_log_ship.add("eventually\n")

    assert lib_log_ship.shutdown() is True
    assert collector.lines() == ["eventually"]
    assert events.count("send_retry") == 2


def test_inspect_runtime_reports_buffer_state() -> None:
    """inspect_runtime reports buffer contents and counters."""

    collector = Collector()
    lib_log_ship.init(
        fast_settings(max_queue_size_bytes=10, flushing_accuracy=30.0),
        client=collector.client(),
    )
    lib_log_ship.add("aaaaa")
    lib_log_ship.add("bbbbb")
    lib_log_ship.add("ccccc")
    lib_log_ship.add("x" * 11)

    snapshot = lib_log_ship.inspect_runtime()

    assert snapshot.url == URL
    assert snapshot.buffered_items == 2
    assert snapshot.buffered_cost == 10
    assert snapshot.capacity == 10
    assert snapshot.evicted == 1
    assert snapshot.dropped == 1
    assert snapshot.running is True
    lib_log_ship.shutdown()
    assert collector.lines() == ["bbbbbccccc"]


def test_runtime_owns_client_it_creates(monkeypatch: pytest.MonkeyPatch) -> None:
    """A client created by the runtime is closed on stop."""

    collector = Collector()
    created: list[httpx.Client] = []

    def fake_create_http_client(**kwargs: Any) -> httpx.Client:
        client = collector.client()
        created.append(client)
        return client

    monkeypatch.setattr(_composition, "create_http_client", fake_create_http_client)
    runtime = build_runtime(fast_settings())
    runtime.start()
    runtime.add("owned\n")

    assert runtime.stop() is True
    assert created[0].is_closed is True
    assert runtime.sender.is_initialized is False
    assert collector.lines() == ["owned"]


def test_injected_client_stays_open() -> None:
    """An injected client stays open after stop."""

    collector = Collector()
    client = collector.client()
    runtime = build_runtime(fast_settings(), client=client)
    runtime.start()

    assert runtime.stop() is True
    assert client.is_closed is False
    client.close()


def test_summary_info_lists_metadata() -> None:
    """summary_info lists the package metadata."""

    info = lib_log_ship.summary_info()

    assert info.startswith("Info for lib_log_ship:")
    assert "version" in info
    assert "shell_command" in info
