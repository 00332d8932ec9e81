from __future__ import annotations

import os
from collections.abc import Iterator
from pathlib import Path

import pytest
from click.testing import CliRunner

from lib_log_ship import cli as cli_module
from lib_log_ship import config as log_config
from lib_log_ship.runtime import build_settings


@pytest.fixture(autouse=True)
def _reset_dotenv_state() -> Iterator[None]:
    """Reset shared dotenv state around each test."""

    log_config._reset_dotenv_state_for_testing()
    yield
    log_config._reset_dotenv_state_for_testing()


def test_enable_dotenv_populates_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Loading the nearest .env feeds the settings builder."""

    nested = tmp_path / "nested"
    nested.mkdir()
    env_file = tmp_path / ".env"
    env_file.write_text("LOG_SHIP_URL=https://dotenv.example/collect\nLOG_SHIP_MESSAGES_PER_REQUEST=9\n")
    monkeypatch.chdir(nested)
    monkeypatch.delenv("LOG_SHIP_URL", raising=False)
    monkeypatch.delenv("LOG_SHIP_MESSAGES_PER_REQUEST", raising=False)

    loaded = log_config.enable_dotenv()

    try:
        assert loaded == env_file.resolve()
        settings = build_settings()
        assert settings.url == "https://dotenv.example/collect"
        assert settings.messages_per_request == 9
    finally:
        os.environ.pop("LOG_SHIP_URL", None)
        os.environ.pop("LOG_SHIP_MESSAGES_PER_REQUEST", None)


def test_enable_dotenv_respects_existing_environment(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    """Existing environment variables keep precedence over .env entries."""

    (tmp_path / ".env").write_text("LOG_SHIP_SOURCE_NAME=dotenv-name\n")
    monkeypatch.setenv("LOG_SHIP_SOURCE_NAME", "real-name")

    result = log_config.enable_dotenv(search_from=tmp_path)

    assert result == (tmp_path / ".env").resolve()
    assert os.environ["LOG_SHIP_SOURCE_NAME"] == "real-name"


def test_enable_dotenv_loads_only_once(tmp_path: Path) -> None:
    """The .env file is loaded once per process."""

    first = tmp_path / "first"
    second = tmp_path / "second"
    for directory in (first, second):
        directory.mkdir()
        (directory / ".env").write_text("LOG_SHIP_CLIENT_NAME=unused\n")

    try:
        assert log_config.enable_dotenv(search_from=first) == (first / ".env").resolve()
        assert log_config.enable_dotenv(search_from=second) == (first / ".env").resolve()
    finally:
        os.environ.pop("LOG_SHIP_CLIENT_NAME", None)


def test_should_use_dotenv_precedence() -> None:
    """An explicit flag wins over the environment switch."""

    assert log_config.should_use_dotenv(explicit=True, env_value="0") is True
    assert log_config.should_use_dotenv(explicit=False, env_value="1") is False
    assert log_config.should_use_dotenv(explicit=None, env_value=" On ") is True
    assert log_config.should_use_dotenv(explicit=None, env_value="nope") is False
    assert log_config.should_use_dotenv() is False


def test_cli_dotenv_toggle_precedence(monkeypatch: pytest.MonkeyPatch) -> None:
    """CLI flag wins over environment toggle when deciding whether to load .env."""

    runner = CliRunner()

    calls: list[tuple[tuple[object, ...], dict[str, object]]] = []

    def record_enable(*args: object, **kwargs: object) -> None:
        calls.append((args, kwargs))

    monkeypatch.setattr(log_config, "enable_dotenv", record_enable)
    monkeypatch.delenv(log_config.DOTENV_ENV_VAR, raising=False)

    result = runner.invoke(cli_module.cli, ["--use-dotenv", "info"])
    assert result.exit_code == 0
    assert len(calls) == 1

    calls.clear()
    env = {log_config.DOTENV_ENV_VAR: "1"}
    result = runner.invoke(cli_module.cli, ["info"], env=env)
    assert result.exit_code == 0
    assert len(calls) == 1

    calls.clear()
    result = runner.invoke(cli_module.cli, ["--no-use-dotenv", "info"], env=env)
    assert result.exit_code == 0
    assert calls == []

    result = runner.invoke(cli_module.cli, ["info"])
    assert result.exit_code == 0
    assert calls == []
