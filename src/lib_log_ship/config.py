"""Optional ``.env`` loading for the CLI and host applications.

Purpose
-------
Let operators keep ``LOG_SHIP_*`` variables in a ``.env`` file next to their
project instead of exporting them in every shell.

Contents
--------
* :data:`DOTENV_ENV_VAR` - environment toggle consulted by the CLI.
* :func:`should_use_dotenv` - resolve CLI flag versus environment toggle.
* :func:`enable_dotenv` - locate and load the nearest ``.env`` once.

System Role
-----------
Runs before :func:`lib_log_ship.runtime.build_settings` reads the environment.
Existing environment variables always keep precedence over ``.env`` entries.
"""

from __future__ import annotations

import logging
from pathlib import Path
from threading import Lock

from dotenv import find_dotenv, load_dotenv

LOGGER = logging.getLogger(__name__)

DOTENV_ENV_VAR = "LOG_SHIP_USE_DOTENV"

_TRUTHY = {"1", "true", "yes", "on"}

_DOTENV_LOCK = Lock()
_LOADED_PATH: Path | None = None
_LOADED = False


def should_use_dotenv(*, explicit: bool | None = None, env_value: str | None = None) -> bool:
    """Decide whether ``.env`` should be loaded.

    An explicit CLI flag wins; otherwise the environment toggle decides.

    >>> should_use_dotenv(explicit=False, env_value="1")
    False
    >>> should_use_dotenv(env_value="yes")
    True
    >>> should_use_dotenv()
    False
    """

    if explicit is not None:
        return explicit
    if env_value is None:
        return False
    return env_value.strip().lower() in _TRUTHY


def enable_dotenv(*, search_from: Path | None = None) -> Path | None:
    """Load the nearest ``.env`` file without overriding existing variables.

    Parameters
    ----------
    search_from:
        Directory to start the upward search from; defaults to the current
        working directory.

    Returns
    -------
    Path | None
        Resolved path of the loaded file, or ``None`` when none was found.
        Repeated calls return the first result without reloading.
    """

    global _LOADED, _LOADED_PATH
    with _DOTENV_LOCK:
        if _LOADED:
            return _LOADED_PATH
        if search_from is None:
            candidate = find_dotenv(usecwd=True)
        else:
            candidate = _find_upwards(search_from)
        path = Path(candidate).resolve() if candidate else None
        if path is not None:
            load_dotenv(path, override=False)
            LOGGER.debug("Loaded environment from %s", path)
        _LOADED = True
        _LOADED_PATH = path
        return path


def _find_upwards(start: Path) -> str:
    for directory in (start.resolve(), *start.resolve().parents):
        candidate = directory / ".env"
        if candidate.is_file():
            return str(candidate)
    return ""


def _reset_dotenv_state_for_testing() -> None:
    global _LOADED, _LOADED_PATH
    with _DOTENV_LOCK:
        _LOADED = False
        _LOADED_PATH = None


__all__ = ["DOTENV_ENV_VAR", "enable_dotenv", "should_use_dotenv"]
