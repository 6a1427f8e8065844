"""Environment bootstrap helpers shared by the CLI and library callers.

Purpose
-------
Load an optional ``.env`` file before the configuration file is resolved, so
``LOGZ_*`` variables can live next to a project instead of in the shell.

Contents
--------
* :data:`DOTENV_ENV_VAR` - environment toggle consulted by the CLI.
* :func:`should_use_dotenv` - resolve the CLI flag against the toggle.
* :func:`enable_dotenv` - locate and load the nearest ``.env`` once.
"""

from __future__ import annotations

import logging
from pathlib import Path

from dotenv import find_dotenv, load_dotenv

logger = logging.getLogger(__name__)

DOTENV_ENV_VAR = "LOGZ_USE_DOTENV"

_TRUTHY = {"1", "true", "yes", "on"}
_LOADED_PATH: Path | None = None


def should_use_dotenv(explicit: bool | None, env_value: str | None) -> bool:
    """Return whether ``.env`` should be loaded; an explicit flag wins.

    Examples
    --------
    >>> should_use_dotenv(None, "yes")
    True
    >>> should_use_dotenv(False, "1")
    False
    >>> should_use_dotenv(None, None)
    False
    """

    if explicit is not None:
        return explicit
    return (env_value or "").strip().lower() in _TRUTHY


def enable_dotenv(search_from: Path | None = None) -> Path | None:
    """Load the nearest ``.env`` walking up from ``search_from`` (default: cwd).

    Variables already present in the environment keep their values. Returns
    the loaded file, or ``None`` when no file was found.
    """

    global _LOADED_PATH
    if search_from is not None:
        candidate = _search_upwards(Path(search_from))
    else:
        found = find_dotenv(usecwd=True)
        candidate = Path(found) if found else None
    if candidate is None:
        logger.debug("No .env file found")
        return None
    resolved = candidate.resolve()
    load_dotenv(resolved, override=False)
    _LOADED_PATH = resolved
    logger.debug("Loaded environment from %s", resolved)
    return resolved


def _search_upwards(start: Path) -> Path | None:
    directory = start if start.is_dir() else start.parent
    for folder in (directory, *directory.parents):
        candidate = folder / ".env"
        if candidate.is_file():
            return candidate
    return None


def loaded_dotenv_path() -> Path | None:
    return _LOADED_PATH


def _reset_dotenv_state_for_testing() -> None:
    global _LOADED_PATH
    _LOADED_PATH = None


__all__ = ["DOTENV_ENV_VAR", "enable_dotenv", "loaded_dotenv_path", "should_use_dotenv"]
