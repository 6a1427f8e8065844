"""Log level abstraction with severities, icons and stdlib conversions.

Purpose
-------
Offer the five daemon severities (DEBUG, INFO, WARN, ERROR, FATAL) with the
numeric ordering used by threshold filtering and notifier level filters.

Contents
--------
* :class:`LogLevel` enum with conversion helpers and presentation metadata.
* ``_ICON_TABLE`` and ``_ALIASES`` lookup constants.

System Role
-----------
Used by the application layer to enforce consistent severity handling and by
the formatters to present level labels and icons.
"""

from __future__ import annotations

import logging
from enum import Enum


class LogLevel(Enum):
    """Enumerated logging levels; the value is the entry severity."""

    DEBUG = 1
    INFO = 2
    WARN = 3
    ERROR = 4
    FATAL = 5

    @property
    def severity(self) -> int:
        """Return the numeric severity stored on every entry."""

        return self.value

    @property
    def icon(self) -> str:
        """Return the unicode icon visualizing the level on text output."""

        return _ICON_TABLE[self]

    def allows(self, other: "LogLevel") -> bool:
        """Return ``True`` when ``other`` is at least as severe as ``self``.

        Examples
        --------
        >>> LogLevel.WARN.allows(LogLevel.ERROR)
        True
        >>> LogLevel.WARN.allows(LogLevel.INFO)
        False
        """

        return other.value >= self.value

    def to_python_level(self) -> int:
        """Return the :mod:`logging` constant matching this level."""

        return _PYTHON_LEVELS[self]

    @classmethod
    def from_name(cls, name: str) -> "LogLevel":
        """Resolve ``name`` case-insensitively, accepting common aliases.

        Examples
        --------
        >>> LogLevel.from_name(" warning ")
        <LogLevel.WARN: 3>
        >>> LogLevel.from_name("critical")
        <LogLevel.FATAL: 5>
        """

        normalized = name.strip().upper()
        normalized = _ALIASES.get(normalized, normalized)
        try:
            return cls[normalized]
        except KeyError as exc:
            raise ValueError(f"Unknown log level: {name!r}") from exc

    @classmethod
    def from_numeric(cls, level: int) -> "LogLevel":
        """Return the :class:`LogLevel` whose severity equals ``level``."""
        try:
            return cls(level)
        except ValueError as exc:
            raise ValueError(f"Unsupported log severity: {level}") from exc


_ICON_TABLE = {
    LogLevel.DEBUG: "🐛",
    LogLevel.INFO: "ℹ️",
    LogLevel.WARN: "⚠️",
    LogLevel.ERROR: "❌",
    LogLevel.FATAL: "💀",
}
# Glyphs prefixed by the text formatter unless LOGZ_NO_ICON is set.

_ALIASES = {
    "WARNING": "WARN",
    "ERR": "ERROR",
    "CRITICAL": "FATAL",
}

_PYTHON_LEVELS = {
    LogLevel.DEBUG: logging.DEBUG,
    LogLevel.INFO: logging.INFO,
    LogLevel.WARN: logging.WARNING,
    LogLevel.ERROR: logging.ERROR,
    LogLevel.FATAL: logging.CRITICAL,
}


__all__ = ["LogLevel"]
