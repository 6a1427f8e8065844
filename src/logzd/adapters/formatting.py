"""Formatters rendering :class:`LogEntry` objects as JSON or human-readable text.

Why
---
The file writer, the terminal writer and the desktop notifier all need the same
rendering of an entry. Building the text once as a Rich :class:`~rich.text.Text`
keeps the styled terminal output and the plain file output in sync.

Contents
--------
* :data:`_STYLE_MAP` - level-to-style mapping.
* :class:`TextOptions` - colour/icon/timestamp switches resolved from the environment.
* :func:`build_text` - styled text for one entry.
* :class:`TextFormatter` / :class:`JsonFormatter` - :class:`FormatterPort` implementations.
* :func:`create_formatter` - selects the formatter for an :class:`OutputFormat`.

System Role
-----------
Presentation helpers shared by :mod:`logzd.adapters.writer`,
:mod:`logzd.adapters.console.rich_console` and the notifiers.
"""

from __future__ import annotations

import io
import os
import sys
from dataclasses import dataclass
from typing import Any, Mapping

from rich.console import Console
from rich.text import Text

from logzd.application.ports.output import FormatterPort
from logzd.domain.config import OutputFormat
from logzd.domain.entry import LogEntry
from logzd.domain.levels import LogLevel

_STYLE_MAP: Mapping[LogLevel, str] = {
    LogLevel.DEBUG: "blue",
    LogLevel.INFO: "green",
    LogLevel.WARN: "yellow",
    LogLevel.ERROR: "red",
    LogLevel.FATAL: "magenta",
}

_DISPLAY_FLAGS = frozenset({"showContext", "showTimestamp"})
_TIMESTAMP_FORMAT = "%d-%m-%Y %H:%M:%S"


def _env_set(env: Mapping[str, str], name: str) -> bool:
    return bool(env.get(name, ""))


@dataclass(slots=True, frozen=True)
class TextOptions:
    """Presentation switches for :class:`TextFormatter`."""

    colorize: bool = True
    icons: bool = True
    timestamps: bool = False

    @classmethod
    def from_env(cls, env: Mapping[str, str] | None = None, *, platform: str | None = None) -> "TextOptions":
        """Resolve options from ``LOGZ_NO_COLOR``/``NO_COLOR``/``LOGZ_NO_ICON``/``LOGZ_TIMESTAMP``.

        Examples
        --------
        >>> TextOptions.from_env({"LOGZ_NO_COLOR": "1"}, platform="linux").colorize
        False
        >>> TextOptions.from_env({}, platform="win32").colorize
        False
        >>> TextOptions.from_env({"LOGZ_TIMESTAMP": "true"}, platform="linux").timestamps
        True
        """

        source = os.environ if env is None else env
        current_platform = sys.platform if platform is None else platform
        no_color = _env_set(source, "LOGZ_NO_COLOR") or _env_set(source, "NO_COLOR") or current_platform == "win32"
        return cls(
            colorize=not no_color,
            icons=not _env_set(source, "LOGZ_NO_ICON"),
            timestamps=source.get("LOGZ_TIMESTAMP", "").strip().lower() == "true",
        )


def _flag(metadata: Mapping[str, Any], key: str) -> bool:
    return str(metadata.get(key, "")).lower() == "true"


def _metadata_block(metadata: Mapping[str, Any]) -> str:
    lines = [f"  - {key}: {value}" for key, value in sorted(metadata.items()) if key not in _DISPLAY_FLAGS]
    if not lines:
        return ""
    return "Context:\n" + "\n".join(lines)


def build_text(entry: LogEntry, options: TextOptions) -> Text:
    """Return the styled representation of ``entry``.

    Layout: ``[timestamp] [LEVEL] icon - message`` followed by an optional
    ``Context:`` block when the level is DEBUG or metadata ``showContext`` is
    ``"true"``.

    Examples
    --------
    >>> from datetime import datetime, timezone
    >>> entry = LogEntry(datetime(2025, 9, 30, 12, 0, tzinfo=timezone.utc), LogLevel.INFO, 'ready')
    >>> build_text(entry, TextOptions(icons=False)).plain
    '[INFO] - ready'
    """

    level = entry.level or LogLevel.INFO
    style = _STYLE_MAP[level] if options.colorize else ""
    text = Text()
    if entry.timestamp is not None and (options.timestamps or _flag(entry.metadata, "showTimestamp")):
        text.append(f"[{entry.timestamp.strftime(_TIMESTAMP_FORMAT)}] ")
    text.append("[")
    text.append(level.name, style=style)
    text.append("] ")
    if options.icons:
        text.append(level.icon, style=style)
        text.append(" ")
    text.append("- ")
    if entry.context:
        text.append(f"({entry.context}) ", style="dim" if options.colorize else "")
    text.append(entry.message)
    if entry.metadata and (level is LogLevel.DEBUG or _flag(entry.metadata, "showContext")):
        block = _metadata_block(entry.metadata)
        if block:
            text.append("\n" + block)
    return text


class TextFormatter(FormatterPort):
    """Human-readable formatter with ANSI colours when enabled."""

    def __init__(self, options: TextOptions | None = None) -> None:
        self._options = options or TextOptions.from_env()

    @property
    def options(self) -> TextOptions:
        return self._options

    def render(self, entry: LogEntry) -> Text:
        return build_text(entry, self._options)

    def format(self, entry: LogEntry) -> str:
        text = self.render(entry)
        if not self._options.colorize:
            return text.plain
        buffer = io.StringIO()
        console = Console(file=buffer, force_terminal=True, color_system="standard", width=10_000, highlight=False)
        console.print(text, end="", soft_wrap=True)
        return buffer.getvalue()


class JsonFormatter(FormatterPort):
    """One JSON object per record."""

    def render(self, entry: LogEntry) -> Text:
        return Text(self.format(entry))

    def format(self, entry: LogEntry) -> str:
        return entry.to_json()


def create_formatter(output_format: OutputFormat, *, options: TextOptions | None = None) -> TextFormatter | JsonFormatter:
    """Return the formatter matching ``output_format``."""

    if output_format is OutputFormat.JSON:
        return JsonFormatter()
    return TextFormatter(options)


__all__ = ["JsonFormatter", "TextFormatter", "TextOptions", "build_text", "create_formatter"]
