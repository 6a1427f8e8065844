"""Rich-powered terminal writer implementing :class:`WriterPort`.

Purpose
-------
Print text-formatted entries through Rich so colour support, terminal
detection and ``NO_COLOR`` handling follow the terminal the daemon runs in.

Contents
--------
* :class:`RichConsoleWriter` - writer constructed by :func:`logzd.adapters.writer.open_writer`.

System Role
-----------
Primary human-facing sink when the configured output is ``stdout``.
"""

from __future__ import annotations

import threading

from rich.console import Console

from logzd.application.ports.output import WriterPort
from logzd.domain.entry import LogEntry

from ..formatting import TextFormatter


class RichConsoleWriter(WriterPort):
    """Render entries with Rich, honouring the formatter's colour switch."""

    def __init__(self, formatter: TextFormatter | None = None, *, console: Console | None = None) -> None:
        self._formatter = formatter or TextFormatter()
        if console is not None:
            self._console = console
        else:
            self._console = Console(no_color=not self._formatter.options.colorize, highlight=False, soft_wrap=True)
        self._lock = threading.Lock()

    @property
    def formatter(self) -> TextFormatter:
        return self._formatter

    def write(self, entry: LogEntry) -> None:
        """Print ``entry`` on the console.

        Examples
        --------
        >>> from datetime import datetime, timezone
        >>> from io import StringIO
        >>> from logzd.adapters.formatting import TextOptions
        >>> from logzd.domain.levels import LogLevel
        >>> entry = LogEntry(datetime(2025, 9, 30, 12, 0, tzinfo=timezone.utc), LogLevel.WARN, 'disk low')
        >>> console = Console(file=StringIO(), record=True)
        >>> writer = RichConsoleWriter(TextFormatter(TextOptions(colorize=False)), console=console)
        >>> writer.write(entry)
        >>> 'disk low' in console.export_text()
        True
        """
        text = self._formatter.render(entry)
        with self._lock:
            self._console.print(text, highlight=False)

    def close(self) -> None:
        return None


__all__ = ["RichConsoleWriter"]
