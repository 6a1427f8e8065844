"""Writers persisting formatted entries to files or standard output.

Purpose
-------
Append one newline-terminated record per entry to the configured sink and fall
back to standard output when the configured file cannot be opened.

Contents
--------
* :class:`StreamWriter` - :class:`WriterPort` over any text stream.
* :func:`open_writer` - builds the writer for an output setting.
"""

from __future__ import annotations

import logging
import sys
import threading
from pathlib import Path
from typing import IO

from logzd.application.ports.output import FormatterPort, WriterPort
from logzd.domain.config import STDOUT, OutputFormat
from logzd.domain.entry import LogEntry

from .console.rich_console import RichConsoleWriter
from .formatting import TextFormatter, TextOptions, create_formatter

logger = logging.getLogger(__name__)


class StreamWriter(WriterPort):
    """Format entries and append them to ``stream``.

    When ``stream`` is ``None`` the writer resolves :data:`sys.stdout` on every
    write so redirected or captured stdout keeps working.
    """

    def __init__(self, formatter: FormatterPort, stream: IO[str] | None = None, *, owns_stream: bool = False) -> None:
        self._formatter = formatter
        self._stream = stream
        self._owns_stream = owns_stream
        self._lock = threading.Lock()

    @property
    def formatter(self) -> FormatterPort:
        return self._formatter

    @property
    def path(self) -> Path | None:
        name = getattr(self._stream, "name", None)
        return Path(name) if self._owns_stream and isinstance(name, str) else None

    def write(self, entry: LogEntry) -> None:
        record = self._formatter.format(entry)
        stream = self._stream if self._stream is not None else sys.stdout
        with self._lock:
            stream.write(record + "\n")
            stream.flush()

    def close(self) -> None:
        if self._owns_stream and self._stream is not None:
            with self._lock:
                self._stream.close()


def open_writer(
    output: str,
    output_format: OutputFormat = OutputFormat.TEXT,
    *,
    options: TextOptions | None = None,
) -> WriterPort:
    """Return the writer for ``output`` (a file path or ``"stdout"``).

    Text written to stdout goes through :class:`RichConsoleWriter`; JSON and
    files use :class:`StreamWriter`. A file that cannot be opened is reported
    and replaced by stdout.
    """

    formatter = create_formatter(output_format, options=options)
    if output == STDOUT:
        return _stdout_writer(formatter)
    path = Path(output).expanduser()
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        handle = path.open("a", encoding="utf-8")
    except OSError as exc:
        logger.warning("Cannot open log output %s (%s); falling back to stdout", path, exc)
        return _stdout_writer(formatter)
    if isinstance(formatter, TextFormatter):
        # Files never carry ANSI sequences.
        formatter = TextFormatter(TextOptions(colorize=False, icons=formatter.options.icons, timestamps=formatter.options.timestamps))
    return StreamWriter(formatter, handle, owns_stream=True)


def _stdout_writer(formatter: FormatterPort) -> WriterPort:
    if isinstance(formatter, TextFormatter):
        return RichConsoleWriter(formatter)
    return StreamWriter(formatter)


__all__ = ["StreamWriter", "open_writer"]
