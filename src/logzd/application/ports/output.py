"""Output ports describing how entries are rendered and persisted.

Purpose
-------
Define the abstractions for formatters (entry to text) and writers (text to a
sink) so the logger pipeline depends on two narrow protocols.

Contents
--------
* :class:`FormatterPort` - renders a :class:`LogEntry` as one record.
* :class:`WriterPort` - persists an entry to a file, stdout or a terminal.

System Role
-----------
Lets the composition root swap the JSON and text formatters, or the plain and
rich writers, when the configuration changes at runtime.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from logzd.domain.entry import LogEntry


@runtime_checkable
class FormatterPort(Protocol):
    """Render a log entry as a single record without the trailing newline."""

    def format(self, entry: LogEntry) -> str:
        """Return the rendered record for ``entry``."""


@runtime_checkable
class WriterPort(Protocol):
    """Persist a log entry to its sink."""

    def write(self, entry: LogEntry) -> None:
        """Write ``entry`` followed by a newline; raise on I/O failure."""

    def close(self) -> None:
        """Release the sink when it is owned by the writer."""


__all__ = ["FormatterPort", "WriterPort"]
