"""Desktop-notification notifier.

Sends a short popup (summary ``logzd <LEVEL>``, body = plain-text entry) through
an injectable sender. The default sender shells out to ``notify-send``, which
talks to the session's ``org.freedesktop.Notifications`` bus service.
"""

from __future__ import annotations

import shutil
import subprocess
from typing import Callable

from logzd.domain.config import NotifierSettings
from logzd.domain.entry import LogEntry
from logzd.domain.levels import LogLevel

from ..formatting import TextFormatter, TextOptions
from .base import BaseNotifier

Sender = Callable[[str, str, str], None]

_URGENCY = {
    LogLevel.DEBUG: "low",
    LogLevel.INFO: "low",
    LogLevel.WARN: "normal",
    LogLevel.ERROR: "critical",
    LogLevel.FATAL: "critical",
}


def _default_sender(summary: str, body: str, urgency: str) -> None:  # pragma: no cover - depends on a desktop session
    """Invoke ``notify-send``, raising if the tool is unavailable."""
    executable = shutil.which("notify-send")
    if executable is None:
        raise RuntimeError("notify-send is not available")
    subprocess.run(
        [executable, "--app-name", "logzd", "--urgency", urgency, summary, body],
        check=True,
        capture_output=True,
        timeout=5,
    )


class DesktopBusNotifier(BaseNotifier):
    """Show accepted entries as desktop notifications."""

    def __init__(self, settings: NotifierSettings, *, sender: Sender | None = None) -> None:
        super().__init__(settings)
        self._sender = sender or _default_sender
        self._formatter = TextFormatter(TextOptions(colorize=False, icons=False))

    def _deliver(self, entry: LogEntry) -> None:
        level = entry.level or LogLevel.INFO
        summary = f"logzd {level.name}"
        if entry.source:
            summary = f"{summary} ({entry.source})"
        self._sender(summary, self._formatter.format(entry), _URGENCY[level])


__all__ = ["DesktopBusNotifier"]
