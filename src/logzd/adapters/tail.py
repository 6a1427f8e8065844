"""Polling follower for a growing log file (``logzd watch``)."""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Callable, Mapping

logger = logging.getLogger(__name__)

POLL_ENV_VAR = "LOGZ_TAIL_POLL_INTERVAL"
DEFAULT_POLL_MS = 500


def poll_interval(env: Mapping[str, str] | None = None) -> float:
    """Return the poll interval in seconds from ``LOGZ_TAIL_POLL_INTERVAL`` (ms).

    Examples
    --------
    >>> poll_interval({"LOGZ_TAIL_POLL_INTERVAL": "250"})
    0.25
    >>> poll_interval({"LOGZ_TAIL_POLL_INTERVAL": "bogus"})
    0.5
    """

    source = os.environ if env is None else env
    raw = source.get(POLL_ENV_VAR, "").strip()
    try:
        millis = int(raw) if raw else DEFAULT_POLL_MS
    except ValueError:
        millis = DEFAULT_POLL_MS
    return max(millis, 1) / 1000


class FileTailer:
    """Emit lines appended to ``path`` until ``stop_event`` is set."""

    def __init__(self, path: Path, *, interval: float | None = None, from_start: bool = False) -> None:
        self._path = Path(path)
        self._interval = poll_interval() if interval is None else interval
        self._from_start = from_start

    def follow(self, sink: Callable[[str], None], stop_event: threading.Event) -> None:
        """Call ``sink`` with each complete new line, polling at the configured interval.

        A truncated file (after rotation) is re-read from the beginning.
        """

        with self._path.open("r", encoding="utf-8", errors="replace") as handle:
            if not self._from_start:
                handle.seek(0, os.SEEK_END)
            pending = ""
            while not stop_event.is_set():
                chunk = handle.readline()
                if chunk:
                    pending += chunk
                    if pending.endswith("\n"):
                        sink(pending.rstrip("\n"))
                        pending = ""
                    continue
                if self._path.exists() and self._path.stat().st_size < handle.tell():
                    logger.debug("%s shrank; rewinding", self._path)
                    handle.seek(0)
                    pending = ""
                stop_event.wait(self._interval)


__all__ = ["FileTailer", "poll_interval"]
