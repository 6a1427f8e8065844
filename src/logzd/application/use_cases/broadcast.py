"""Best-effort fan-out of one entry to many notifiers."""

from __future__ import annotations

import logging
from collections.abc import Iterable

from logzd.application.ports.notifier import NotifierPort
from logzd.domain.entry import LogEntry

logger = logging.getLogger(__name__)


def broadcast_entry(notifiers: Iterable[NotifierPort], entry: LogEntry) -> list[tuple[str, Exception]]:
    """Deliver ``entry`` to every notifier and collect the failures.

    A failing notifier never prevents the remaining ones from running.

    Examples
    --------
    >>> from datetime import datetime, timezone
    >>> from logzd.domain.levels import LogLevel
    >>> class Boom:
    ...     name = 'boom'
    ...     def notify(self, entry):
    ...         raise RuntimeError('down')
    >>> class Sink:
    ...     name = 'sink'
    ...     def __init__(self):
    ...         self.seen = []
    ...     def notify(self, entry):
    ...         self.seen.append(entry.message)
    >>> sink = Sink()
    >>> entry = LogEntry(datetime(2025, 1, 1, tzinfo=timezone.utc), LogLevel.INFO, 'hi')
    >>> [(name, str(err)) for name, err in broadcast_entry([Boom(), sink], entry)]
    [('boom', 'down')]
    >>> sink.seen
    ['hi']
    """

    errors: list[tuple[str, Exception]] = []
    for notifier in notifiers:
        try:
            notifier.notify(entry)
        except Exception as exc:  # noqa: BLE001
            logger.error("Notifier %s failed: %s", notifier.name, exc)
            errors.append((notifier.name, exc))
    return errors


__all__ = ["broadcast_entry"]
