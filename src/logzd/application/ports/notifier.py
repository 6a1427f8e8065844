"""Port for external notification sinks (webhook, message bus, desktop)."""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from logzd.domain.entry import LogEntry


@runtime_checkable
class NotifierPort(Protocol):
    """Deliver log entries to one external sink.

    ``notify`` applies the notifier's enabled flag, level filter and source
    whitelist before any I/O and raises
    :class:`~logzd.domain.errors.NotifierError` when the transport fails.
    """

    name: str

    def notify(self, entry: LogEntry) -> None:
        """Forward ``entry`` when the notifier's filters accept it."""

    def close(self) -> None:
        """Release transport resources such as sockets or sessions."""


@runtime_checkable
class BroadcastPort(Protocol):
    """Fan an entry out to every registered notifier."""

    def broadcast(self, entry: LogEntry) -> list[tuple[str, Exception]]:
        """Return ``(notifier name, error)`` pairs for failed deliveries."""


__all__ = ["BroadcastPort", "NotifierPort"]
