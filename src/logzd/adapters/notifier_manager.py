"""Registry of named notifiers rebuilt from configuration snapshots.

Purpose
-------
Hold the notifiers the logger fans out to, replace them wholesale whenever the
configuration changes, and broadcast entries to all of them without letting one
failing sink affect the others.

Contents
--------
* :data:`NOTIFIER_TYPES` - ``type`` discriminator to factory mapping.
* :func:`build_notifier` - construct one notifier from its settings.
* :class:`NotifierManager` - thread-safe registry implementing :class:`BroadcastPort`.

System Role
-----------
Subscribed to :class:`~logzd.adapters.config_manager.ConfigManager`; the service
logger receives it as its broadcast target.
"""

from __future__ import annotations

import logging
import threading
from types import MappingProxyType
from typing import Callable, Mapping

from logzd.application.ports.notifier import BroadcastPort, NotifierPort
from logzd.application.use_cases.broadcast import broadcast_entry
from logzd.domain.config import Config, NotifierSettings
from logzd.domain.entry import LogEntry

from .notifiers import DesktopBusNotifier, HttpNotifier, MessageBusNotifier

logger = logging.getLogger(__name__)

NotifierFactory = Callable[[NotifierSettings], NotifierPort]

NOTIFIER_TYPES: Mapping[str, NotifierFactory] = MappingProxyType(
    {
        "http": HttpNotifier,
        "webhook": HttpNotifier,
        "external": HttpNotifier,
        "bus": MessageBusNotifier,
        "zmq": MessageBusNotifier,
        "desktop-bus": DesktopBusNotifier,
        "dbus": DesktopBusNotifier,
    }
)


def build_notifier(settings: NotifierSettings, factories: Mapping[str, NotifierFactory] = NOTIFIER_TYPES) -> NotifierPort | None:
    """Return the notifier for ``settings`` or ``None`` when it must be skipped."""

    if not settings.type:
        logger.warning("Notifier %s has no type; skipping", settings.name)
        return None
    factory = factories.get(settings.type)
    if factory is None:
        logger.warning("Unknown notifier type %r for %s; skipping", settings.type, settings.name)
        return None
    try:
        return factory(settings)
    except ValueError as exc:
        logger.warning("Notifier %s is misconfigured: %s", settings.name, exc)
        return None


class NotifierManager(BroadcastPort):
    """Named notifiers behind a lock; reads return snapshots."""

    def __init__(self, factories: Mapping[str, NotifierFactory] | None = None) -> None:
        self._factories = NOTIFIER_TYPES if factories is None else factories
        self._notifiers: dict[str, NotifierPort] = {}
        self._lock = threading.RLock()

    def add_notifier(self, name: str, notifier: NotifierPort) -> None:
        with self._lock:
            previous = self._notifiers.get(name)
            self._notifiers = {**self._notifiers, name: notifier}
        if previous is not None and previous is not notifier:
            previous.close()

    def remove_notifier(self, name: str) -> None:
        with self._lock:
            notifiers = dict(self._notifiers)
            removed = notifiers.pop(name, None)
            self._notifiers = notifiers
        if removed is not None:
            removed.close()

    def get_notifier(self, name: str) -> NotifierPort | None:
        with self._lock:
            return self._notifiers.get(name)

    def list_notifiers(self) -> dict[str, NotifierPort]:
        with self._lock:
            return dict(self._notifiers)

    def update_from_config(self, config: Config) -> None:
        """Replace the registry with the notifiers declared in ``config``.

        The new registry is built completely before it is swapped in, so a
        concurrent :meth:`broadcast` sees either the old or the new set.
        """

        fresh: dict[str, NotifierPort] = {}
        for name, settings in config.notifiers.items():
            notifier = build_notifier(settings, self._factories)
            if notifier is not None:
                fresh[name] = notifier
        with self._lock:
            stale = self._notifiers
            self._notifiers = fresh
        for name, notifier in stale.items():
            if fresh.get(name) is not notifier:
                notifier.close()
        logger.info("Notifier registry updated: %s", ", ".join(sorted(fresh)) or "<none>")

    def broadcast(self, entry: LogEntry) -> list[tuple[str, Exception]]:
        with self._lock:
            current = list(self._notifiers.values())
        return broadcast_entry(current, entry)

    def close(self) -> None:
        with self._lock:
            notifiers, self._notifiers = self._notifiers, {}
        for notifier in notifiers.values():
            notifier.close()


__all__ = ["NOTIFIER_TYPES", "NotifierManager", "build_notifier"]
