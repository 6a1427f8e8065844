"""Filtering shared by every notifier variant."""

from __future__ import annotations

import logging

from logzd.application.ports.notifier import NotifierPort
from logzd.domain.config import NotifierSettings
from logzd.domain.entry import LogEntry
from logzd.domain.errors import NotifierError

logger = logging.getLogger(__name__)


class BaseNotifier(NotifierPort):
    """Apply enabled flag, level filter and source whitelist before delivery.

    Subclasses implement :meth:`_deliver` and raise on transport failures;
    :meth:`notify` wraps anything that is not already a
    :class:`NotifierError`.
    """

    def __init__(self, settings: NotifierSettings) -> None:
        self._settings = settings
        self.name = settings.name

    @property
    def settings(self) -> NotifierSettings:
        return self._settings

    @property
    def enabled(self) -> bool:
        return self._settings.enabled

    def accepts(self, entry: LogEntry) -> bool:
        """Return ``True`` when ``entry`` passes every configured filter."""

        settings = self._settings
        if not settings.enabled or entry.level is None:
            return False
        if settings.level is not None and not settings.level.allows(entry.level):
            return False
        if settings.whitelist and entry.source not in settings.whitelist:
            return False
        return True

    def notify(self, entry: LogEntry) -> None:
        if not self.accepts(entry):
            return
        try:
            self._deliver(entry)
        except NotifierError:
            raise
        except Exception as exc:
            raise NotifierError(self.name, str(exc) or type(exc).__name__) from exc

    def _deliver(self, entry: LogEntry) -> None:
        raise NotImplementedError

    def close(self) -> None:
        return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r}, enabled={self.enabled})"


__all__ = ["BaseNotifier"]
