"""Webhook notifier posting entries as JSON via :mod:`requests`."""

from __future__ import annotations

import logging
from typing import Any

import requests

from logzd.domain.config import NotifierSettings
from logzd.domain.entry import LogEntry
from logzd.domain.errors import NotifierError

from .base import BaseNotifier

logger = logging.getLogger(__name__)


class HttpNotifier(BaseNotifier):
    """Send each accepted entry to ``webhook_url`` with the configured method.

    The session is reused across calls; pass ``session`` to inject a fake in
    tests. Any status other than 200 raises :class:`NotifierError`.
    """

    def __init__(self, settings: NotifierSettings, *, session: requests.Session | None = None) -> None:
        if not settings.webhook_url:
            raise ValueError(f"notifier {settings.name!r} requires a webhookURL")
        super().__init__(settings)
        self._session = session or requests.Session()

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self._settings.auth_token:
            headers["Authorization"] = f"Bearer {self._settings.auth_token}"
        return headers

    def _payload(self, entry: LogEntry) -> dict[str, Any]:
        return entry.to_dict()

    def _deliver(self, entry: LogEntry) -> None:
        try:
            response = self._session.request(
                self._settings.http_method,
                self._settings.webhook_url,
                json=self._payload(entry),
                headers=self._headers(),
            )
        except requests.RequestException as exc:
            raise NotifierError(self.name, f"request failed: {exc}") from exc
        if response.status_code != 200:
            raise NotifierError(self.name, f"webhook returned HTTP {response.status_code}")
        logger.debug("Delivered %s to %s", entry.trace_id, self._settings.webhook_url)

    def close(self) -> None:
        self._session.close()


__all__ = ["HttpNotifier"]
