"""Message-bus notifier pushing entries over a ZeroMQ PUSH socket.

Purpose
-------
Forward entries to a collector listening on ``endpoint`` (for example
``tcp://127.0.0.1:5555``). The socket is created lazily, kept open between
calls and discarded after a failed send so the next call reconnects.

Contents
--------
* :class:`MessageBusNotifier`.
"""

from __future__ import annotations

import logging
import threading
from typing import Any, Callable

import zmq

from logzd.domain.config import NotifierSettings
from logzd.domain.entry import LogEntry
from logzd.domain.errors import NotifierError

from .base import BaseNotifier

logger = logging.getLogger(__name__)

SocketFactory = Callable[[], Any]

_SEND_TIMEOUT_MS = 2000


def _default_socket_factory() -> Any:
    context = zmq.Context.instance()
    sock = context.socket(zmq.PUSH)
    sock.setsockopt(zmq.LINGER, 0)
    sock.setsockopt(zmq.SNDTIMEO, _SEND_TIMEOUT_MS)
    return sock


class MessageBusNotifier(BaseNotifier):
    """Push the JSON entry, prefixed by the auth token when one is set."""

    def __init__(self, settings: NotifierSettings, *, socket_factory: SocketFactory | None = None) -> None:
        if not settings.endpoint:
            raise ValueError(f"notifier {settings.name!r} requires an endpoint")
        super().__init__(settings)
        self._socket_factory = socket_factory or _default_socket_factory
        self._socket: Any | None = None
        self._lock = threading.Lock()

    def _payload(self, entry: LogEntry) -> str:
        body = entry.to_json()
        if self._settings.auth_token:
            return f"{self._settings.auth_token} {body}"
        return body

    def _connect(self) -> Any:
        if self._socket is None:
            sock = self._socket_factory()
            sock.connect(self._settings.endpoint)
            self._socket = sock
            logger.debug("Connected notifier %s to %s", self.name, self._settings.endpoint)
        return self._socket

    def _deliver(self, entry: LogEntry) -> None:
        payload = self._payload(entry)
        with self._lock:
            try:
                self._connect().send_string(payload)
            except zmq.ZMQError as exc:
                self._reset()
                raise NotifierError(self.name, f"send to {self._settings.endpoint} failed: {exc}") from exc

    def _reset(self) -> None:
        if self._socket is not None:
            try:
                self._socket.close()
            finally:
                self._socket = None

    def close(self) -> None:
        with self._lock:
            self._reset()


__all__ = ["MessageBusNotifier"]
