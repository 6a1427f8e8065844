from __future__ import annotations

from typing import Any, Callable

import pytest
import requests
import zmq

from logzd.adapters.notifiers import DesktopBusNotifier, HttpNotifier, MessageBusNotifier
from logzd.domain import LogEntry, LogLevel
from logzd.domain.config import NotifierSettings
from logzd.domain.errors import NotifierError
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]


class _Response:
    def __init__(self, status_code: int) -> None:
        self.status_code = status_code


class _FakeSession:
    def __init__(self, status_code: int = 200, error: Exception | None = None) -> None:
        self.status_code = status_code
        self.error = error
        self.calls: list[dict[str, Any]] = []
        self.closed = False

    def request(self, method: str, url: str, **kwargs: Any) -> _Response:
        self.calls.append({"method": method, "url": url, **kwargs})
        if self.error is not None:
            raise self.error
        return _Response(self.status_code)

    def close(self) -> None:
        self.closed = True


def _http(session: _FakeSession, **changes: Any) -> HttpNotifier:
    fields: dict[str, Any] = {"name": "hook", "type": "http", "webhook_url": "http://example.test/hook"}
    fields.update(changes)
    return HttpNotifier(NotifierSettings(**fields), session=session)  # type: ignore[arg-type]


def test_http_notifier_posts_the_entry_as_json(entry_factory: Callable[..., LogEntry]) -> None:
    session = _FakeSession()
    _http(session).notify(entry_factory(LogLevel.ERROR, "boom"))

    call = session.calls[0]
    assert call["method"] == "POST"
    assert call["url"] == "http://example.test/hook"
    assert call["json"]["message"] == "boom"
    assert call["json"]["level"] == "ERROR"
    assert "Authorization" not in call["headers"]


def test_http_notifier_sends_bearer_token_and_custom_method(entry_factory: Callable[..., LogEntry]) -> None:
    session = _FakeSession()
    _http(session, auth_token="s3cret", http_method="PUT").notify(entry_factory())

    assert session.calls[0]["method"] == "PUT"
    assert session.calls[0]["headers"]["Authorization"] == "Bearer s3cret"


@pytest.mark.parametrize("status", [201, 404, 500])
def test_http_notifier_rejects_non_200_status(entry_factory: Callable[..., LogEntry], status: int) -> None:
    with pytest.raises(NotifierError, match=f"HTTP {status}") as excinfo:
        _http(_FakeSession(status_code=status)).notify(entry_factory())
    assert excinfo.value.notifier == "hook"


def test_http_notifier_wraps_transport_errors(entry_factory: Callable[..., LogEntry]) -> None:
    session = _FakeSession(error=requests.ConnectionError("refused"))
    with pytest.raises(NotifierError, match="request failed"):
        _http(session).notify(entry_factory())


def test_http_notifier_requires_a_url() -> None:
    with pytest.raises(ValueError, match="webhookURL"):
        HttpNotifier(NotifierSettings(name="hook", type="http"))


def test_level_filter_is_a_minimum_severity(entry_factory: Callable[..., LogEntry]) -> None:
    session = _FakeSession()
    notifier = _http(session, level=LogLevel.ERROR)

    for level in LogLevel:
        notifier.notify(entry_factory(level, level.name))

    assert [call["json"]["message"] for call in session.calls] == ["ERROR", "FATAL"]


def test_whitelist_restricts_sources(entry_factory: Callable[..., LogEntry]) -> None:
    session = _FakeSession()
    notifier = _http(session, whitelist=("api",))

    notifier.notify(entry_factory(source="worker"))
    notifier.notify(entry_factory(source="api"))

    assert [call["json"]["source"] for call in session.calls] == ["api"]


def test_disabled_notifier_delivers_nothing(entry_factory: Callable[..., LogEntry]) -> None:
    session = _FakeSession()
    _http(session, enabled=False).notify(entry_factory())
    assert session.calls == []


def test_http_notifier_close_closes_the_session() -> None:
    session = _FakeSession()
    _http(session).close()
    assert session.closed


class _FakeSocket:
    def __init__(self, fail: bool = False) -> None:
        self.fail = fail
        self.connected: list[str] = []
        self.sent: list[str] = []
        self.closed = False

    def connect(self, endpoint: str) -> None:
        self.connected.append(endpoint)

    def send_string(self, payload: str) -> None:
        if self.fail:
            raise zmq.ZMQError(msg="peer unavailable")
        self.sent.append(payload)

    def close(self) -> None:
        self.closed = True


def _bus(sockets: list[_FakeSocket], **changes: Any) -> MessageBusNotifier:
    fields: dict[str, Any] = {"name": "bus", "type": "bus", "endpoint": "tcp://127.0.0.1:5555"}
    fields.update(changes)
    return MessageBusNotifier(NotifierSettings(**fields), socket_factory=lambda: sockets.pop(0))


def test_bus_notifier_reuses_one_connection(entry_factory: Callable[..., LogEntry]) -> None:
    socket = _FakeSocket()
    notifier = _bus([socket])

    notifier.notify(entry_factory(message="one"))
    notifier.notify(entry_factory(message="two"))

    assert socket.connected == ["tcp://127.0.0.1:5555"]
    assert len(socket.sent) == 2
    assert '"message": "one"' in socket.sent[0]


def test_bus_notifier_prefixes_the_token(entry_factory: Callable[..., LogEntry]) -> None:
    socket = _FakeSocket()
    _bus([socket], auth_token="tok").notify(entry_factory())
    assert socket.sent[0].startswith("tok {")


def test_bus_notifier_reconnects_after_a_failure(entry_factory: Callable[..., LogEntry]) -> None:
    broken, healthy = _FakeSocket(fail=True), _FakeSocket()
    notifier = _bus([broken, healthy])

    with pytest.raises(NotifierError, match="send to tcp://127.0.0.1:5555 failed"):
        notifier.notify(entry_factory())
    notifier.notify(entry_factory())

    assert broken.closed
    assert len(healthy.sent) == 1


def test_bus_notifier_requires_an_endpoint() -> None:
    with pytest.raises(ValueError, match="endpoint"):
        MessageBusNotifier(NotifierSettings(name="bus", type="bus"))


def test_desktop_notifier_sends_plain_summary_and_body(entry_factory: Callable[..., LogEntry]) -> None:
    sent: list[tuple[str, str, str]] = []
    notifier = DesktopBusNotifier(NotifierSettings(name="desk", type="desktop-bus"), sender=lambda *args: sent.append(args))

    notifier.notify(entry_factory(LogLevel.ERROR, "db down", source="api"))

    assert sent == [("logzd ERROR (api)", "[ERROR] - db down", "critical")]


def test_desktop_notifier_wraps_sender_failures(entry_factory: Callable[..., LogEntry]) -> None:
    def sender(summary: str, body: str, urgency: str) -> None:
        raise RuntimeError("notify-send is not available")

    notifier = DesktopBusNotifier(NotifierSettings(name="desk", type="dbus"), sender=sender)

    with pytest.raises(NotifierError, match="desk: notify-send is not available"):
        notifier.notify(entry_factory())
