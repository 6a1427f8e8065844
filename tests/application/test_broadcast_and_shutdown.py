from __future__ import annotations

from typing import Callable

from logzd.application.use_cases.broadcast import broadcast_entry
from logzd.application.use_cases.shutdown import create_shutdown
from logzd.domain import LogEntry
from tests.conftest import RecordingNotifier
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]


def test_broadcast_delivers_to_every_notifier(entry_factory: Callable[..., LogEntry]) -> None:
    first, second = RecordingNotifier("a"), RecordingNotifier("b")

    errors = broadcast_entry([first, second], entry_factory())

    assert errors == []
    assert len(first.entries) == len(second.entries) == 1


def test_broadcast_collects_failures_by_name(entry_factory: Callable[..., LogEntry]) -> None:
    boom = RuntimeError("down")
    notifiers = [RecordingNotifier("a", error=boom), RecordingNotifier("b"), RecordingNotifier("c", error=ValueError("bad"))]

    errors = broadcast_entry(notifiers, entry_factory())

    assert [name for name, _ in errors] == ["a", "c"]
    assert errors[0][1] is boom
    assert len(notifiers[1].entries) == 1


class _Closeable:
    def __init__(self, calls: list[str], name: str, *, fail: bool = False) -> None:
        self.calls = calls
        self.name = name
        self.fail = fail

    def close(self) -> None:
        self.calls.append(self.name)
        if self.fail:
            raise RuntimeError(f"{self.name} failed")


def test_shutdown_runs_every_step_in_order() -> None:
    calls: list[str] = []
    shutdown = create_shutdown(
        stop_watcher=lambda: calls.append("watcher"),
        closeables=[_Closeable(calls, "notifiers"), _Closeable(calls, "writer")],
    )

    assert shutdown() == []
    assert calls == ["watcher", "notifiers", "writer"]


def test_shutdown_continues_after_failures_and_reports_them() -> None:
    calls: list[str] = []
    shutdown = create_shutdown(
        stop_watcher=None,
        closeables=[_Closeable(calls, "notifiers", fail=True), _Closeable(calls, "writer")],
    )

    failures = shutdown()

    assert calls == ["notifiers", "writer"]
    assert [str(exc) for exc in failures] == ["notifiers failed"]
