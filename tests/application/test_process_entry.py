from __future__ import annotations

import threading
from typing import Any

import pytest

from logzd.application.use_cases.process_entry import LOGS_TOTAL, ProcessIdentity, create_process_log_entry
from logzd.domain.config import LogMode
from logzd.domain.errors import NotifierError
from logzd.domain.levels import LogLevel
from tests.conftest import CounterSink, FixedClock, ListWriter, RecordingNotifier, SequentialIds
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]

IDENTITY = ProcessIdentity(pid=4242, hostname="host-1")


class _Broadcast:
    def __init__(self, *notifiers: RecordingNotifier) -> None:
        self.notifiers = notifiers

    def broadcast(self, entry: Any) -> list[tuple[str, Exception]]:
        from logzd.application.use_cases.broadcast import broadcast_entry

        return broadcast_entry(self.notifiers, entry)


def _pipeline(writer: ListWriter, **overrides: Any):
    params: dict[str, Any] = {
        "writer": writer,
        "min_level": LogLevel.INFO,
        "mode": LogMode.STANDALONE,
        "clock": FixedClock(),
        "id_provider": SequentialIds(),
        "identity": IDENTITY,
    }
    params.update(overrides)
    return create_process_log_entry(**params)


@pytest.mark.parametrize("minimum", list(LogLevel))
@pytest.mark.parametrize("level", [level for level in LogLevel if level is not LogLevel.FATAL])
def test_entries_below_the_threshold_are_dropped(minimum: LogLevel, level: LogLevel) -> None:
    writer = ListWriter()
    process = _pipeline(writer, min_level=minimum)

    result = process(source="svc", level=level, message="hello")

    if level.severity >= minimum.severity:
        assert result["ok"] is True
        assert [entry.level for entry in writer.entries] == [level]
    else:
        assert result == {"ok": False, "reason": "below_threshold"}
        assert writer.entries == []


def test_entries_carry_identity_trace_and_caller() -> None:
    writer = ListWriter()
    process = _pipeline(writer)

    result = process(source="svc", level=LogLevel.INFO, message="ready", label="boot", tags={"team": "core"}, caller="app.py:1 main")

    entry = writer.entries[0]
    assert result["trace_id"] == entry.trace_id == "trace-1"
    assert (entry.pid, entry.hostname) == (4242, "host-1")
    assert entry.context == "boot"
    assert entry.tags == {"team": "core"}
    assert entry.caller == "app.py:1 main"
    assert entry.severity == LogLevel.INFO.severity


def test_call_context_overrides_global_metadata() -> None:
    writer = ListWriter()
    process = _pipeline(writer)

    process(
        source="svc",
        level=LogLevel.INFO,
        message="merge",
        context={"request": "r-1", "env": "staging"},
        global_metadata={"env": "prod", "region": "eu"},
    )

    assert writer.entries[0].metadata == {"env": "staging", "region": "eu", "request": "r-1"}


def test_invalid_entries_are_rejected_without_writing(caplog: pytest.LogCaptureFixture) -> None:
    writer = ListWriter()
    process = _pipeline(writer)

    result = process(source="svc", level=LogLevel.INFO, message="  ")

    assert result["ok"] is False
    assert result["reason"] == "invalid_entry"
    assert "message is required" in result["error"]
    assert writer.entries == []
    assert "Dropping invalid log entry" in caplog.text


def test_writer_failures_are_reported_not_raised() -> None:
    process = _pipeline(ListWriter(fail=True))

    result = process(source="svc", level=LogLevel.ERROR, message="lost")

    assert result["ok"] is False
    assert result["reason"] == "writer_error"


def test_after_write_hook_runs_once_per_entry_and_failures_are_contained() -> None:
    calls: list[int] = []

    def hook() -> None:
        calls.append(1)
        raise RuntimeError("rotation broke")

    writer = ListWriter()
    process = _pipeline(writer, after_write=hook)

    assert process(source="svc", level=LogLevel.INFO, message="one")["ok"] is True
    assert calls == [1]


def test_standalone_mode_skips_notifiers_and_metrics() -> None:
    notifier = RecordingNotifier("hook")
    metrics = CounterSink()
    process = _pipeline(ListWriter(), notifiers=_Broadcast(notifier), metrics=metrics)

    process(source="svc", level=LogLevel.ERROR, message="quiet")

    assert notifier.entries == []
    assert metrics.counts == {}


def test_service_mode_broadcasts_and_counts() -> None:
    notifier = RecordingNotifier("hook")
    metrics = CounterSink()
    process = _pipeline(ListWriter(), mode=LogMode.SERVICE, notifiers=_Broadcast(notifier), metrics=metrics)

    process(source="svc", level=LogLevel.WARN, message="one")
    process(source="svc", level=LogLevel.ERROR, message="two")

    assert [entry.message for entry in notifier.entries] == ["one", "two"]
    assert metrics.counts == {LOGS_TOTAL: 2.0, "logs_total_WARN": 1.0, "logs_total_ERROR": 1.0}


def test_failing_notifier_does_not_block_the_others() -> None:
    broken = RecordingNotifier("broken", error=NotifierError("broken", "HTTP 500"))
    healthy = RecordingNotifier("healthy")
    writer = ListWriter()
    process = _pipeline(writer, mode=LogMode.SERVICE, notifiers=_Broadcast(broken, healthy))

    result = process(source="svc", level=LogLevel.ERROR, message="boom")

    assert result["ok"] is True
    assert result["notifier_errors"] == [("broken", "broken: HTTP 500")]
    assert len(healthy.entries) == 1
    assert len(writer.entries) == 1


def test_fatal_writes_then_terminates_with_status_one() -> None:
    writer = ListWriter()
    exits: list[int] = []
    process = _pipeline(writer, terminate=exits.append)

    result = process(source="svc", level=LogLevel.FATAL, message="bye")

    assert result["ok"] is True
    assert [entry.message for entry in writer.entries] == ["bye"]
    assert exits == [1]


def test_fatal_raises_system_exit_by_default() -> None:
    writer = ListWriter()
    process = _pipeline(writer)

    with pytest.raises(SystemExit) as excinfo:
        process(source="svc", level=LogLevel.FATAL, message="bye")

    assert excinfo.value.code == 1
    assert len(writer.entries) == 1


def test_filtered_entries_never_terminate() -> None:
    exits: list[int] = []
    process = _pipeline(ListWriter(), min_level=LogLevel.FATAL, terminate=exits.append)

    assert process(source="svc", level=LogLevel.ERROR, message="filtered")["reason"] == "below_threshold"
    assert exits == []


def test_diagnostic_hook_receives_milestones() -> None:
    events: list[str] = []
    process = _pipeline(ListWriter(fail=True), diagnostic=lambda name, payload: events.append(name))

    process(source="svc", level=LogLevel.INFO, message="x")

    assert events == ["writer_error"]


def test_concurrent_callers_each_write_one_entry() -> None:
    writer = ListWriter()
    lock = threading.Lock()
    original = writer.write

    def locked_write(entry: Any) -> None:
        with lock:
            original(entry)

    writer.write = locked_write  # type: ignore[method-assign]
    process = _pipeline(writer, id_provider=lambda: "t")

    threads = [
        threading.Thread(target=lambda n=n: process(source=f"worker-{n}", level=LogLevel.INFO, message=f"m{n}"))
        for n in range(20)
    ]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert sorted(entry.message for entry in writer.entries) == sorted(f"m{n}" for n in range(20))


def test_pipeline_exposes_its_wiring() -> None:
    writer = ListWriter()
    process = _pipeline(writer, min_level=LogLevel.WARN, mode=LogMode.SERVICE)
    assert process.min_level is LogLevel.WARN
    assert process.mode is LogMode.SERVICE
    assert process.writer is writer
