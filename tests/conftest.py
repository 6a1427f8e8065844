"""Shared fixtures: isolated environment, entry factory and fake collaborators."""

from __future__ import annotations

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Callable

import pytest

from logzd.domain import LogEntry, LogLevel

FIXED_TIME = datetime(2025, 9, 30, 12, 0, tzinfo=timezone.utc)

_ENV_VARS = (
    "LOGZ_CONFIG_PATH",
    "LOGZ_PID_PATH",
    "LOGZ_METRICS_FILE",
    "LOGZ_NO_COLOR",
    "NO_COLOR",
    "LOGZ_NO_ICON",
    "LOGZ_TIMESTAMP",
    "LOGZ_TAIL_POLL_INTERVAL",
    "LOGZ_LEVEL",
    "LOGZ_PROMETHEUS_ENABLED",
    "LOGZ_USE_DOTENV",
)


@pytest.fixture(autouse=True)
def isolated_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    """Point HOME and the XDG directories at ``tmp_path`` and clear ``LOGZ_*`` variables."""

    home = tmp_path / "home"
    home.mkdir()
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(tmp_path / "xdg-config"))
    monkeypatch.setenv("XDG_CACHE_HOME", str(tmp_path / "xdg-cache"))
    return home


class FixedClock:
    def __init__(self, moment: datetime = FIXED_TIME) -> None:
        self.moment = moment

    def now(self) -> datetime:
        return self.moment


class SequentialIds:
    def __init__(self) -> None:
        self.counter = 0

    def __call__(self) -> str:
        self.counter += 1
        return f"trace-{self.counter}"


class ListWriter:
    """Writer double recording entries in memory."""

    def __init__(self, *, fail: bool = False) -> None:
        self.entries: list[LogEntry] = []
        self.fail = fail
        self.closed = False

    def write(self, entry: LogEntry) -> None:
        if self.fail:
            raise OSError("disk full")
        self.entries.append(entry)

    def close(self) -> None:
        self.closed = True


class RecordingNotifier:
    """Notifier double; ``error`` makes :meth:`notify` raise."""

    def __init__(self, name: str, *, error: Exception | None = None) -> None:
        self.name = name
        self.error = error
        self.entries: list[LogEntry] = []
        self.closed = False

    def notify(self, entry: LogEntry) -> None:
        if self.error is not None:
            raise self.error
        self.entries.append(entry)

    def close(self) -> None:
        self.closed = True


class CounterSink:
    def __init__(self) -> None:
        self.counts: dict[str, float] = {}

    def increment_metric(self, name: str, delta: float = 1.0) -> None:
        self.counts[name] = self.counts.get(name, 0.0) + delta


@pytest.fixture
def fixed_clock() -> FixedClock:
    return FixedClock()


@pytest.fixture
def entry_factory() -> Callable[..., LogEntry]:
    def factory(level: LogLevel = LogLevel.INFO, message: str = "hello", **changes: Any) -> LogEntry:
        fields: dict[str, Any] = {
            "timestamp": FIXED_TIME,
            "level": level,
            "message": message,
            "source": "svc",
            "pid": 4242,
            "hostname": "host-1",
            "trace_id": "trace-0",
        }
        fields.update(changes)
        return LogEntry(**fields)

    return factory


@pytest.fixture
def write_config(tmp_path: Path) -> Callable[..., Path]:
    """Write a JSON config document and return its path."""

    def writer(document: dict[str, Any], name: str = "config.json") -> Path:
        path = tmp_path / name
        path.write_text(json.dumps(document), encoding="utf-8")
        return path

    return writer
