from __future__ import annotations

import threading
import time
from pathlib import Path

from logzd.adapters.tail import FileTailer, poll_interval
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]


def test_poll_interval_reads_milliseconds() -> None:
    assert poll_interval({"LOGZ_TAIL_POLL_INTERVAL": "100"}) == 0.1
    assert poll_interval({}) == 0.5
    assert poll_interval({"LOGZ_TAIL_POLL_INTERVAL": "soon"}) == 0.5


def _follow(tailer: FileTailer, lines: list[str], stop: threading.Event) -> threading.Thread:
    thread = threading.Thread(target=tailer.follow, args=(lines.append, stop), daemon=True)
    thread.start()
    return thread


def _wait_for(predicate, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return False


def test_follow_emits_only_new_lines(tmp_path: Path) -> None:
    target = tmp_path / "app.log"
    target.write_text("old line\n", encoding="utf-8")
    lines: list[str] = []
    stop = threading.Event()
    thread = _follow(FileTailer(target, interval=0.01), lines, stop)
    try:
        time.sleep(0.1)
        with target.open("a", encoding="utf-8") as handle:
            handle.write("first\nsecond\n")
        assert _wait_for(lambda: lines == ["first", "second"])
    finally:
        stop.set()
        thread.join(2)


def test_follow_from_start_replays_existing_content(tmp_path: Path) -> None:
    target = tmp_path / "app.log"
    target.write_text("one\ntwo\n", encoding="utf-8")
    lines: list[str] = []
    stop = threading.Event()
    thread = _follow(FileTailer(target, interval=0.01, from_start=True), lines, stop)
    try:
        assert _wait_for(lambda: lines == ["one", "two"])
    finally:
        stop.set()
        thread.join(2)


def test_follow_rewinds_after_truncation(tmp_path: Path) -> None:
    target = tmp_path / "app.log"
    target.write_text("a fairly long line that will be truncated away\n", encoding="utf-8")
    lines: list[str] = []
    stop = threading.Event()
    thread = _follow(FileTailer(target, interval=0.01), lines, stop)
    try:
        time.sleep(0.1)
        target.write_text("", encoding="utf-8")
        time.sleep(0.1)
        with target.open("a", encoding="utf-8") as handle:
            handle.write("fresh\n")
        assert _wait_for(lambda: lines == ["fresh"])
    finally:
        stop.set()
        thread.join(2)
