from __future__ import annotations

import json
from typing import Callable

import pytest

from logzd.adapters.formatting import JsonFormatter, TextFormatter, TextOptions, build_text, create_formatter
from logzd.domain import LogEntry, LogLevel
from logzd.domain.config import OutputFormat
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]

PLAIN = TextOptions(colorize=False, icons=False)


def test_plain_layout_shows_level_and_message(entry_factory: Callable[..., LogEntry]) -> None:
    assert TextFormatter(PLAIN).format(entry_factory(LogLevel.WARN, "disk low")) == "[WARN] - disk low"


def test_context_label_is_rendered_in_parentheses(entry_factory: Callable[..., LogEntry]) -> None:
    entry = entry_factory(context="db")
    assert TextFormatter(PLAIN).format(entry) == "[INFO] - (db) hello"


def test_icons_follow_the_level(entry_factory: Callable[..., LogEntry]) -> None:
    rendered = TextFormatter(TextOptions(colorize=False)).format(entry_factory(LogLevel.ERROR))
    assert rendered.startswith(f"[ERROR] {LogLevel.ERROR.icon} - ")


def test_timestamps_use_day_first_layout(entry_factory: Callable[..., LogEntry]) -> None:
    options = TextOptions(colorize=False, icons=False, timestamps=True)
    assert TextFormatter(options).format(entry_factory()) == "[30-09-2025 12:00:00] [INFO] - hello"


def test_show_timestamp_metadata_enables_the_stamp(entry_factory: Callable[..., LogEntry]) -> None:
    entry = entry_factory(metadata={"showTimestamp": "true"})
    assert TextFormatter(PLAIN).format(entry).startswith("[30-09-2025 12:00:00] ")


def test_debug_entries_list_their_metadata(entry_factory: Callable[..., LogEntry]) -> None:
    entry = entry_factory(LogLevel.DEBUG, "inspect", metadata={"b": 2, "a": "x"})
    assert TextFormatter(PLAIN).format(entry) == "[DEBUG] - inspect\nContext:\n  - a: x\n  - b: 2"


def test_show_context_flag_lists_metadata_without_the_flag_itself(entry_factory: Callable[..., LogEntry]) -> None:
    entry = entry_factory(metadata={"showContext": "true", "user": "ada"})
    assert TextFormatter(PLAIN).format(entry) == "[INFO] - hello\nContext:\n  - user: ada"


def test_info_entries_hide_metadata_by_default(entry_factory: Callable[..., LogEntry]) -> None:
    entry = entry_factory(metadata={"user": "ada"})
    assert "Context:" not in TextFormatter(PLAIN).format(entry)


def test_colour_output_contains_ansi_sequences(entry_factory: Callable[..., LogEntry]) -> None:
    rendered = TextFormatter(TextOptions(colorize=True, icons=False)).format(entry_factory(LogLevel.ERROR))
    assert "\x1b[" in rendered
    assert "ERROR" in rendered


def test_rendered_text_carries_level_style(entry_factory: Callable[..., LogEntry]) -> None:
    text = build_text(entry_factory(LogLevel.FATAL), TextOptions(icons=False))
    assert any(span.style == "magenta" for span in text.spans)


@pytest.mark.parametrize(
    "env, platform, colorize",
    [
        ({}, "linux", True),
        ({"NO_COLOR": "1"}, "linux", False),
        ({"LOGZ_NO_COLOR": "yes"}, "linux", False),
        ({}, "win32", False),
    ],
)
def test_options_from_env_colour(env: dict[str, str], platform: str, colorize: bool) -> None:
    assert TextOptions.from_env(env, platform=platform).colorize is colorize


def test_options_from_env_icons_and_timestamps() -> None:
    options = TextOptions.from_env({"LOGZ_NO_ICON": "1", "LOGZ_TIMESTAMP": "TRUE"}, platform="linux")
    assert options.icons is False
    assert options.timestamps is True


def test_json_formatter_emits_one_object(entry_factory: Callable[..., LogEntry]) -> None:
    record = JsonFormatter().format(entry_factory(metadata={"k": "v"}))
    assert "\n" not in record
    payload = json.loads(record)
    assert payload["level"] == "INFO"
    assert payload["metadata"] == {"k": "v"}
    assert payload["trace_id"] == "trace-0"


def test_create_formatter_dispatches_on_format() -> None:
    assert isinstance(create_formatter(OutputFormat.JSON), JsonFormatter)
    assert isinstance(create_formatter(OutputFormat.TEXT, options=PLAIN), TextFormatter)
