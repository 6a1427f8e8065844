from __future__ import annotations

import dataclasses

import pytest

from logzd.domain.config import (
    DEFAULT_SETTINGS,
    STDOUT,
    Config,
    LogMode,
    NotifierSettings,
    OutputFormat,
    parse_duration,
)
from logzd.domain.levels import LogLevel
from tests.os_markers import OS_AGNOSTIC

pytestmark = [OS_AGNOSTIC]


def test_defaults_document_parses_to_default_config() -> None:
    config = Config.from_mapping(DEFAULT_SETTINGS)
    assert config.port == 9999
    assert config.output == STDOUT
    assert config.writes_to_stdout
    assert config.mode is LogMode.STANDALONE
    assert config.level is LogLevel.INFO
    assert config.enabled_integrations == ["prometheus"]


def test_from_mapping_reads_every_section() -> None:
    config = Config.from_mapping(
        {
            "port": 8081,
            "output": "/var/log/app/app.log",
            "mode": "service",
            "level": "warn",
            "format": "json",
            "maxLogSize": 100,
            "moduleLogSize": 10,
            "readTimeout": "500ms",
            "integrations": {"prometheus": {"enabled": False}, "grafana": {"enabled": "true"}},
            "notifiers": {
                "hook": {"type": "http", "webhookURL": "http://example.test/hook", "logLevel": "error", "whitelist": "api, worker"},
            },
        }
    )
    assert config.port == 8081
    assert config.mode is LogMode.SERVICE
    assert config.level is LogLevel.WARN
    assert config.format is OutputFormat.JSON
    assert config.read_timeout == 0.5
    assert config.enabled_integrations == ["grafana"]
    hook = config.notifiers["hook"]
    assert hook.level is LogLevel.ERROR
    assert hook.whitelist == ("api", "worker")
    assert hook.http_method == "POST"


def test_default_log_path_key_is_accepted_for_output() -> None:
    assert Config.from_mapping({"defaultLogPath": "/tmp/x.log"}).output == "/tmp/x.log"


def test_unknown_mode_falls_back_to_standalone(caplog: pytest.LogCaptureFixture) -> None:
    config = Config.from_mapping({"mode": "cluster"})
    assert config.mode is LogMode.STANDALONE
    assert "Invalid mode" in caplog.text


def test_unknown_format_is_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown output format"):
        Config.from_mapping({"format": "xml"})


@pytest.mark.parametrize("port", [0, 70000])
def test_port_out_of_range_is_rejected(port: int) -> None:
    with pytest.raises(ValueError, match="port"):
        Config(port=port)


def test_thresholds_must_be_positive() -> None:
    with pytest.raises(ValueError, match="thresholds"):
        Config(max_log_size=0)


def test_snapshot_maps_are_read_only() -> None:
    config = Config(integrations={"prometheus": True})
    with pytest.raises(TypeError):
        config.integrations["grafana"] = True  # type: ignore[index]
    with pytest.raises(dataclasses.FrozenInstanceError):
        config.port = 1  # type: ignore[misc]


@pytest.mark.parametrize(
    "raw, expected",
    [("15s", 15.0), ("500ms", 0.5), ("2m", 120.0), ("1h", 3600.0), (3, 3.0), ("7", 7.0), (None, 9.0)],
)
def test_parse_duration(raw: object, expected: float) -> None:
    assert parse_duration(raw, 9.0) == expected


def test_parse_duration_rejects_garbage() -> None:
    with pytest.raises(ValueError, match="Invalid duration"):
        parse_duration("soon", 1.0)


def test_notifier_settings_defaults() -> None:
    settings = NotifierSettings.from_mapping("bus", {"type": "ZMQ", "endpoint": "tcp://127.0.0.1:5555"})
    assert settings.type == "zmq"
    assert settings.enabled is True
    assert settings.level is None
    assert settings.whitelist == ()


@pytest.mark.parametrize("key, value", [("integrations", ["prometheus"]), ("notifiers", "oops")])
def test_non_mapping_sections_are_rejected(key: str, value: object) -> None:
    with pytest.raises(ValueError, match=f"'{key}' must be a mapping"):
        Config.from_mapping({key: value})
