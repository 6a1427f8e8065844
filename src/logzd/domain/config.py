"""Immutable configuration snapshot and its parsing from raw mappings.

Purpose
-------
Describe every setting the daemon consumes as frozen dataclasses so the config
watcher can publish a new snapshot by reference and consumers never observe a
half-applied reload.

Contents
--------
* :class:`LogMode` and :class:`OutputFormat` enums.
* :class:`NotifierSettings` describing one configured notifier.
* :class:`Config` snapshot plus :meth:`Config.from_mapping`.
* ``DEFAULT_SETTINGS`` written to fresh config files.
* :func:`parse_duration` accepting numbers or ``"15s"``/``"500ms"`` strings.

System Role
-----------
Domain layer: no filesystem access. :mod:`logzd.adapters.config_manager` reads
files and hands the decoded mapping to :meth:`Config.from_mapping`.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Any, Mapping

from .levels import LogLevel

logger = logging.getLogger(__name__)

STDOUT = "stdout"
DEFAULT_MAX_LOG_SIZE = 20 * 1024 * 1024
DEFAULT_MODULE_LOG_SIZE = 5 * 1024 * 1024

DEFAULT_SETTINGS: Mapping[str, Any] = MappingProxyType(
    {
        "port": "9999",
        "bindAddress": "0.0.0.0",
        "pidFile": "logzd.pid",
        "readTimeout": "15s",
        "writeTimeout": "15s",
        "idleTimeout": "60s",
        "output": STDOUT,
        "mode": "standalone",
        "level": "INFO",
        "format": "text",
        "maxLogSize": DEFAULT_MAX_LOG_SIZE,
        "moduleLogSize": DEFAULT_MODULE_LOG_SIZE,
        "metricsEnabled": False,
        "integrations": {"prometheus": {"enabled": True}},
        "notifiers": {},
    }
)

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h)?\s*$")
_DURATION_UNITS = {"ms": 0.001, "s": 1.0, "m": 60.0, "h": 3600.0, None: 1.0}


class LogMode(Enum):
    """Operating mode; only ``SERVICE`` fans out to notifiers and metrics."""

    SERVICE = "service"
    STANDALONE = "standalone"

    @classmethod
    def parse(cls, raw: Any) -> "LogMode":
        """Return the matching mode, defaulting to ``STANDALONE``.

        Examples
        --------
        >>> LogMode.parse("Service")
        <LogMode.SERVICE: 'service'>
        >>> LogMode.parse("bogus")
        <LogMode.STANDALONE: 'standalone'>
        """
        if raw is None or raw == "":
            return cls.STANDALONE
        try:
            return cls(str(raw).strip().lower())
        except ValueError:
            logger.warning("Invalid mode %r; falling back to standalone", raw)
            return cls.STANDALONE


class OutputFormat(Enum):
    TEXT = "text"
    JSON = "json"

    @classmethod
    def parse(cls, raw: Any) -> "OutputFormat":
        try:
            return cls(str(raw or "text").strip().lower())
        except ValueError as exc:
            raise ValueError(f"Unknown output format: {raw!r}") from exc


def parse_duration(raw: Any, default: float) -> float:
    """Return ``raw`` as seconds.

    Examples
    --------
    >>> parse_duration("15s", 0)
    15.0
    >>> parse_duration("500ms", 0)
    0.5
    >>> parse_duration(None, 60.0)
    60.0
    """

    if raw is None or raw == "":
        return float(default)
    if isinstance(raw, bool):
        raise ValueError(f"Invalid duration: {raw!r}")
    if isinstance(raw, (int, float)):
        return float(raw)
    match = _DURATION_RE.match(str(raw))
    if match is None:
        raise ValueError(f"Invalid duration: {raw!r}")
    number, unit = match.groups()
    return float(number) * _DURATION_UNITS[unit]


def _coerce_bool(raw: Any, default: bool) -> bool:
    if raw is None:
        return default
    if isinstance(raw, bool):
        return raw
    return str(raw).strip().lower() in {"1", "true", "yes", "on"}


def _section(raw: Mapping[str, Any], key: str) -> Mapping[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, Mapping):
        raise ValueError(f"'{key}' must be a mapping, got {type(value).__name__}")
    return value


def _coerce_int(raw: Any, default: int) -> int:
    if raw is None or raw == "":
        return default
    return int(raw)


@dataclass(slots=True, frozen=True)
class NotifierSettings:
    """Configuration of one named notifier.

    ``level`` is a minimum severity; ``None`` lets every level through.
    ``whitelist`` restricts delivery to entries whose ``source`` is listed.
    """

    name: str
    type: str
    enabled: bool = True
    webhook_url: str = ""
    http_method: str = "POST"
    auth_token: str = ""
    level: LogLevel | None = None
    endpoint: str = ""
    whitelist: tuple[str, ...] = ()

    @classmethod
    def from_mapping(cls, name: str, raw: Mapping[str, Any]) -> "NotifierSettings":
        level_raw = raw.get("logLevel") or raw.get("level")
        whitelist_raw = raw.get("whitelist") or ()
        if isinstance(whitelist_raw, str):
            whitelist_raw = [item.strip() for item in whitelist_raw.split(",") if item.strip()]
        return cls(
            name=name,
            type=str(raw.get("type") or "").strip().lower(),
            enabled=_coerce_bool(raw.get("enabled"), True),
            webhook_url=str(raw.get("webhookURL") or raw.get("webhookUrl") or ""),
            http_method=str(raw.get("httpMethod") or "POST").upper(),
            auth_token=str(raw.get("authToken") or ""),
            level=LogLevel.from_name(str(level_raw)) if level_raw else None,
            endpoint=str(raw.get("endpoint") or ""),
            whitelist=tuple(str(item) for item in whitelist_raw),
        )


@dataclass(slots=True, frozen=True)
class Config:
    """Frozen configuration snapshot published by the config manager."""

    port: int = 9999
    bind_address: str = "0.0.0.0"
    pid_file: str = "logzd.pid"
    read_timeout: float = 15.0
    write_timeout: float = 15.0
    idle_timeout: float = 60.0
    output: str = STDOUT
    mode: LogMode = LogMode.STANDALONE
    level: LogLevel = LogLevel.INFO
    format: OutputFormat = OutputFormat.TEXT
    max_log_size: int = DEFAULT_MAX_LOG_SIZE
    module_log_size: int = DEFAULT_MODULE_LOG_SIZE
    metrics_enabled: bool = False
    integrations: Mapping[str, bool] = field(default_factory=dict)
    notifiers: Mapping[str, NotifierSettings] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if not 0 < self.port < 65536:
            raise ValueError(f"port must be between 1 and 65535, got {self.port}")
        if self.max_log_size <= 0 or self.module_log_size <= 0:
            raise ValueError("log size thresholds must be positive")
        object.__setattr__(self, "integrations", MappingProxyType(dict(self.integrations)))
        object.__setattr__(self, "notifiers", MappingProxyType(dict(self.notifiers)))

    @property
    def writes_to_stdout(self) -> bool:
        return self.output == STDOUT

    @property
    def enabled_integrations(self) -> list[str]:
        return sorted(name for name, enabled in self.integrations.items() if enabled)

    @classmethod
    def from_mapping(cls, raw: Mapping[str, Any]) -> "Config":
        """Build a snapshot from a decoded config document.

        Unknown keys are ignored; missing keys fall back to defaults.

        Examples
        --------
        >>> cfg = Config.from_mapping({"port": "8080", "mode": "service", "readTimeout": "2s"})
        >>> cfg.port, cfg.mode.value, cfg.read_timeout
        (8080, 'service', 2.0)
        """

        integrations_raw = _section(raw, "integrations")
        integrations = {
            str(name): _coerce_bool(value.get("enabled") if isinstance(value, Mapping) else value, False)
            for name, value in integrations_raw.items()
        }
        notifiers_raw = _section(raw, "notifiers")
        notifiers = {
            str(name): NotifierSettings.from_mapping(str(name), value)
            for name, value in notifiers_raw.items()
            if isinstance(value, Mapping)
        }
        output = raw.get("output") or raw.get("defaultLogPath") or STDOUT
        return cls(
            port=_coerce_int(raw.get("port"), 9999),
            bind_address=str(raw.get("bindAddress") or "0.0.0.0"),
            pid_file=str(raw.get("pidFile") or "logzd.pid"),
            read_timeout=parse_duration(raw.get("readTimeout"), 15.0),
            write_timeout=parse_duration(raw.get("writeTimeout"), 15.0),
            idle_timeout=parse_duration(raw.get("idleTimeout"), 60.0),
            output=str(output),
            mode=LogMode.parse(raw.get("mode")),
            level=LogLevel.from_name(str(raw.get("level") or "INFO")),
            format=OutputFormat.parse(raw.get("format")),
            max_log_size=_coerce_int(raw.get("maxLogSize"), DEFAULT_MAX_LOG_SIZE),
            module_log_size=_coerce_int(raw.get("moduleLogSize"), DEFAULT_MODULE_LOG_SIZE),
            metrics_enabled=_coerce_bool(raw.get("metricsEnabled"), False),
            integrations=integrations,
            notifiers=notifiers,
        )


__all__ = [
    "Config",
    "DEFAULT_MAX_LOG_SIZE",
    "DEFAULT_MODULE_LOG_SIZE",
    "DEFAULT_SETTINGS",
    "LogMode",
    "NotifierSettings",
    "OutputFormat",
    "STDOUT",
    "parse_duration",
]
