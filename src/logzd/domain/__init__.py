"""Domain entities and value objects used by the logging daemon."""

from __future__ import annotations

from .config import Config, LogMode, NotifierSettings, OutputFormat
from .entry import LogEntry
from .errors import (
    ArchiveError,
    ConfigurationError,
    EntryValidationError,
    LogzError,
    NotifierError,
    PidFileLockedError,
    ServiceAlreadyRunningError,
    ServiceError,
    ServiceNotRunningError,
    ShutdownTimeoutError,
)
from .levels import LogLevel
from .metric import Metric, is_valid_metric_name
from .service import ServiceState, ServiceStatus, StatusReport

__all__ = [
    "ArchiveError",
    "Config",
    "ConfigurationError",
    "EntryValidationError",
    "LogEntry",
    "LogLevel",
    "LogMode",
    "LogzError",
    "Metric",
    "NotifierError",
    "NotifierSettings",
    "OutputFormat",
    "PidFileLockedError",
    "ServiceAlreadyRunningError",
    "ServiceError",
    "ServiceNotRunningError",
    "ServiceState",
    "ServiceStatus",
    "ShutdownTimeoutError",
    "StatusReport",
    "is_valid_metric_name",
]
