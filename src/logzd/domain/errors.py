"""Exception hierarchy shared by every layer of the daemon."""

from __future__ import annotations


class LogzError(Exception):
    """Base class for errors raised by logzd."""


class EntryValidationError(LogzError, ValueError):
    """Raised when a :class:`~logzd.domain.entry.LogEntry` misses a required field."""


class ConfigurationError(LogzError):
    """Raised when the configuration file cannot be read or parsed."""


class NotifierError(LogzError):
    """Raised by a notifier when its transport rejects or fails a delivery."""

    def __init__(self, notifier: str, message: str) -> None:
        super().__init__(f"{notifier}: {message}")
        self.notifier = notifier


class ArchiveError(LogzError):
    """Raised when rotation fails to build an archive or truncate a file."""


class ServiceError(LogzError):
    """Base class for background-service lifecycle failures."""


class ServiceAlreadyRunningError(ServiceError):
    """Raised by ``start`` when a pid file already exists."""


class PidFileLockedError(ServiceError):
    """Raised when another process holds the pid-file lock."""


class ServiceNotRunningError(ServiceError):
    """Raised by ``stop`` when no readable pid file exists."""


class ShutdownTimeoutError(ServiceError):
    """Raised when in-flight requests do not drain within the grace window."""


__all__ = [
    "ArchiveError",
    "ConfigurationError",
    "EntryValidationError",
    "LogzError",
    "NotifierError",
    "PidFileLockedError",
    "ServiceAlreadyRunningError",
    "ServiceError",
    "ServiceNotRunningError",
    "ShutdownTimeoutError",
]
