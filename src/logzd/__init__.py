"""Public package surface of the logzd structured-logging daemon.

Library callers build an :class:`~logzd.runtime.AppContext` with
:func:`build_app_context` and log through its loggers; :func:`get_logger`
reaches the context installed by an entry point.
"""

from __future__ import annotations

from .domain import Config, LogEntry, LogLevel, LogMode, LogzError
from .runtime import AppContext, Logger, build_app_context, current_context


def get_logger(source: str) -> Logger:
    """Return a logger named ``source`` bound to the installed context.

    Raises
    ------
    RuntimeError
        When no context has been installed with :func:`logzd.runtime.set_context`.
    """

    return current_context().get_logger(source)


__all__ = [
    "AppContext",
    "Config",
    "LogEntry",
    "LogLevel",
    "LogMode",
    "Logger",
    "LogzError",
    "build_app_context",
    "get_logger",
]
