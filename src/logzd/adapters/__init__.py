"""Concrete adapters: formatters, writers, notifiers, storage and service plumbing."""

from __future__ import annotations

from .config_manager import ConfigManager, ConfigWatcher
from .console.rich_console import RichConsoleWriter
from .daemon import ServiceDaemon, build_routes
from .formatting import JsonFormatter, TextFormatter, TextOptions
from .http_server import RoutedHTTPServer
from .identity import SystemClock, UuidProvider, system_identity
from .metrics_store import MetricsStore
from .notifier_manager import NotifierManager
from .notifiers import DesktopBusNotifier, HttpNotifier, MessageBusNotifier
from .pidfile import PidFile
from .rotation import RotationManager, RotationReport, log_directory_size
from .tail import FileTailer
from .writer import StreamWriter, open_writer

__all__ = [
    "ConfigManager",
    "ConfigWatcher",
    "DesktopBusNotifier",
    "FileTailer",
    "HttpNotifier",
    "JsonFormatter",
    "MessageBusNotifier",
    "MetricsStore",
    "NotifierManager",
    "PidFile",
    "RichConsoleWriter",
    "RotationManager",
    "RotationReport",
    "RoutedHTTPServer",
    "ServiceDaemon",
    "StreamWriter",
    "SystemClock",
    "TextFormatter",
    "TextOptions",
    "UuidProvider",
    "build_routes",
    "log_directory_size",
    "open_writer",
    "system_identity",
]
