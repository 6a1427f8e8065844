"""Protocols the application layer depends on."""

from __future__ import annotations

from .metrics import MetricsPort
from .notifier import BroadcastPort, NotifierPort
from .output import FormatterPort, WriterPort
from .time import ClockPort, IdProvider

__all__ = [
    "BroadcastPort",
    "ClockPort",
    "FormatterPort",
    "IdProvider",
    "MetricsPort",
    "NotifierPort",
    "WriterPort",
]
