"""Notifier variants selected by the ``type`` key of a notifier config."""

from __future__ import annotations

from .base import BaseNotifier
from .bus import MessageBusNotifier
from .desktop import DesktopBusNotifier
from .http import HttpNotifier

__all__ = ["BaseNotifier", "DesktopBusNotifier", "HttpNotifier", "MessageBusNotifier"]
