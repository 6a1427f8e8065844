"""Application use cases."""

from __future__ import annotations

from .broadcast import broadcast_entry
from .process_entry import LOGS_TOTAL, ProcessIdentity, create_process_log_entry
from .shutdown import create_shutdown

__all__ = ["LOGS_TOTAL", "ProcessIdentity", "broadcast_entry", "create_process_log_entry", "create_shutdown"]
