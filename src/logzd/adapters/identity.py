"""System clock, trace-id provider and process identity."""

from __future__ import annotations

import os
import socket
import uuid
from datetime import datetime, timezone

from logzd.application.ports.time import ClockPort, IdProvider
from logzd.application.use_cases.process_entry import ProcessIdentity


class SystemClock(ClockPort):
    """Return timezone-aware UTC timestamps."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class UuidProvider(IdProvider):
    """Produce 32-character hexadecimal trace identifiers."""

    def __call__(self) -> str:
        return uuid.uuid4().hex


def system_identity() -> ProcessIdentity:
    try:
        hostname = socket.gethostname()
    except OSError:
        hostname = "unknown"
    return ProcessIdentity(pid=os.getpid(), hostname=hostname)


__all__ = ["SystemClock", "UuidProvider", "system_identity"]
