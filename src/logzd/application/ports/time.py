"""Ports for time and identifier providers."""

from __future__ import annotations

from datetime import datetime
from typing import Protocol, runtime_checkable


@runtime_checkable
class ClockPort(Protocol):
    """Provide the current timestamp."""

    def now(self) -> datetime: ...


@runtime_checkable
class IdProvider(Protocol):
    """Generate trace identifiers for log entries."""

    def __call__(self) -> str: ...


__all__ = ["ClockPort", "IdProvider"]
