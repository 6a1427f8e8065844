"""Domain value object describing one structured log event.

Purpose
-------
Provide an immutable, serialisable representation of log entries travelling
from the logger through writers and notifiers.

Contents
--------
* :class:`LogEntry` dataclass with validation and (de)serialisation helpers.
* Utility function ``_ensure_aware`` for timestamp normalisation.

System Role
-----------
Sits in the domain layer so formatters, notifiers and the HTTP receive route
all manipulate the same pure data object and share one wire format.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field, replace
from datetime import datetime, timezone
from typing import Any

from .errors import EntryValidationError
from .levels import LogLevel


def _ensure_aware(ts: datetime) -> datetime:
    """Treat naive timestamps as UTC and normalise aware ones to UTC."""
    if ts.tzinfo is None or ts.tzinfo.utcoffset(ts) is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


@dataclass(slots=True, frozen=True)
class LogEntry:
    """Immutable log entry produced by the logger pipeline.

    Attributes
    ----------
    timestamp:
        Creation time, normalised to UTC. ``None`` only for hand-built entries
        that are about to fail :meth:`validate`.
    level:
        :class:`LogLevel` of the entry.
    message:
        Caller-supplied message.
    source:
        Name of the logger that produced the entry.
    context:
        Free-form context label (for example the subsystem or request scope).
    tags:
        String labels attached by the logger.
    metadata:
        Global logger metadata merged with per-call context.
    pid, hostname:
        Identity of the emitting process.
    severity:
        Numeric severity mirroring ``level``.
    trace_id:
        Identifier correlating the entry across sinks.
    caller:
        ``file:line function`` of the call site.
    """

    timestamp: datetime | None
    level: LogLevel | None
    message: str
    source: str = ""
    context: str = ""
    tags: dict[str, str] = field(default_factory=dict)
    metadata: dict[str, Any] = field(default_factory=dict)
    pid: int = 0
    hostname: str = ""
    severity: int | None = None
    trace_id: str = ""
    caller: str = ""

    def __post_init__(self) -> None:
        if self.timestamp is not None:
            object.__setattr__(self, "timestamp", _ensure_aware(self.timestamp))
        if self.severity is None:
            object.__setattr__(self, "severity", self.level.severity if self.level is not None else 0)
        object.__setattr__(self, "tags", dict(self.tags))
        object.__setattr__(self, "metadata", dict(self.metadata))

    def validate(self) -> None:
        """Raise :class:`EntryValidationError` naming the first missing field.

        Examples
        --------
        >>> LogEntry(None, LogLevel.INFO, "msg").validate()
        Traceback (most recent call last):
        ...
        logzd.domain.errors.EntryValidationError: timestamp is required
        """

        if self.timestamp is None:
            raise EntryValidationError("timestamp is required")
        if self.level is None:
            raise EntryValidationError("level is required")
        if not self.message or not self.message.strip():
            raise EntryValidationError("message is required")
        if not self.severity or self.severity <= 0:
            raise EntryValidationError("severity must be greater than zero")

    @property
    def is_valid(self) -> bool:
        try:
            self.validate()
        except EntryValidationError:
            return False
        return True

    def to_dict(self) -> dict[str, Any]:
        """Serialize the entry using the wire names, skipping empty optionals."""

        data: dict[str, Any] = {
            "timestamp": self.timestamp.isoformat() if self.timestamp is not None else None,
            "level": self.level.name if self.level is not None else None,
            "message": self.message,
            "severity": self.severity,
        }
        optional = {
            "source": self.source,
            "context": self.context,
            "tags": dict(self.tags),
            "metadata": dict(self.metadata),
            "pid": self.pid,
            "hostname": self.hostname,
            "trace_id": self.trace_id,
            "caller": self.caller,
        }
        data.update({key: value for key, value in optional.items() if value})
        return data

    def to_json(self, *, indent: int | None = None) -> str:
        """Serialize the entry to JSON with sorted keys for deterministic output."""

        return json.dumps(self.to_dict(), sort_keys=True, indent=indent, default=str)

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "LogEntry":
        """Reconstruct an entry from :meth:`to_dict` output."""

        raw_ts = payload.get("timestamp")
        raw_level = payload.get("level")
        return cls(
            timestamp=datetime.fromisoformat(raw_ts) if raw_ts else None,
            level=LogLevel.from_name(raw_level) if raw_level else None,
            message=payload.get("message", ""),
            source=payload.get("source", ""),
            context=payload.get("context", ""),
            tags=payload.get("tags", {}),
            metadata=payload.get("metadata", {}),
            pid=int(payload.get("pid", 0)),
            hostname=payload.get("hostname", ""),
            severity=payload.get("severity"),
            trace_id=payload.get("trace_id", ""),
            caller=payload.get("caller", ""),
        )

    def replace(self, **changes: Any) -> "LogEntry":
        """Return a copied entry with ``changes`` applied."""

        return replace(self, **changes)

    def __str__(self) -> str:
        stamp = self.timestamp.isoformat() if self.timestamp is not None else "-"
        label = self.level.name if self.level is not None else "UNSET"
        return f"[{stamp}] {label} - {self.message}"


__all__ = ["LogEntry"]
