"""Use case orchestrating the processing pipeline for a single log entry.

Purpose
-------
Tie together level filtering, entry construction, validation, persistence,
notifier fan-out and counters, in that order, for every logger call.

Contents
--------
* :class:`ProcessIdentity` - pid/hostname stamped on every entry.
* :func:`create_process_log_entry` factory returning the runtime callable.

System Role
-----------
Application-layer orchestrator invoked by :class:`logzd.runtime.Logger`. The
composition root rebuilds the callable whenever a new configuration snapshot
is published, so one callable always sees one consistent configuration.

Alignment Notes
---------------
Only ``service`` mode reaches notifiers and metrics; ``standalone`` stops after
the writer. A FATAL entry terminates the process once it has been written and
dispatched.
"""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass
from typing import Any

from logzd.application.ports import BroadcastPort, ClockPort, IdProvider, MetricsPort, WriterPort
from logzd.domain.config import LogMode
from logzd.domain.entry import LogEntry
from logzd.domain.errors import EntryValidationError
from logzd.domain.levels import LogLevel

logger = logging.getLogger(__name__)

ProcessResult = dict[str, Any]
Diagnostic = Callable[[str, dict[str, Any]], None]

LOGS_TOTAL = "logs_total"


@dataclass(slots=True, frozen=True)
class ProcessIdentity:
    """Process identity stamped on every entry."""

    pid: int
    hostname: str


def create_process_log_entry(
    *,
    writer: WriterPort,
    min_level: LogLevel,
    mode: LogMode,
    clock: ClockPort,
    id_provider: IdProvider,
    identity: ProcessIdentity,
    notifiers: BroadcastPort | None = None,
    metrics: MetricsPort | None = None,
    after_write: Callable[[], None] | None = None,
    terminate: Callable[[int], None] | None = None,
    diagnostic: Diagnostic | None = None,
) -> "_ProcessPipeline":
    """Build the orchestrator capturing the current dependency wiring.

    Parameters
    ----------
    writer:
        Adapter implementing :class:`WriterPort`; its failures are logged and
        never reach the caller.
    min_level:
        Entries below this severity are dropped before any work happens.
    mode:
        :class:`LogMode` deciding whether notifiers and metrics run.
    clock, id_provider, identity:
        Providers for timestamps, trace identifiers and pid/hostname.
    notifiers:
        Fan-out target used in service mode.
    metrics:
        Counter sink used in service mode.
    after_write:
        Hook run after every successful write (rotation checks).
    terminate:
        Called with exit status ``1`` after a FATAL entry; defaults to
        raising :class:`SystemExit`.
    diagnostic:
        Optional callback invoked with pipeline milestones.

    Examples
    --------
    >>> from datetime import datetime, timezone
    >>> class ListWriter:
    ...     def __init__(self):
    ...         self.entries = []
    ...     def write(self, entry):
    ...         self.entries.append(entry)
    ...     def close(self):
    ...         pass
    >>> class Clock:
    ...     def now(self):
    ...         return datetime(2025, 9, 30, 12, 0, tzinfo=timezone.utc)
    >>> writer = ListWriter()
    >>> process = create_process_log_entry(
    ...     writer=writer,
    ...     min_level=LogLevel.INFO,
    ...     mode=LogMode.STANDALONE,
    ...     clock=Clock(),
    ...     id_provider=lambda: 'trace-1',
    ...     identity=ProcessIdentity(pid=42, hostname='host'),
    ... )
    >>> process(source='svc', level=LogLevel.DEBUG, message='hidden')['reason']
    'below_threshold'
    >>> result = process(source='svc', level=LogLevel.INFO, message='hello', context={'k': 'v'})
    >>> result['ok'], result['trace_id'], writer.entries[0].metadata
    (True, 'trace-1', {'k': 'v'})
    """

    toolkit = _PipelineToolkit(
        writer=writer,
        min_level=min_level,
        mode=mode,
        clock=clock,
        id_provider=id_provider,
        identity=identity,
        notifiers=notifiers,
        metrics=metrics,
        after_write=after_write,
        terminate=terminate or _exit_process,
        emit=diagnostic or _noop_diagnostic,
    )
    return _ProcessPipeline(toolkit)


@dataclass(frozen=True)
class _PipelineToolkit:
    writer: WriterPort
    min_level: LogLevel
    mode: LogMode
    clock: ClockPort
    id_provider: IdProvider
    identity: ProcessIdentity
    notifiers: BroadcastPort | None
    metrics: MetricsPort | None
    after_write: Callable[[], None] | None
    terminate: Callable[[int], None]
    emit: Diagnostic


class _ProcessPipeline:
    """Callable applying the pipeline stages to one logger call."""

    def __init__(self, toolkit: _PipelineToolkit) -> None:
        self._toolkit = toolkit

    @property
    def min_level(self) -> LogLevel:
        return self._toolkit.min_level

    @property
    def mode(self) -> LogMode:
        return self._toolkit.mode

    @property
    def writer(self) -> WriterPort:
        return self._toolkit.writer

    def __call__(
        self,
        *,
        source: str,
        level: LogLevel,
        message: str,
        context: Mapping[str, Any] | None = None,
        global_metadata: Mapping[str, Any] | None = None,
        label: str = "",
        tags: Mapping[str, str] | None = None,
        caller: str = "",
    ) -> ProcessResult:
        toolkit = self._toolkit
        if not toolkit.min_level.allows(level):
            return {"ok": False, "reason": "below_threshold"}

        entry = _craft_entry(toolkit, source, level, message, context, global_metadata, label, tags, caller)
        try:
            entry.validate()
        except EntryValidationError as exc:
            logger.warning("Dropping invalid log entry from %s: %s", source, exc)
            toolkit.emit("entry_invalid", {"source": source, "error": str(exc)})
            return {"ok": False, "reason": "invalid_entry", "error": str(exc)}

        written = _write_entry(toolkit, entry)
        notifier_errors = _dispatch_entry(toolkit, entry)
        result: ProcessResult = {
            "ok": written,
            "trace_id": entry.trace_id,
            "notifier_errors": notifier_errors,
        }
        if not written:
            result["reason"] = "writer_error"
        if level is LogLevel.FATAL:
            toolkit.emit("fatal", {"trace_id": entry.trace_id, "source": source})
            toolkit.terminate(1)
        return result


def _craft_entry(
    toolkit: _PipelineToolkit,
    source: str,
    level: LogLevel,
    message: str,
    context: Mapping[str, Any] | None,
    global_metadata: Mapping[str, Any] | None,
    label: str,
    tags: Mapping[str, str] | None,
    caller: str,
) -> LogEntry:
    metadata: dict[str, Any] = dict(global_metadata or {})
    metadata.update(context or {})
    return LogEntry(
        timestamp=toolkit.clock.now(),
        level=level,
        message=message,
        source=source,
        context=label,
        tags=dict(tags or {}),
        metadata=metadata,
        pid=toolkit.identity.pid,
        hostname=toolkit.identity.hostname,
        trace_id=toolkit.id_provider(),
        caller=caller,
    )


def _write_entry(toolkit: _PipelineToolkit, entry: LogEntry) -> bool:
    try:
        toolkit.writer.write(entry)
    except Exception as exc:  # noqa: BLE001
        logger.error("Writer failed for entry %s", entry.trace_id, exc_info=exc)
        toolkit.emit("writer_error", {"trace_id": entry.trace_id, "exception": repr(exc)})
        return False
    if toolkit.after_write is not None:
        try:
            toolkit.after_write()
        except Exception as exc:  # noqa: BLE001
            logger.error("Post-write hook failed", exc_info=exc)
    return True


def _dispatch_entry(toolkit: _PipelineToolkit, entry: LogEntry) -> list[tuple[str, str]]:
    if toolkit.mode is not LogMode.SERVICE:
        return []
    errors: list[tuple[str, str]] = []
    if toolkit.notifiers is not None:
        errors = [(name, str(exc)) for name, exc in toolkit.notifiers.broadcast(entry)]
        if errors:
            toolkit.emit("notifier_errors", {"trace_id": entry.trace_id, "errors": errors})
    if toolkit.metrics is not None:
        level = entry.level
        toolkit.metrics.increment_metric(LOGS_TOTAL)
        if level is not None:
            toolkit.metrics.increment_metric(f"{LOGS_TOTAL}_{level.name}")
    return errors


def _exit_process(status: int) -> None:
    raise SystemExit(status)


def _noop_diagnostic(name: str, payload: dict[str, Any]) -> None:
    return None


__all__ = ["LOGS_TOTAL", "ProcessIdentity", "ProcessResult", "create_process_log_entry"]
