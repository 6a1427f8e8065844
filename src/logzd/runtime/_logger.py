"""Logger façade handed to callers and to the daemon's HTTP routes."""

from __future__ import annotations

import os
import sys
import threading
from typing import Any, Callable, Mapping

from logzd.application.use_cases.process_entry import ProcessResult
from logzd.domain.levels import LogLevel

_PACKAGE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

PipelineSource = Callable[[], Callable[..., ProcessResult]]


def _trim_path(filename: str) -> str:
    parts = filename.replace("\\", "/").split("/")
    return "/".join(parts[-2:])


def find_caller(skip_dir: str = _PACKAGE_DIR) -> str:
    """Return ``file:line function`` of the first frame outside ``skip_dir``."""

    frame = sys._getframe(1)
    while frame is not None:
        filename = os.path.abspath(frame.f_code.co_filename)
        if not filename.startswith(skip_dir):
            return f"{_trim_path(filename)}:{frame.f_lineno} {frame.f_code.co_name}"
        frame = frame.f_back
    return ""


class _MetadataStore:
    """Global metadata shared by a logger and the children it derives."""

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._values: dict[str, Any] = {}

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._values[key] = value

    def snapshot(self) -> dict[str, Any]:
        with self._lock:
            return dict(self._values)


class Logger:
    """Convenience wrapper exposing level-specific methods.

    The pipeline is looked up on every call so a configuration reload takes
    effect for loggers created before it.

    Examples
    --------
    >>> calls = []
    >>> def pipeline(**kwargs):
    ...     calls.append(kwargs)
    ...     return {'ok': True}
    >>> log = Logger('svc', lambda: pipeline)
    >>> log.set_metadata('env', 'prod')
    >>> log.warn('careful', {'disk': '91%'})['ok']
    True
    >>> calls[0]['level'], calls[0]['global_metadata'], calls[0]['context']
    (<LogLevel.WARN: 3>, {'env': 'prod'}, {'disk': '91%'})
    """

    def __init__(
        self,
        source: str,
        pipeline: PipelineSource,
        *,
        label: str = "",
        tags: Mapping[str, str] | None = None,
        metadata: _MetadataStore | None = None,
    ) -> None:
        self.source = source
        self.label = label
        self._pipeline = pipeline
        self._tags = dict(tags or {})
        self._metadata = metadata or _MetadataStore()

    def set_metadata(self, key: str, value: Any) -> None:
        """Attach ``key`` to every subsequent entry; per-call context wins on conflicts."""
        self._metadata.set(key, value)

    @property
    def metadata(self) -> dict[str, Any]:
        return self._metadata.snapshot()

    def with_context(self, label: str) -> "Logger":
        return Logger(self.source, self._pipeline, label=label, tags=self._tags, metadata=self._metadata)

    def with_tags(self, **tags: str) -> "Logger":
        return Logger(self.source, self._pipeline, label=self.label, tags={**self._tags, **tags}, metadata=self._metadata)

    def log(self, level: LogLevel | str, message: str, context: Mapping[str, Any] | None = None) -> ProcessResult:
        resolved = level if isinstance(level, LogLevel) else LogLevel.from_name(level)
        return self._pipeline()(
            source=self.source,
            level=resolved,
            message=message,
            context=context,
            global_metadata=self._metadata.snapshot(),
            label=self.label,
            tags=self._tags,
            caller=find_caller(),
        )

    def debug(self, message: str, context: Mapping[str, Any] | None = None) -> ProcessResult:
        return self.log(LogLevel.DEBUG, message, context)

    def info(self, message: str, context: Mapping[str, Any] | None = None) -> ProcessResult:
        return self.log(LogLevel.INFO, message, context)

    def warn(self, message: str, context: Mapping[str, Any] | None = None) -> ProcessResult:
        return self.log(LogLevel.WARN, message, context)

    warning = warn

    def error(self, message: str, context: Mapping[str, Any] | None = None) -> ProcessResult:
        return self.log(LogLevel.ERROR, message, context)

    def fatal(self, message: str, context: Mapping[str, Any] | None = None) -> ProcessResult:
        """Log at FATAL; the pipeline terminates the process afterwards."""
        return self.log(LogLevel.FATAL, message, context)


__all__ = ["Logger", "find_caller"]
