"""Named gauges persisted to JSON and exposed in Prometheus text format.

Purpose
-------
Track counters such as ``logs_total`` across process restarts and serve them to
scrapers, either through the daemon's ``metrics`` routes or through a
standalone listener started with :meth:`MetricsStore.enable`.

Contents
--------
* :class:`MetricsStore` - lock-guarded map mirrored to disk on every mutation.
* :data:`DEFAULT_METRICS` - counters seeded on first start.

System Role
-----------
Implements :class:`~logzd.application.ports.metrics.MetricsPort` for the
service-mode logger and backs the ``logzd metrics`` commands.

Alignment Notes
---------------
Mutation and persistence happen inside the same lock so the file on disk
always matches an in-memory state that existed. Names are validated before any
mutation; a rejected name is logged and ignored.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Iterable, Mapping

from logzd.application.ports.metrics import MetricsPort
from logzd.domain.metric import Metric, is_valid_metric_name

from .http_server import Request, Response, RoutedHTTPServer

logger = logging.getLogger(__name__)

DEFAULT_METRICS = ("logs_total", "logs_total_DEBUG", "logs_total_INFO", "logs_total_WARN", "logs_total_ERROR", "logs_total_FATAL")
_HELP_TEXT = "Custom metric from logzd"


class MetricsStore(MetricsPort):
    """Gauge registry persisted to ``path``.

    Parameters
    ----------
    path:
        JSON file holding ``{name: {"value": float, "metadata": {...}}}``. It
        is read on construction and rewritten after every mutation.
    enabled:
        Initial exposition state. Disabled stores answer scrapes with 403.
    seed_defaults:
        Create :data:`DEFAULT_METRICS` at zero when the file did not exist.
    """

    def __init__(self, path: Path, *, enabled: bool = False, seed_defaults: bool = False) -> None:
        self._path = Path(path)
        self._lock = threading.RLock()
        self._metrics: dict[str, Metric] = {}
        self._whitelist: frozenset[str] = frozenset()
        self._enabled = enabled
        self._listener: RoutedHTTPServer | None = None
        existed = self._load()
        if seed_defaults and not existed:
            with self._lock:
                for name in DEFAULT_METRICS:
                    self._metrics.setdefault(name, Metric())
                self._save()

    @property
    def path(self) -> Path:
        return self._path

    @property
    def is_enabled(self) -> bool:
        with self._lock:
            return self._enabled

    @property
    def listener(self) -> RoutedHTTPServer | None:
        return self._listener

    def _load(self) -> bool:
        if not self._path.exists():
            return False
        try:
            raw = json.loads(self._path.read_text(encoding="utf-8") or "{}")
        except (OSError, json.JSONDecodeError) as exc:
            logger.warning("Ignoring unreadable metrics file %s: %s", self._path, exc)
            return True
        if not isinstance(raw, dict):
            logger.warning("Ignoring metrics file %s: expected an object, got %s", self._path, type(raw).__name__)
            return True
        loaded: dict[str, Metric] = {}
        for name, payload in raw.items():
            if not is_valid_metric_name(name):
                logger.warning("Skipping invalid metric name %r in %s", name, self._path)
                continue
            try:
                loaded[name] = Metric.from_dict(payload)
            except (TypeError, ValueError) as exc:
                logger.warning("Skipping malformed metric %r in %s: %s", name, self._path, exc)
        with self._lock:
            self._metrics = loaded
        return True

    def _save(self) -> None:
        """Atomically rewrite the metrics file; the caller holds the lock."""
        payload = {name: metric.to_dict() for name, metric in sorted(self._metrics.items())}
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(prefix=".metrics-", suffix=".json", dir=self._path.parent)
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                json.dump(payload, handle, indent=2)
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def _persist(self) -> None:
        try:
            self._save()
        except OSError as exc:
            logger.error("Failed to persist metrics to %s: %s", self._path, exc)

    @staticmethod
    def _check_name(name: str) -> bool:
        if is_valid_metric_name(name):
            return True
        logger.warning("Invalid metric name %r; ignoring", name)
        return False

    def add_metric(self, name: str, value: float, metadata: Mapping[str, str] | None = None) -> None:
        if not self._check_name(name):
            return
        with self._lock:
            self._metrics[name] = Metric(value=float(value), metadata=dict(metadata or {}))
            self._persist()

    def remove_metric(self, name: str) -> None:
        if not self._check_name(name):
            return
        with self._lock:
            if self._metrics.pop(name, None) is None:
                logger.warning("Metric %s does not exist", name)
                return
            self._persist()

    def increment_metric(self, name: str, delta: float = 1.0) -> None:
        if not self._check_name(name):
            return
        with self._lock:
            metric = self._metrics.setdefault(name, Metric())
            metric.value += float(delta)
            self._persist()

    def set_export_whitelist(self, names: Iterable[str]) -> None:
        with self._lock:
            self._whitelist = frozenset(names)

    def get_metrics(self) -> dict[str, float]:
        """Return ``name -> value``, restricted to the export whitelist when set."""

        with self._lock:
            return {
                name: metric.value
                for name, metric in self._metrics.items()
                if not self._whitelist or name in self._whitelist
            }

    def list_metrics(self) -> dict[str, Metric]:
        with self._lock:
            return {name: Metric(metric.value, dict(metric.metadata)) for name, metric in self._metrics.items()}

    def render_exposition(self) -> str:
        """Return the text exposition of :meth:`get_metrics`.

        Examples
        --------
        >>> import tempfile, pathlib
        >>> store = MetricsStore(pathlib.Path(tempfile.mkdtemp()) / 'm.json')
        >>> store.add_metric('jobs', 2)
        >>> print(store.render_exposition(), end='')
        # HELP jobs Custom metric from logzd
        # TYPE jobs gauge
        jobs 2
        """

        lines: list[str] = []
        for name, value in sorted(self.get_metrics().items()):
            rendered = repr(int(value)) if float(value).is_integer() else repr(value)
            lines.extend((f"# HELP {name} {_HELP_TEXT}", f"# TYPE {name} gauge", f"{name} {rendered}"))
        return "\n".join(lines) + "\n" if lines else ""

    def exposition(self) -> tuple[int, str]:
        """Return ``(status, body)``: 403 when disabled, 204 when empty."""

        if not self.is_enabled:
            return 403, "Metrics are disabled\n"
        body = self.render_exposition()
        if not body:
            return 204, ""
        return 200, body

    def handle_request(self, request: Request) -> Response:
        if request.method not in {"GET", "HEAD"}:
            return Response.text(405, "Method Not Allowed\n")
        status, body = self.exposition()
        return Response(status, body.encode("utf-8"), "text/plain; version=0.0.4; charset=utf-8")

    def set_enabled(self, enabled: bool) -> None:
        with self._lock:
            self._enabled = enabled

    def enable(self, port: int, host: str = "0.0.0.0") -> RoutedHTTPServer | None:
        """Start a background listener serving ``/metrics`` on ``port``.

        Calling it while already enabled logs a warning and changes nothing.
        """

        with self._lock:
            if self._enabled and self._listener is not None:
                logger.warning("Metrics exposition is already enabled")
                return self._listener
            listener = RoutedHTTPServer(host, port, {"/metrics": self.handle_request}, name="logzd-metrics")
            listener.start()
            self._listener = listener
            self._enabled = True
        logger.info("Metrics exposition enabled on port %d", listener.address[1])
        return listener

    def disable(self, timeout: float = 5.0) -> None:
        with self._lock:
            if not self._enabled:
                logger.warning("Metrics exposition is already disabled")
                return
            self._enabled = False
            listener, self._listener = self._listener, None
        if listener is not None:
            listener.shutdown(timeout)
        logger.info("Metrics exposition disabled")


__all__ = ["DEFAULT_METRICS", "MetricsStore"]
