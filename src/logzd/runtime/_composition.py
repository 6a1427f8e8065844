"""Runtime composition wiring domain, application and adapters.

Purpose
-------
Build the :class:`AppContext` that owns every live collaborator (config
manager, notifier registry, metrics store, writer and logger pipeline) and
rebuild the pipeline whenever a new configuration snapshot is published.

Contents
--------
* :class:`AppContext` - explicit application context passed to the daemon and CLI.
* :func:`build_app_context` - composition root.

System Role
-----------
Anchors the clean-architecture boundary: nothing inside ``domain`` or
``application`` holds module-level state; the context built here is passed
down explicitly.
"""

from __future__ import annotations

import dataclasses
import logging
import os
import threading
from pathlib import Path
from typing import Any, Callable, Mapping

from logzd.adapters.config_manager import ConfigManager, get_metrics_path, log_directory, resolve_output
from logzd.adapters.formatting import TextOptions
from logzd.adapters.identity import SystemClock, UuidProvider, system_identity
from logzd.adapters.metrics_store import MetricsStore
from logzd.adapters.notifier_manager import NotifierManager
from logzd.adapters.rotation import RotationManager, RotationReport
from logzd.adapters.writer import open_writer
from logzd.application.ports import ClockPort, IdProvider, WriterPort
from logzd.application.use_cases.process_entry import ProcessIdentity, create_process_log_entry
from logzd.application.use_cases.shutdown import create_shutdown
from logzd.domain.config import Config, LogMode, OutputFormat

from ._logger import Logger, _MetadataStore

logger = logging.getLogger(__name__)

PROMETHEUS_ENV_VAR = "LOGZ_PROMETHEUS_ENABLED"


def _apply_overrides(config: Config, overrides: Mapping[str, Any]) -> Config:
    if not overrides:
        return config
    return dataclasses.replace(config, **overrides)


class AppContext:
    """Live collaborators for one process.

    ``apply_config`` is subscribed to the config manager; it swaps the writer
    and pipeline references in one assignment each, so concurrent logger calls
    see either the old or the new wiring.
    """

    def __init__(
        self,
        *,
        config_manager: ConfigManager,
        notifiers: NotifierManager,
        metrics: MetricsStore,
        clock: ClockPort | None = None,
        id_provider: IdProvider | None = None,
        identity: ProcessIdentity | None = None,
        overrides: Mapping[str, Any] | None = None,
        terminate: Callable[[int], None] | None = None,
        text_options: TextOptions | None = None,
        force_metrics: bool = False,
    ) -> None:
        self.config_manager = config_manager
        self.notifiers = notifiers
        self.metrics = metrics
        self._clock = clock or SystemClock()
        self._id_provider = id_provider or UuidProvider()
        self._identity = identity or system_identity()
        self._overrides = dict(overrides or {})
        self._terminate = terminate
        self._text_options = text_options
        self._force_metrics = force_metrics
        self._lock = threading.RLock()
        self._writer: WriterPort | None = None
        self._pipeline: Callable[..., Any] | None = None
        self._config: Config | None = None
        self._metadata = _MetadataStore()
        self._closed = False
        self.logger = self.get_logger("logzd")

    @property
    def config(self) -> Config:
        if self._config is None:
            raise RuntimeError("AppContext.apply_config() has not run yet")
        return self._config

    @property
    def writer(self) -> WriterPort | None:
        return self._writer

    def get_logger(self, source: str) -> Logger:
        """Return a logger named ``source`` sharing this context's global metadata."""
        return Logger(source, self._current_pipeline, metadata=self._metadata)

    def _current_pipeline(self) -> Callable[..., Any]:
        pipeline = self._pipeline
        if pipeline is None:
            raise RuntimeError("logging pipeline is not configured")
        return pipeline

    def rotation_manager(self) -> RotationManager:
        return RotationManager(log_directory(self.config))

    def rotate(self) -> RotationReport:
        return self.rotation_manager().check_log_size(self.config)

    def _rotate_quietly(self) -> None:
        report = self.rotate()
        if report.changed:
            logger.info("Rotation after write: archive=%s rotated=%s", report.archive, report.rotated)

    def apply_config(self, raw: Config) -> None:
        """Rebuild writer, notifier registry and pipeline for ``raw``."""

        config = _apply_overrides(raw, self._overrides)
        previous_writer: WriterPort | None
        with self._lock:
            if self._closed:
                return
            output = resolve_output(config)
            writer = self._writer
            if writer is None or self._config is None or _output_changed(self._config, config):
                writer = open_writer(output, config.format, options=self._text_options)
            previous_writer = self._writer if writer is not self._writer else None
            after_write = None
            if config.mode is LogMode.STANDALONE and not config.writes_to_stdout:
                after_write = self._rotate_quietly
            service = config.mode is LogMode.SERVICE
            if service:
                self.notifiers.update_from_config(config)
                self.metrics.set_enabled(self._force_metrics or config.metrics_enabled)
            pipeline = create_process_log_entry(
                writer=writer,
                min_level=config.level,
                mode=config.mode,
                clock=self._clock,
                id_provider=self._id_provider,
                identity=self._identity,
                notifiers=self.notifiers if service else None,
                metrics=self.metrics if service else None,
                after_write=after_write,
                terminate=self._terminate,
            )
            self._config = config
            self._writer = writer
            self._pipeline = pipeline
        if previous_writer is not None:
            previous_writer.close()

    def close(self) -> None:
        with self._lock:
            if self._closed:
                return
            self._closed = True
            writer = self._writer
        closeables = [self.notifiers]
        if writer is not None:
            closeables.append(writer)
        shutdown = create_shutdown(stop_watcher=self.config_manager.stop_watching, closeables=closeables)
        shutdown()
        self.config_manager.unsubscribe(self.apply_config)


def _output_changed(old: Config, new: Config) -> bool:
    return old.output != new.output or old.format is not new.format


def build_app_context(
    *,
    config_path: Path | None = None,
    mode: LogMode | None = None,
    output: str | None = None,
    output_format: OutputFormat | None = None,
    metrics_path: Path | None = None,
    env: Mapping[str, str] | None = None,
    terminate: Callable[[int], None] | None = None,
    watch: bool = False,
) -> AppContext:
    """Load the configuration and assemble a ready-to-use :class:`AppContext`.

    Keyword overrides (``mode``, ``output``, ``output_format``) apply on top of
    every snapshot, including reloaded ones.

    Raises
    ------
    ConfigurationError
        When the configuration file cannot be read or parsed.
    """

    source = os.environ if env is None else env
    manager = ConfigManager(config_path, env=source)
    config = manager.load_config()
    overrides: dict[str, Any] = {}
    if mode is not None:
        overrides["mode"] = mode
    if output is not None:
        overrides["output"] = output
    if output_format is not None:
        overrides["format"] = output_format
    prometheus = source.get(PROMETHEUS_ENV_VAR, "").strip().lower() == "true"
    metrics = MetricsStore(
        metrics_path or get_metrics_path(source),
        enabled=prometheus or config.metrics_enabled,
        seed_defaults=True,
    )
    context = AppContext(
        config_manager=manager,
        notifiers=NotifierManager(),
        metrics=metrics,
        overrides=overrides,
        terminate=terminate,
        text_options=TextOptions.from_env(source),
        force_metrics=prometheus,
    )
    context.apply_config(config)
    manager.subscribe(context.apply_config)
    if watch:
        manager.watch()
    return context


__all__ = ["AppContext", "build_app_context"]
