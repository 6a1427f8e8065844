"""Background-service lifecycle: start, run, stop, status and HTTP routes.

Purpose
-------
Run logzd as a single detached instance guarded by a locked pid file, expose
``health``/``metrics``/``receive`` routes for every enabled integration, apply
rotation periodically, and shut down within a bounded grace window.

Contents
--------
* :func:`build_routes` - route table for a configuration snapshot.
* :class:`ServiceDaemon` - lifecycle state machine.

System Role
-----------
``start``/``stop``/``status`` run in the short-lived CLI process; ``run`` is
the body of the spawned child (``logzd service spawn``).

Alignment Notes
---------------
The pid file is the only source of truth for "a service is running". A stale
pid file left by a crashed child is reported, never reclaimed automatically.
"""

from __future__ import annotations

import json
import logging
import os
import signal
import subprocess
import sys
import threading
import time
from pathlib import Path
from typing import TYPE_CHECKING, Any, Callable

import psutil

from logzd.domain.config import Config
from logzd.domain.errors import LogzError, ServiceError, ServiceNotRunningError, ShutdownTimeoutError
from logzd.domain.levels import LogLevel
from logzd.domain.service import ServiceState, ServiceStatus, StatusReport, can_transition

from .config_manager import ConfigManager, get_pid_path
from .http_server import Handler, PayloadTooLarge, Request, Response, RoutedHTTPServer
from .metrics_store import MetricsStore
from .pidfile import PidFile

if TYPE_CHECKING:
    from logzd.runtime import AppContext

logger = logging.getLogger(__name__)

MAX_RECEIVE_BYTES = 1 << 20
DEFAULT_SHUTDOWN_TIMEOUT = 5.0
DEFAULT_HOUSEKEEPING_INTERVAL = 30.0

Spawner = Callable[[Path, int], int]
LogCallable = Callable[..., Any]


def spawn_command(config_path: Path, port: int) -> list[str]:
    """Return the argv of the detached child; ``--config`` belongs to the root group."""
    return [sys.executable, "-m", "logzd", "--config", str(config_path), "service", "spawn", "--port", str(port)]


def _spawn_child(config_path: Path, port: int) -> int:  # pragma: no cover - spawns a real process
    """Launch ``python -m logzd service spawn`` in a new session and return its pid."""
    process = subprocess.Popen(
        spawn_command(config_path, port),
        stdin=subprocess.DEVNULL,
        start_new_session=True,
        close_fds=True,
    )
    return process.pid


def _health_handler(started_at: float) -> Handler:
    def handle(request: Request) -> Response:
        if request.method not in {"GET", "HEAD"}:
            return Response.text(405, "Method Not Allowed\n")
        uptime = int(time.monotonic() - started_at)
        return Response.text(200, f"OK\nUptime: {uptime}s\n")

    return handle


def _receive_handler(source: str, log: LogCallable) -> Handler:
    """Accept ``{"message": ..., "level": ..., "metadata": {...}}`` callbacks.

    Remote FATAL entries are recorded as ERROR so a caller cannot stop the daemon.
    """

    def handle(request: Request) -> Response:
        if request.method != "POST":
            return Response.text(405, "Method Not Allowed\n")
        try:
            body = request.read_body(MAX_RECEIVE_BYTES)
        except PayloadTooLarge:
            return Response.text(413, "Payload too large\n")
        try:
            payload = json.loads(body or b"null")
        except (UnicodeDecodeError, json.JSONDecodeError):
            return Response.text(400, "Invalid JSON payload\n")
        if not isinstance(payload, dict) or not str(payload.get("message") or "").strip():
            return Response.text(400, "Missing 'message' in payload\n")
        try:
            level = LogLevel.from_name(str(payload.get("level") or "INFO"))
        except ValueError:
            level = LogLevel.INFO
        if level is LogLevel.FATAL:
            level = LogLevel.ERROR
        metadata = payload.get("metadata") if isinstance(payload.get("metadata"), dict) else {}
        log(level, str(payload["message"]), {**metadata, "callback": source})
        return Response.json(200, json.dumps({"status": "success", "message": "Callback processed"}))

    return handle


def build_routes(config: Config, metrics: MetricsStore, log: LogCallable, *, started_at: float | None = None) -> dict[str, Handler]:
    """Return the route table for ``config``'s enabled integrations.

    Examples
    --------
    >>> import tempfile, pathlib
    >>> cfg = Config(integrations={"prometheus": True, "grafana": False})
    >>> store = MetricsStore(pathlib.Path(tempfile.mkdtemp()) / 'm.json')
    >>> sorted(build_routes(cfg, store, lambda *a: None))
    ['/health', '/metrics', '/prometheus/health', '/prometheus/metrics', '/prometheus/receive']
    """

    health = _health_handler(time.monotonic() if started_at is None else started_at)
    routes: dict[str, Handler] = {"/health": health, "/metrics": metrics.handle_request}
    for name in config.enabled_integrations:
        routes[f"/{name}/health"] = health
        routes[f"/{name}/metrics"] = metrics.handle_request
        routes[f"/{name}/receive"] = _receive_handler(name, log)
    return routes


class ServiceDaemon:
    """Lifecycle of the single background instance.

    Parameters
    ----------
    config_manager:
        Source of the configuration snapshot and the config path passed to
        the spawned child.
    pid_path:
        Overrides :func:`get_pid_path`.
    spawner:
        ``(config_path, port) -> pid``; defaults to launching
        ``python -m logzd service spawn``.
    kill, sleep, process_exists:
        Injectable process primitives for tests.
    grace:
        Seconds ``stop`` waits after signalling before removing the pid file.
    """

    def __init__(
        self,
        config_manager: ConfigManager,
        *,
        pid_path: Path | None = None,
        spawner: Spawner | None = None,
        kill: Callable[[int, int], None] = os.kill,
        sleep: Callable[[float], None] = time.sleep,
        process_exists: Callable[[int], bool] = psutil.pid_exists,
        grace: float = 1.0,
        housekeeping_interval: float = DEFAULT_HOUSEKEEPING_INTERVAL,
    ) -> None:
        self._config_manager = config_manager
        self._pid_path = pid_path
        self._spawner = spawner or _spawn_child
        self._kill = kill
        self._sleep = sleep
        self._process_exists = process_exists
        self._grace = grace
        self._housekeeping_interval = housekeeping_interval
        self._status = ServiceStatus.STOPPED
        self._status_lock = threading.Lock()
        self._stop_event = threading.Event()
        self._server: RoutedHTTPServer | None = None

    @property
    def status_state(self) -> ServiceStatus:
        with self._status_lock:
            return self._status

    @property
    def server(self) -> RoutedHTTPServer | None:
        return self._server

    def _transition(self, target: ServiceStatus) -> None:
        with self._status_lock:
            if not can_transition(self._status, target):
                raise ServiceError(f"illegal service transition {self._status.value} -> {target.value}")
            logger.debug("Service %s -> %s", self._status.value, target.value)
            self._status = target

    def pid_file(self) -> PidFile:
        path = self._pid_path or get_pid_path(self._config_manager.current())
        return PidFile(path)

    def start(self, port: int | None = None) -> ServiceState:
        """Spawn the background child and record it in the pid file.

        Raises
        ------
        ServiceAlreadyRunningError
            When a pid file already exists; nothing is written.
        PidFileLockedError
            When another process holds the pid-file lock.
        ServiceError
            When the child cannot be spawned.
        """

        config = self._config_manager.current()
        resolved_port = port if port is not None else config.port
        pid_file = self.pid_file()
        pid_file.acquire()
        try:
            pid = self._spawner(self._config_manager.path, resolved_port)
        except (OSError, subprocess.SubprocessError) as exc:
            pid_file.remove()
            raise ServiceError(f"failed to spawn service: {exc}") from exc
        state = ServiceState(pid=pid, port=resolved_port, pid_path=pid_file.path)
        pid_file.write(state)
        logger.info("Service started (pid %d, port %d)", pid, resolved_port)
        return state

    def stop(self) -> ServiceState:
        """Signal the recorded process with SIGTERM and remove the pid file.

        Raises
        ------
        ServiceNotRunningError
            When no readable pid file exists; no process is signalled.
        ServiceError
            When the recorded process does not exist (the pid file is kept).
        """

        pid_file = self.pid_file()
        state = pid_file.read()
        if state is None:
            raise ServiceNotRunningError(f"service is not running (no pid file at {pid_file.path})")
        try:
            self._kill(state.pid, signal.SIGTERM)
        except ProcessLookupError as exc:
            raise ServiceError(f"failed to find process {state.pid}; remove stale pid file {pid_file.path}") from exc
        except PermissionError as exc:
            raise ServiceError(f"not allowed to signal process {state.pid}") from exc
        self._sleep(self._grace)
        pid_file.remove()
        logger.info("Service stopped (pid %d)", state.pid)
        return state

    def status(self) -> StatusReport:
        state = self.pid_file().read()
        if state is None:
            return StatusReport(running=False)
        return StatusReport(running=True, state=state, alive=bool(self._process_exists(state.pid)))

    def request_stop(self) -> None:
        self._stop_event.set()

    def _install_signal_handlers(self) -> None:
        if threading.current_thread() is not threading.main_thread():
            return

        def _handle(signum: int, _frame: Any) -> None:
            logger.info("Received %s; shutting down", signal.Signals(signum).name)
            self._stop_event.set()

        signal.signal(signal.SIGTERM, _handle)
        signal.signal(signal.SIGINT, _handle)

    def run(self, context: "AppContext", *, port: int | None = None, shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        """Serve until :meth:`request_stop` or SIGINT/SIGTERM, then shut down."""

        self._transition(ServiceStatus.STARTING)
        self._stop_event.clear()
        config = context.config_manager.current()
        routes = build_routes(config, context.metrics, context.logger.log)
        bind_port = port if port is not None else config.port
        try:
            self._server = RoutedHTTPServer(
                config.bind_address,
                bind_port,
                routes,
                read_timeout=config.read_timeout,
                name="logzd-service",
            )
        except OSError as exc:
            self._transition(ServiceStatus.STOPPED)
            raise ServiceError(f"cannot bind {config.bind_address}:{bind_port}: {exc}") from exc
        self._install_signal_handlers()
        self._server.start()
        context.config_manager.watch()
        self._transition(ServiceStatus.RUNNING)
        context.logger.info("logzd service running", {"routes": ",".join(self._server.routes)})
        try:
            while not self._stop_event.wait(self._housekeeping_interval):
                self._housekeeping(context)
        finally:
            self.shutdown(context, timeout=shutdown_timeout)

    def _housekeeping(self, context: "AppContext") -> None:
        try:
            context.rotate()
        except LogzError as exc:
            logger.error("Housekeeping rotation failed: %s", exc)

    def shutdown(self, context: "AppContext", *, timeout: float = DEFAULT_SHUTDOWN_TIMEOUT) -> None:
        """Stop the listener within ``timeout`` and release collaborators.

        Raises
        ------
        ShutdownTimeoutError
            When in-flight requests outlive ``timeout``.
        """

        self._transition(ServiceStatus.SHUTTING_DOWN)
        try:
            if self._server is not None:
                self._server.shutdown(timeout)
        except ShutdownTimeoutError:
            logger.error("Forced shutdown: requests still running after %.1fs", timeout)
            raise
        finally:
            self._server = None
            context.close()
            self._transition(ServiceStatus.STOPPED)


__all__ = ["MAX_RECEIVE_BYTES", "ServiceDaemon", "build_routes", "spawn_command"]
