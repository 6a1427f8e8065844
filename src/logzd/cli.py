"""Command-line interface for logzd.

Purpose
-------
Expose logging, service lifecycle, metrics and rotation operations as click
commands. Library errors are translated into :class:`click.ClickException` so
failures exit with status 1 and a one-line message.

Contents
--------
* :func:`cli` - root group with dotenv, config and traceback switches.
* Level commands (``debug`` ... ``fatal``), ``service``, ``metrics``,
  ``rotate``, ``archive``, ``check-size``, ``watch`` and ``about``.
* :func:`main` - console-script entry point delegating to ``lib_cli_exit_tools``.
"""

from __future__ import annotations

import logging
import os
import threading
from pathlib import Path
from typing import Any, Sequence

import click
import lib_cli_exit_tools
from rich.console import Console
from rich.logging import RichHandler
from rich.table import Table

from . import __init__conf__
from . import config as dotenv_config
from .adapters.config_manager import ConfigManager, default_log_path, get_metrics_path, log_directory
from .adapters.daemon import ServiceDaemon
from .adapters.metrics_store import MetricsStore
from .adapters.rotation import RotationManager, log_directory_size
from .adapters.tail import FileTailer
from .domain.config import STDOUT, LogMode, OutputFormat
from .domain.errors import LogzError
from .domain.levels import LogLevel
from .runtime import AppContext, build_app_context, clear_context, set_context

CLICK_CONTEXT_SETTINGS = {"help_option_names": ["-h", "--help"]}


def _configure_diagnostics(verbose: bool) -> None:
    """Route internal ``logging`` output to stderr through Rich."""

    package_logger = logging.getLogger("logzd")
    package_logger.setLevel(logging.DEBUG if verbose else logging.WARNING)
    if not any(isinstance(handler, RichHandler) for handler in package_logger.handlers):
        package_logger.addHandler(RichHandler(console=Console(stderr=True), show_path=False, rich_tracebacks=False))


def _parse_pairs(pairs: Sequence[str]) -> dict[str, str]:
    """Parse ``key=value`` options.

    Examples
    --------
    >>> _parse_pairs(["a=1", "b = two"])
    {'a': '1', 'b': 'two'}
    """

    parsed: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key.strip():
            raise click.BadParameter(f"expected key=value, got {pair!r}", param_hint="--metadata")
        parsed[key.strip()] = value.strip()
    return parsed


def _config_path(ctx: click.Context) -> Path | None:
    obj = ctx.find_root().obj or {}
    return obj.get("config_path")


def _open_context(ctx: click.Context, **overrides: Any) -> AppContext:
    try:
        context = build_app_context(config_path=_config_path(ctx), **overrides)
    except LogzError as exc:
        raise click.ClickException(str(exc)) from exc
    set_context(context)

    def _release() -> None:
        released = clear_context()
        if released is not None:
            released.close()

    ctx.call_on_close(_release)
    return context


def _daemon(ctx: click.Context) -> ServiceDaemon:
    return ServiceDaemon(ConfigManager(_config_path(ctx)))


@click.group(
    help="Structured-logging daemon: log, serve, count and rotate.",
    context_settings=CLICK_CONTEXT_SETTINGS,
    invoke_without_command=True,
)
@click.version_option(version=__init__conf__.version, prog_name=__init__conf__.shell_command, message="%(version)s")
@click.option("--config", "config_path", type=click.Path(dir_okay=False, path_type=Path), default=None, help="Config file (default: $LOGZ_CONFIG_PATH or the per-user config).")
@click.option("--use-dotenv/--no-use-dotenv", default=None, help=f"Load the nearest .env before reading configuration (env: {dotenv_config.DOTENV_ENV_VAR}).")
@click.option("--traceback/--no-traceback", default=None, help="Show full Python tracebacks on errors.")
@click.option("--verbose", "-v", is_flag=True, help="Print internal diagnostics to stderr.")
@click.pass_context
def cli(ctx: click.Context, config_path: Path | None, use_dotenv: bool | None, traceback: bool | None, verbose: bool) -> None:
    """Root command storing global switches on the click context."""

    if traceback is not None:
        lib_cli_exit_tools.config.traceback = traceback
        lib_cli_exit_tools.config.traceback_force_color = traceback
    if dotenv_config.should_use_dotenv(use_dotenv, os.environ.get(dotenv_config.DOTENV_ENV_VAR)):
        dotenv_config.enable_dotenv()
    _configure_diagnostics(verbose)
    ctx.ensure_object(dict)
    ctx.obj["config_path"] = config_path
    if ctx.invoked_subcommand is None:
        __init__conf__.print_info(writer=lambda text: click.echo(text, nl=False))


@cli.command("about", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_about() -> None:
    """Print package metadata."""

    __init__conf__.print_info(writer=lambda text: click.echo(text, nl=False))


def _register_level_command(level: LogLevel) -> None:
    @cli.command(level.name.lower(), context_settings=CLICK_CONTEXT_SETTINGS, help=f"Log a {level.name} entry.")
    @click.option("--msg", "-m", "message", required=True, help="Message to log.")
    @click.option("--metadata", "-M", multiple=True, help="Metadata pair key=value (repeatable).")
    @click.option("--context", "-c", "label", default="", help="Context label stored on the entry.")
    @click.option("--source", "-s", default="cli", show_default=True, help="Logger name recorded as the entry source.")
    @click.option("--output", "-o", default=None, help="Override the output (file path or 'stdout').")
    @click.option("--format", "-f", "output_format", type=click.Choice(["text", "json"]), default=None, help="Override the output format.")
    @click.pass_context
    def _command(
        ctx: click.Context,
        message: str,
        metadata: Sequence[str],
        label: str,
        source: str,
        output: str | None,
        output_format: str | None,
    ) -> None:
        context = _open_context(
            ctx,
            output=output,
            output_format=OutputFormat.parse(output_format) if output_format else None,
        )
        logger = context.get_logger(source)
        if label:
            logger = logger.with_context(label)
        result = logger.log(level, message, _parse_pairs(metadata))
        if result.get("reason") == "invalid_entry":
            raise click.ClickException(f"invalid entry: {result.get('error')}")


for _level in LogLevel:
    _register_level_command(_level)


@cli.group("service", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_service() -> None:
    """Manage the background service."""


@cli_service.command("start")
@click.option("--port", "-p", type=int, default=None, help="Listen port (default: config port).")
@click.pass_context
def cli_service_start(ctx: click.Context, port: int | None) -> None:
    """Spawn the service and record it in the pid file."""

    try:
        state = _daemon(ctx).start(port)
    except LogzError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Service started (pid {state.pid}, port {state.port})")


@cli_service.command("stop")
@click.pass_context
def cli_service_stop(ctx: click.Context) -> None:
    """Signal the running service and remove its pid file."""

    try:
        state = _daemon(ctx).stop()
    except LogzError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Service stopped (pid {state.pid})")


@cli_service.command("status")
@click.pass_context
def cli_service_status(ctx: click.Context) -> None:
    """Report the pid, port and pid-file path of the running service."""

    try:
        report = _daemon(ctx).status()
    except LogzError as exc:
        raise click.ClickException(str(exc)) from exc
    if not report.running or report.state is None:
        click.echo("Service is not running")
        return
    state = report.state
    suffix = "" if report.alive else " (process not found: stale pid file)"
    click.echo(f"Service running: pid {state.pid}, port {state.port}, pid file {state.pid_path}{suffix}")


@cli_service.command("spawn", hidden=True)
@click.option("--port", "-p", type=int, default=None)
@click.pass_context
def cli_service_spawn(ctx: click.Context, port: int | None) -> None:
    """Run the service in the foreground (used by ``service start``)."""

    context = _open_context(ctx, mode=LogMode.SERVICE)
    daemon = ServiceDaemon(context.config_manager)
    try:
        daemon.run(context, port=port)
    except LogzError as exc:
        raise click.ClickException(str(exc)) from exc


def _metrics_store() -> MetricsStore:
    return MetricsStore(get_metrics_path())


@cli.group("metrics", context_settings=CLICK_CONTEXT_SETTINGS)
def cli_metrics() -> None:
    """Inspect and edit the persisted metrics."""


@cli_metrics.command("enable")
@click.option("--port", "-p", type=int, default=2112, show_default=True, help="Port for the /metrics listener.")
@click.option("--host", default="0.0.0.0", show_default=True)
@click.option("--duration", type=float, default=0.0, help="Serve for this many seconds (0 = until interrupted).")
def cli_metrics_enable(port: int, host: str, duration: float) -> None:
    """Serve /metrics in the foreground."""

    store = _metrics_store()
    try:
        listener = store.enable(port, host)
    except OSError as exc:
        raise click.ClickException(f"cannot listen on {host}:{port}: {exc}") from exc
    bound = listener.address[1] if listener is not None else port
    click.echo(f"Metrics exposition enabled on {host}:{bound}/metrics")
    stop = threading.Event()
    try:
        stop.wait(duration if duration > 0 else None)
    except KeyboardInterrupt:
        pass
    finally:
        store.disable()
    click.echo("Metrics exposition disabled")


@cli_metrics.command("disable")
def cli_metrics_disable() -> None:
    """Stop exposition in this process (warns when already disabled)."""

    _metrics_store().disable()
    click.echo("Metrics exposition disabled")


@cli_metrics.command("add")
@click.argument("name")
@click.argument("value", type=float)
@click.option("--metadata", "-M", multiple=True, help="Metadata pair key=value (repeatable).")
def cli_metrics_add(name: str, value: float, metadata: Sequence[str]) -> None:
    """Create or overwrite a metric."""

    store = _metrics_store()
    store.add_metric(name, value, _parse_pairs(metadata))
    if name not in store.list_metrics():
        raise click.ClickException(f"invalid metric name: {name!r}")
    click.echo(f"Metric {name} = {value:g}")


@cli_metrics.command("remove")
@click.argument("name")
def cli_metrics_remove(name: str) -> None:
    """Delete a metric."""

    store = _metrics_store()
    if name not in store.list_metrics():
        raise click.ClickException(f"metric {name} does not exist")
    store.remove_metric(name)
    click.echo(f"Metric {name} removed")


def _metrics_table(store: MetricsStore) -> Table:
    table = Table(title="logzd metrics")
    table.add_column("name")
    table.add_column("value", justify="right")
    table.add_column("metadata")
    for name, metric in sorted(store.list_metrics().items()):
        meta = ", ".join(f"{key}={value}" for key, value in sorted(metric.metadata.items()))
        table.add_row(name, f"{metric.value:g}", meta)
    return table


@cli_metrics.command("list")
def cli_metrics_list() -> None:
    """Print every metric."""

    Console().print(_metrics_table(_metrics_store()))


@cli_metrics.command("watch")
@click.option("--interval", type=float, default=2.0, show_default=True)
@click.option("--count", type=int, default=0, help="Stop after this many refreshes (0 = until interrupted).")
def cli_metrics_watch(interval: float, count: int) -> None:
    """Reprint the metrics table periodically."""

    console = Console()
    stop = threading.Event()
    shown = 0
    try:
        while not stop.is_set():
            console.print(_metrics_table(_metrics_store()))
            shown += 1
            if count and shown >= count:
                break
            stop.wait(interval)
    except KeyboardInterrupt:
        pass


def _rotation(ctx: click.Context) -> tuple[RotationManager, Any]:
    try:
        config = ConfigManager(_config_path(ctx)).load_config()
    except LogzError as exc:
        raise click.ClickException(str(exc)) from exc
    return RotationManager(log_directory(config)), config


@cli.command("rotate", context_settings=CLICK_CONTEXT_SETTINGS)
@click.pass_context
def cli_rotate(ctx: click.Context) -> None:
    """Apply the size triggers to the log directory now."""

    manager, config = _rotation(ctx)
    try:
        report = manager.check_log_size(config)
    except LogzError as exc:
        raise click.ClickException(str(exc)) from exc
    if report.archive is not None:
        click.echo(f"Archived all logs into {report.archive}")
    for target in report.rotated:
        click.echo(f"Rotated {target}")
    if not report.changed:
        click.echo(f"Nothing to rotate ({report.total_size} bytes in {manager.directory})")


@cli.command("archive", context_settings=CLICK_CONTEXT_SETTINGS)
@click.pass_context
def cli_archive(ctx: click.Context) -> None:
    """Bundle every log file into a timestamped zip."""

    manager, _config = _rotation(ctx)
    try:
        target = manager.archive_logs()
    except LogzError as exc:
        raise click.ClickException(str(exc)) from exc
    click.echo(f"Archived logs into {target}")


@cli.command("check-size", context_settings=CLICK_CONTEXT_SETTINGS)
@click.pass_context
def cli_check_size(ctx: click.Context) -> None:
    """Print the log directory size against the configured limits."""

    manager, config = _rotation(ctx)
    size = log_directory_size(manager.directory)
    click.echo(f"{manager.directory}: {size} bytes (limit {config.max_log_size}, per file {config.module_log_size})")


@cli.command("watch", context_settings=CLICK_CONTEXT_SETTINGS)
@click.argument("path", required=False, type=click.Path(dir_okay=False, path_type=Path))
@click.option("--from-start", is_flag=True, help="Print the existing content first.")
@click.pass_context
def cli_watch(ctx: click.Context, path: Path | None, from_start: bool) -> None:
    """Follow a log file (default: the configured output)."""

    if path is None:
        try:
            config = ConfigManager(_config_path(ctx)).load_config()
        except LogzError as exc:
            raise click.ClickException(str(exc)) from exc
        path = default_log_path() if config.output == STDOUT else Path(config.output).expanduser()
    if not path.exists():
        raise click.ClickException(f"log file not found: {path}")
    stop = threading.Event()
    try:
        FileTailer(path, from_start=from_start).follow(click.echo, stop)
    except KeyboardInterrupt:
        stop.set()


def main(argv: Sequence[str] | None = None) -> int:
    """Run the CLI through ``lib_cli_exit_tools`` and restore traceback preferences.

    Parameters
    ----------
    argv:
        Optional argument list (defaults to ``sys.argv[1:]``).

    Returns
    -------
    int
        Process exit status.
    """

    previous_traceback = getattr(lib_cli_exit_tools.config, "traceback", False)
    previous_force_color = getattr(lib_cli_exit_tools.config, "traceback_force_color", False)
    try:
        return lib_cli_exit_tools.run_cli(
            cli,
            argv=list(argv) if argv is not None else None,
            prog_name=__init__conf__.shell_command,
        )
    finally:
        lib_cli_exit_tools.config.traceback = previous_traceback
        lib_cli_exit_tools.config.traceback_force_color = previous_force_color


__all__ = ["cli", "main"]
