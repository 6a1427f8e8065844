"""Configuration loading, defaulting, watching and snapshot publication.

Purpose
-------
Locate the daemon's config file, create it with defaults on first use, parse
it according to its extension, and publish immutable :class:`Config`
snapshots. A watcher thread reloads the file when it changes and notifies
subscribers (notifier registry, logger) with the new snapshot.

Contents
--------
* Path helpers: :func:`get_config_path`, :func:`get_pid_path`,
  :func:`get_metrics_path`, :func:`default_log_path`.
* :func:`read_document` - JSON/YAML/TOML/INI decoding.
* :class:`ConfigManager` - current snapshot plus subscriptions.
* :class:`ConfigWatcher` - polling worker driving hot reload.

System Role
-----------
Outer adapter: everything below it receives a :class:`Config` value and never
touches the filesystem for configuration.
"""

from __future__ import annotations

import configparser
import json
import logging
import os
import tempfile
import threading
from pathlib import Path
from typing import Any, Callable, Mapping

import yaml

try:
    import tomllib
except ModuleNotFoundError:  # Python < 3.11
    import tomli as tomllib

from logzd.domain.config import DEFAULT_SETTINGS, STDOUT, Config
from logzd.domain.errors import ConfigurationError

logger = logging.getLogger(__name__)

APP_DIR = "logzd"
CONFIG_ENV_VAR = "LOGZ_CONFIG_PATH"
PID_ENV_VAR = "LOGZ_PID_PATH"
METRICS_ENV_VAR = "LOGZ_METRICS_FILE"
LEVEL_ENV_VAR = "LOGZ_LEVEL"

Subscriber = Callable[[Config], None]


def _home_dir() -> Path | None:
    try:
        return Path.home()
    except (RuntimeError, KeyError):
        return None


def user_config_dir(env: Mapping[str, str] | None = None) -> Path:
    """Return the per-user base directory, trying home, config, cache then temp."""

    source = os.environ if env is None else env
    home = _home_dir()
    if home is not None and str(home) not in {"", "/"}:
        return home / f".{APP_DIR}"
    if source.get("XDG_CONFIG_HOME"):
        return Path(source["XDG_CONFIG_HOME"]) / APP_DIR
    if source.get("XDG_CACHE_HOME"):
        return Path(source["XDG_CACHE_HOME"]) / APP_DIR
    return Path(tempfile.gettempdir()) / APP_DIR


def user_cache_dir(env: Mapping[str, str] | None = None) -> Path:
    source = os.environ if env is None else env
    if source.get("XDG_CACHE_HOME"):
        return Path(source["XDG_CACHE_HOME"]) / APP_DIR
    home = _home_dir()
    if home is not None and str(home) not in {"", "/"}:
        return home / ".cache" / APP_DIR
    return Path(tempfile.gettempdir()) / APP_DIR


def get_config_path(env: Mapping[str, str] | None = None) -> Path:
    """Return ``$LOGZ_CONFIG_PATH`` or ``<user config dir>/config.json``."""

    source = os.environ if env is None else env
    override = source.get(CONFIG_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return user_config_dir(source) / "config.json"


def get_pid_path(config: Config | None = None, env: Mapping[str, str] | None = None) -> Path:
    """Return ``$LOGZ_PID_PATH`` or ``<user cache dir>/<pidFile>``."""

    source = os.environ if env is None else env
    override = source.get(PID_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    name = config.pid_file if config is not None else DEFAULT_SETTINGS["pidFile"]
    return user_cache_dir(source) / name


def get_metrics_path(env: Mapping[str, str] | None = None) -> Path:
    """Return ``$LOGZ_METRICS_FILE`` or ``<user cache dir>/metrics.json``."""

    source = os.environ if env is None else env
    override = source.get(METRICS_ENV_VAR, "").strip()
    if override:
        return Path(override).expanduser()
    return user_cache_dir(source) / "metrics.json"


def default_log_path(env: Mapping[str, str] | None = None) -> Path:
    return user_config_dir(env) / f"{APP_DIR}.log"


def resolve_output(config: Config) -> str:
    """Return the output target, creating the log file and its parents lazily."""

    if config.output == STDOUT:
        return STDOUT
    path = Path(config.output).expanduser()
    path.parent.mkdir(parents=True, exist_ok=True)
    path.touch(exist_ok=True)
    return str(path)


def log_directory(config: Config, env: Mapping[str, str] | None = None) -> Path:
    """Return the directory rotation inspects for ``*.log`` files."""

    if config.output == STDOUT:
        return default_log_path(env).parent
    return Path(config.output).expanduser().parent


def _ini_to_mapping(text: str) -> dict[str, Any]:
    """Map INI sections onto the JSON document shape.

    ``[logzd]`` holds top-level keys, ``[notifier:<name>]`` and
    ``[integration:<name>]`` hold nested ones.
    """

    parser = configparser.ConfigParser(interpolation=None)
    parser.optionxform = str  # keep camelCase keys
    parser.read_string(text)
    document: dict[str, Any] = dict(parser.defaults())
    for section in parser.sections():
        values = {key: value for key, value in parser.items(section) if key not in parser.defaults()}
        kind, _, name = section.partition(":")
        if kind == APP_DIR and not name:
            document.update(values)
        elif kind == "notifier" and name:
            document.setdefault("notifiers", {})[name] = values
        elif kind == "integration" and name:
            document.setdefault("integrations", {})[name] = values
        else:
            logger.warning("Ignoring unknown INI section [%s]", section)
    return document


def read_document(path: Path) -> dict[str, Any]:
    """Decode ``path`` by extension (``.yaml``/``.yml``, ``.toml``, ``.ini``, else JSON)."""

    try:
        text = path.read_text(encoding="utf-8")
    except OSError as exc:
        raise ConfigurationError(f"cannot read config file {path}: {exc}") from exc
    suffix = path.suffix.lower()
    try:
        if suffix in {".yaml", ".yml"}:
            document = yaml.safe_load(text) or {}
        elif suffix == ".toml":
            document = tomllib.loads(text)
        elif suffix == ".ini":
            document = _ini_to_mapping(text)
        else:
            document = json.loads(text) if text.strip() else {}
    except (yaml.YAMLError, tomllib.TOMLDecodeError, configparser.Error, json.JSONDecodeError) as exc:
        raise ConfigurationError(f"cannot parse config file {path}: {exc}") from exc
    if not isinstance(document, dict):
        raise ConfigurationError(f"config file {path} must contain a mapping at the top level")
    return document


def write_default_document(path: Path) -> None:
    """Create ``path`` with :data:`DEFAULT_SETTINGS` in the format its extension implies."""

    path.parent.mkdir(parents=True, exist_ok=True)
    defaults = json.loads(json.dumps(dict(DEFAULT_SETTINGS)))
    suffix = path.suffix.lower()
    if suffix in {".yaml", ".yml"}:
        path.write_text(yaml.safe_dump(defaults, sort_keys=True), encoding="utf-8")
    else:
        if suffix != ".json":
            logger.warning("Writing JSON defaults to %s; edit it in its own format", path)
        path.write_text(json.dumps(defaults, indent=2, sort_keys=True) + "\n", encoding="utf-8")


class ConfigManager:
    """Own the live :class:`Config` snapshot for one config file."""

    def __init__(self, path: Path | None = None, *, env: Mapping[str, str] | None = None) -> None:
        self._env = os.environ if env is None else env
        self._path = Path(path).expanduser() if path is not None else get_config_path(self._env)
        self._lock = threading.RLock()
        self._current: Config | None = None
        self._document: dict[str, Any] = {}
        self._subscribers: list[Subscriber] = []
        self._watcher: ConfigWatcher | None = None

    @property
    def path(self) -> Path:
        return self._path

    def load_config(self) -> Config:
        """Read (creating if absent), parse and publish the config file.

        Raises
        ------
        ConfigurationError
            When the file cannot be read or decoded, or holds invalid values.
        """

        if not self._path.exists():
            logger.info("Creating default configuration at %s", self._path)
            try:
                write_default_document(self._path)
            except OSError as exc:
                raise ConfigurationError(f"cannot create config file {self._path}: {exc}") from exc
        document = read_document(self._path)
        level_override = self._env.get(LEVEL_ENV_VAR, "").strip()
        if level_override:
            document = {**document, "level": level_override}
        try:
            config = Config.from_mapping(document)
        except (TypeError, ValueError) as exc:
            raise ConfigurationError(f"invalid configuration in {self._path}: {exc}") from exc
        with self._lock:
            self._current = config
            self._document = document
        return config

    def current(self) -> Config:
        with self._lock:
            if self._current is not None:
                return self._current
        return self.load_config()

    def get(self, dotted_key: str, default: Any = None) -> Any:
        """Look up a raw document value by dotted path (``integrations.prometheus.enabled``)."""

        with self._lock:
            node: Any = self._document
        for part in dotted_key.split("."):
            if not isinstance(node, Mapping) or part not in node:
                return default
            node = node[part]
        return node

    def get_int(self, key: str, default: int) -> int:
        value = self.get(key, default)
        try:
            return int(value)
        except (TypeError, ValueError):
            logger.warning("Config key %s is not an integer (%r); using %d", key, value, default)
            return default

    def subscribe(self, callback: Subscriber) -> None:
        with self._lock:
            self._subscribers.append(callback)

    def unsubscribe(self, callback: Subscriber) -> None:
        with self._lock:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

    def reload(self) -> Config | None:
        """Reload and notify subscribers; keep the old snapshot on failure."""

        try:
            config = self.load_config()
        except ConfigurationError as exc:
            logger.error("Config reload failed; keeping previous settings: %s", exc)
            return None
        with self._lock:
            subscribers = list(self._subscribers)
        for callback in subscribers:
            try:
                callback(config)
            except Exception as exc:  # noqa: BLE001
                logger.error("Config subscriber %r failed", callback, exc_info=exc)
        logger.info("Configuration reloaded from %s", self._path)
        return config

    def watch(self, interval: float = 1.0) -> "ConfigWatcher":
        with self._lock:
            if self._watcher is None or not self._watcher.is_alive():
                self._watcher = ConfigWatcher(self, interval=interval)
                self._watcher.start()
            return self._watcher

    def stop_watching(self, timeout: float | None = 2.0) -> None:
        with self._lock:
            watcher, self._watcher = self._watcher, None
        if watcher is not None:
            watcher.stop(timeout)


class ConfigWatcher(threading.Thread):
    """Poll the config file's modification stamp and trigger reloads."""

    def __init__(self, manager: ConfigManager, *, interval: float = 1.0) -> None:
        super().__init__(name="logzd-config-watcher", daemon=True)
        self._manager = manager
        self._interval = interval
        self._stop_event = threading.Event()
        self._stamp = self._read_stamp()

    def _read_stamp(self) -> tuple[int, int] | None:
        try:
            stat = self._manager.path.stat()
        except OSError:
            return None
        return stat.st_mtime_ns, stat.st_size

    def poll(self) -> bool:
        """Reload when the stamp changed; return whether a reload happened."""

        stamp = self._read_stamp()
        if stamp is None or stamp == self._stamp:
            return False
        self._stamp = stamp
        self._manager.reload()
        return True

    def run(self) -> None:
        while not self._stop_event.wait(self._interval):
            try:
                self.poll()
            except Exception as exc:  # noqa: BLE001
                logger.error("Config watcher poll failed; still watching %s", self._manager.path, exc_info=exc)

    def stop(self, timeout: float | None = 2.0) -> None:
        self._stop_event.set()
        if self.is_alive():
            self.join(timeout)


__all__ = [
    "ConfigManager",
    "ConfigWatcher",
    "default_log_path",
    "get_config_path",
    "get_metrics_path",
    "get_pid_path",
    "log_directory",
    "read_document",
    "resolve_output",
    "user_cache_dir",
    "user_config_dir",
    "write_default_document",
]
