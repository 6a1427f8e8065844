"""PID file used as the single-instance mutex of the background service.

The file holds two lines, pid then port. It is written under an exclusive,
non-blocking :func:`fcntl.flock`; the lock stays with the writing process
until it exits or calls :meth:`PidFile.release`.
"""

from __future__ import annotations

import fcntl
import logging
import os
from pathlib import Path
from typing import IO

from logzd.domain.errors import PidFileLockedError, ServiceAlreadyRunningError, ServiceError
from logzd.domain.service import ServiceState

logger = logging.getLogger(__name__)


class PidFile:
    def __init__(self, path: Path) -> None:
        self._path = Path(path)
        self._handle: IO[str] | None = None

    @property
    def path(self) -> Path:
        return self._path

    @property
    def locked(self) -> bool:
        return self._handle is not None

    def exists(self) -> bool:
        return self._path.exists()

    def read(self) -> ServiceState | None:
        """Return the recorded state, or ``None`` when missing or malformed."""

        try:
            text = self._path.read_text(encoding="utf-8")
        except OSError:
            return None
        try:
            return ServiceState.parse(text, self._path)
        except ValueError as exc:
            logger.warning("Ignoring malformed pid file %s: %s", self._path, exc)
            return None

    def acquire(self) -> None:
        """Create the file and take the exclusive lock.

        Raises
        ------
        ServiceAlreadyRunningError
            When the file already exists.
        PidFileLockedError
            When another process holds the lock.
        """

        if self._path.exists():
            raise ServiceAlreadyRunningError(f"service already running (pid file exists: {self._path})")
        self._path.parent.mkdir(parents=True, exist_ok=True)
        handle = self._path.open("a+", encoding="utf-8")
        try:
            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except OSError as exc:
            handle.close()
            raise PidFileLockedError("another process is writing to the PID file") from exc
        self._handle = handle

    def write(self, state: ServiceState) -> None:
        if self._handle is None:
            raise ServiceError("pid file must be acquired before writing")
        self._handle.seek(0)
        self._handle.truncate()
        self._handle.write(state.render())
        self._handle.flush()
        os.fsync(self._handle.fileno())

    def release(self) -> None:
        if self._handle is not None:
            try:
                fcntl.flock(self._handle.fileno(), fcntl.LOCK_UN)
            finally:
                self._handle.close()
                self._handle = None

    def remove(self) -> None:
        self.release()
        self._path.unlink(missing_ok=True)


__all__ = ["PidFile"]
