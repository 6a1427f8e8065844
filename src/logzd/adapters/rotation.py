"""Size-based rotation and archiving of ``*.log`` files.

Purpose
-------
Keep the log directory bounded. Two triggers are evaluated on every check:

* the directory total exceeds ``max_log_size``: every tracked log file is
  bundled into ``logs_archive_<YYYYmmdd_HHMMSS>.zip`` and then truncated;
* otherwise, each file above ``module_log_size`` is compressed into
  ``<file>.tar.gz`` and recreated empty.

Contents
--------
* :class:`RotationReport` - what a check did.
* :class:`RotationManager` - the public operations.

System Role
-----------
Called by the daemon's housekeeping loop, after standalone file writes, and by
the ``rotate``/``archive``/``check-size`` commands. Failures raise
:class:`~logzd.domain.errors.ArchiveError`.
"""

from __future__ import annotations

import logging
import tarfile
import zipfile
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Callable, Iterable

from logzd.domain.config import Config
from logzd.domain.errors import ArchiveError

logger = logging.getLogger(__name__)

LOG_SUFFIX = ".log"
ARCHIVE_PREFIX = "logs_archive_"


@dataclass(slots=True)
class RotationReport:
    total_size: int = 0
    archive: Path | None = None
    rotated: list[Path] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return self.archive is not None or bool(self.rotated)


def log_directory_size(directory: Path) -> int:
    """Return the summed size of the ``*.log`` files directly inside ``directory``."""

    return sum(path.stat().st_size for path in _log_files(directory))


def _log_files(directory: Path) -> list[Path]:
    if not directory.is_dir():
        return []
    return sorted(path for path in directory.iterdir() if path.is_file() and path.suffix == LOG_SUFFIX)


def _truncate(path: Path) -> None:
    with path.open("w", encoding="utf-8"):
        pass


class RotationManager:
    """Apply the size triggers to one log directory."""

    def __init__(
        self,
        directory: Path,
        *,
        archive_dir: Path | None = None,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self._directory = Path(directory)
        self._archive_dir = Path(archive_dir) if archive_dir is not None else self._directory
        self._clock = clock

    @property
    def directory(self) -> Path:
        return self._directory

    def log_files(self) -> list[Path]:
        return _log_files(self._directory)

    def check_log_size(self, config: Config) -> RotationReport:
        """Evaluate both triggers against ``config``'s thresholds."""

        files = self.log_files()
        sizes = {path: path.stat().st_size for path in files}
        report = RotationReport(total_size=sum(sizes.values()))
        if report.total_size > config.max_log_size:
            logger.info(
                "Log directory %s holds %d bytes (limit %d); archiving",
                self._directory,
                report.total_size,
                config.max_log_size,
            )
            report.archive = self.archive_logs(files)
            for path in files:
                self._truncate(path)
            return report
        oversized = [path for path, size in sizes.items() if size > config.module_log_size]
        if oversized:
            report.rotated = self.rotate_log_files(oversized)
        return report

    def rotate_log_files(self, files: Iterable[Path]) -> list[Path]:
        return [self.rotate_log_file(path) for path in files]

    def rotate_log_file(self, path: Path) -> Path:
        """Compress ``path`` into ``<path>.tar.gz`` and empty it.

        The file is truncated in place so writers holding it open in append
        mode keep writing to the live file.
        """

        target = path.with_name(path.name + ".tar.gz")
        self.create_tar_gz(path, target)
        self._truncate(path)
        logger.info("Rotated %s into %s", path, target)
        return target

    def create_tar_gz(self, source: Path, target: Path) -> Path:
        try:
            with tarfile.open(target, "w:gz") as archive:
                archive.add(source, arcname=source.name)
        except (OSError, tarfile.TarError) as exc:
            raise ArchiveError(f"cannot create {target}: {exc}") from exc
        return target

    def archive_logs(self, files: Iterable[Path] | None = None) -> Path:
        """Bundle ``files`` (default: every tracked log) into a timestamped zip."""

        members = list(files) if files is not None else self.log_files()
        stamp = self._clock().strftime("%Y%m%d_%H%M%S")
        target = self._archive_dir / f"{ARCHIVE_PREFIX}{stamp}.zip"
        try:
            self._archive_dir.mkdir(parents=True, exist_ok=True)
            with zipfile.ZipFile(target, "w", compression=zipfile.ZIP_DEFLATED) as bundle:
                for path in members:
                    bundle.write(path, arcname=path.name)
        except (OSError, zipfile.BadZipFile) as exc:
            raise ArchiveError(f"cannot create {target}: {exc}") from exc
        logger.info("Archived %d log file(s) into %s", len(members), target)
        return target

    @staticmethod
    def _truncate(path: Path) -> None:
        try:
            _truncate(path)
        except OSError as exc:
            raise ArchiveError(f"cannot truncate {path}: {exc}") from exc


__all__ = ["ARCHIVE_PREFIX", "RotationManager", "RotationReport", "log_directory_size"]
