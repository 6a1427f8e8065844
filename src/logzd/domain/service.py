"""Service lifecycle value objects."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path


class ServiceStatus(Enum):
    """States of the background daemon."""

    STOPPED = "stopped"
    STARTING = "starting"
    RUNNING = "running"
    SHUTTING_DOWN = "shutting_down"


_TRANSITIONS = {
    ServiceStatus.STOPPED: {ServiceStatus.STARTING},
    ServiceStatus.STARTING: {ServiceStatus.RUNNING, ServiceStatus.STOPPED},
    ServiceStatus.RUNNING: {ServiceStatus.SHUTTING_DOWN},
    ServiceStatus.SHUTTING_DOWN: {ServiceStatus.STOPPED},
}


def can_transition(current: ServiceStatus, target: ServiceStatus) -> bool:
    """Return ``True`` when ``current -> target`` is a legal lifecycle step.

    Examples
    --------
    >>> can_transition(ServiceStatus.RUNNING, ServiceStatus.SHUTTING_DOWN)
    True
    >>> can_transition(ServiceStatus.STOPPED, ServiceStatus.RUNNING)
    False
    """

    return target in _TRANSITIONS[current]


@dataclass(slots=True, frozen=True)
class ServiceState:
    """Running instance described by a pid file."""

    pid: int
    port: int
    pid_path: Path

    def render(self) -> str:
        """Return the pid file body: pid and port on separate lines."""
        return f"{self.pid}\n{self.port}"

    @classmethod
    def parse(cls, text: str, pid_path: Path) -> "ServiceState":
        """Parse pid-file contents; raises :class:`ValueError` when malformed.

        Examples
        --------
        >>> ServiceState.parse("123\\n9999", Path("x.pid")).port
        9999
        """

        lines = [line.strip() for line in text.strip().splitlines()]
        if len(lines) < 2:
            raise ValueError("pid file must contain pid and port")
        pid, port = int(lines[0]), int(lines[1])
        if pid <= 0:
            raise ValueError(f"invalid pid {pid}")
        return cls(pid=pid, port=port, pid_path=pid_path)


@dataclass(slots=True, frozen=True)
class StatusReport:
    """Read-only view returned by ``ServiceDaemon.status``."""

    running: bool
    state: ServiceState | None = None
    alive: bool = False


__all__ = ["ServiceState", "ServiceStatus", "StatusReport", "can_transition"]
