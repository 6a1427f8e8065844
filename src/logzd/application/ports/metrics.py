"""Port for the counters the logger bumps in service mode."""

from __future__ import annotations

from typing import Protocol, runtime_checkable


@runtime_checkable
class MetricsPort(Protocol):
    """Increment named gauges."""

    def increment_metric(self, name: str, delta: float = 1.0) -> None:
        """Add ``delta`` to ``name``, creating it at zero when absent."""


__all__ = ["MetricsPort"]
