"""Shutdown orchestration for the logging runtime.

Purpose
-------
Provide one routine that stops configuration reloads, closes notifier
transports and releases the writer, in that order, so nothing is dispatched to
a sink that has already been closed.
"""

from __future__ import annotations

import logging
from typing import Callable, Protocol, Sequence, runtime_checkable

logger = logging.getLogger(__name__)


@runtime_checkable
class Closeable(Protocol):
    def close(self) -> None: ...


def create_shutdown(
    *,
    stop_watcher: Callable[[], None] | None,
    closeables: Sequence[Closeable],
) -> Callable[[], list[Exception]]:
    """Return a callable performing the shutdown sequence.

    Every step runs even when an earlier one fails; the failures are logged
    and returned.
    """

    def shutdown() -> list[Exception]:
        """Stop the watcher then close each collaborator."""
        failures: list[Exception] = []
        steps: list[Callable[[], None]] = []
        if stop_watcher is not None:
            steps.append(stop_watcher)
        steps.extend(item.close for item in closeables)
        for step in steps:
            try:
                step()
            except Exception as exc:  # noqa: BLE001
                logger.error("Shutdown step %r failed", step, exc_info=exc)
                failures.append(exc)
        return failures

    return shutdown


__all__ = ["Closeable", "create_shutdown"]
