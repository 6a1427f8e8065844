"""Process-wide handle on the entry point's application context."""

from __future__ import annotations

from threading import RLock

from ._composition import AppContext

_STATE: AppContext | None = None
_STATE_LOCK = RLock()


def set_context(context: AppContext) -> None:
    """Install ``context`` as the active one for this process."""

    with _STATE_LOCK:
        global _STATE
        _STATE = context


def clear_context() -> AppContext | None:
    """Remove and return the active context if present."""

    with _STATE_LOCK:
        global _STATE
        context, _STATE = _STATE, None
        return context


def current_context() -> AppContext:
    """Return the active context or raise when none was installed."""

    with _STATE_LOCK:
        if _STATE is None:
            raise RuntimeError("logzd.runtime.set_context() must be called before using the logging API")
        return _STATE


def is_initialised() -> bool:
    with _STATE_LOCK:
        return _STATE is not None


__all__ = ["clear_context", "current_context", "is_initialised", "set_context"]
