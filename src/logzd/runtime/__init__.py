"""Runtime composition and the narrow accessor used by entry points.

Library code receives an :class:`AppContext` explicitly. Only the CLI and the
spawned service install one with :func:`set_context` so nested helpers can
reach it through :func:`current_context`.
"""

from __future__ import annotations

from ._composition import AppContext, build_app_context
from ._logger import Logger, find_caller
from ._state import clear_context, current_context, is_initialised, set_context

__all__ = [
    "AppContext",
    "Logger",
    "build_app_context",
    "clear_context",
    "current_context",
    "find_caller",
    "is_initialised",
    "set_context",
]
