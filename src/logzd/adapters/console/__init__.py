"""Terminal-facing writers."""

from __future__ import annotations

from .rich_console import RichConsoleWriter

__all__ = ["RichConsoleWriter"]
