"""Static package metadata surfaced by ``logzd about``."""

from __future__ import annotations

from typing import Callable

name = "logzd"
title = "Structured logging daemon with notifier fan-out, metrics exposition and size-based rotation"
version = "0.3.0"
homepage = "https://pypi.org/project/logzd/"
author = "logzd maintainers"
shell_command = "logzd"

LAYOUT_WIDTH = 14


def info_lines() -> list[str]:
    fields = [
        ("name", name),
        ("title", title),
        ("version", version),
        ("homepage", homepage),
        ("author", author),
        ("shell_command", shell_command),
    ]
    return [f"    {key:<{LAYOUT_WIDTH}} = {value}" for key, value in fields]


def print_info(writer: Callable[[str], None] | None = None) -> None:
    """Emit the metadata banner through ``writer`` (default: :func:`print`)."""

    emit = writer or (lambda text: print(text, end=""))
    emit(f"Info for {name}:\n\n")
    for line in info_lines():
        emit(line + "\n")


__all__ = ["info_lines", "print_info"]
