"""Platform markers shared by the test-suite."""

from __future__ import annotations

import sys

import pytest

OS_AGNOSTIC = pytest.mark.os_agnostic
POSIX_ONLY = pytest.mark.skipif(sys.platform == "win32", reason="requires a POSIX platform")
LINUX_ONLY = pytest.mark.skipif(not sys.platform.startswith("linux"), reason="requires Linux")

__all__ = ["LINUX_ONLY", "OS_AGNOSTIC", "POSIX_ONLY"]
