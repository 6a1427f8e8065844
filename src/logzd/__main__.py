"""``python -m logzd`` entry point; also the spawned service's command line."""

from __future__ import annotations

from .cli import main

if __name__ == "__main__":
    raise SystemExit(main())
