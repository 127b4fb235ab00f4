"""Console entrypoint.

The CLI is implemented in `behavior_workflows.engine.main`.
"""

from __future__ import annotations

from behavior_workflows.engine.main import main

__all__ = ["main"]


if __name__ == "__main__":
    raise SystemExit(main())
