"""FastAPI server adapter for the workflow behavior engine.

Design intent:
- Keep lifecycle and execution logic in `behavior_workflows.engine.*`
- Keep server-specific concerns (routing, CORS, error mapping) here
"""

from __future__ import annotations

__all__ = ["create_app"]

from behavior_workflows.server.app import create_app
