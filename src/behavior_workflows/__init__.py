"""Workflow Behavior Engine.

Data-driven pipelines of configurable behaviors that run, in a deterministic
order, whenever a matching business event occurs:
- configuration loaded from `.env`
- structured logging
- template catalog and organization-scoped workflow store
- trigger resolution and priority scheduling of behaviors
"""

__version__ = "0.1.0"

from behavior_workflows.engine.config import EngineSettings

__all__ = ["__version__", "EngineSettings"]
