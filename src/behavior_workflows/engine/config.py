"""Configuration for the workflow behavior engine.

Configuration is loaded from:
- environment variables
- and a local `.env` file (if present)
"""

from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class EngineSettings(BaseSettings):
    """Settings for the engine.

    Environment variables:
    - LOG_LEVEL                              (optional)
    - ENGINE_STATE_PATH                      (optional)
    - ENGINE_MAX_WORKFLOWS_PER_ORGANIZATION  (optional, -1 = unlimited)
    - ENGINE_MAX_BEHAVIORS_PER_WORKFLOW      (optional, -1 = unlimited)
    - ENGINE_NOTIFY_WEBHOOK_URL              (optional)
    - ENGINE_NOTIFY_TIMEOUT_SECONDS          (optional)

    Notes:
        Pydantic-settings supports overriding the env file in tests via:
        `EngineSettings(_env_file=path_to_env)`.
    """

    log_level: str = Field(
        default="INFO",
        validation_alias="LOG_LEVEL",
        description="Root logging level",
    )

    state_path: Path = Field(
        default=Path("engine_state"),
        validation_alias="ENGINE_STATE_PATH",
        description="Directory where workflows and the action log are persisted",
    )

    max_workflows_per_organization: int = Field(
        default=-1,
        validation_alias="ENGINE_MAX_WORKFLOWS_PER_ORGANIZATION",
        description="Non-archived workflows an organization may own (-1 = unlimited)",
    )
    max_behaviors_per_workflow: int = Field(
        default=-1,
        validation_alias="ENGINE_MAX_BEHAVIORS_PER_WORKFLOW",
        description="Behaviors a single workflow may carry (-1 = unlimited)",
    )

    notify_webhook_url: str = Field(
        default="",
        validation_alias="ENGINE_NOTIFY_WEBHOOK_URL",
        description=(
            "Webhook receiving failure notifications under the 'notify' policy. "
            "When empty, failures are only logged."
        ),
    )
    notify_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        validation_alias="ENGINE_NOTIFY_TIMEOUT_SECONDS",
        description="HTTP timeout for webhook notifications",
    )

    model_config = SettingsConfigDict(
        env_prefix="",
        env_file=".env",
        extra="ignore",
    )

    @model_validator(mode="after")
    def _check_limits(self) -> EngineSettings:
        for name in ("max_workflows_per_organization", "max_behaviors_per_workflow"):
            if getattr(self, name) < -1:
                raise ValueError(f"{name} must be -1 (unlimited) or a non-negative integer")
        return self

    @property
    def workflows_state_file(self) -> Path:
        """Path where workflow records are persisted."""

        return self.state_path / "workflows.json"

    @property
    def actions_state_file(self) -> Path:
        """Path where the workflow action log is persisted."""

        return self.state_path / "workflow_actions.json"
