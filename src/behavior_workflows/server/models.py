"""Pydantic models for the REST server."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field

from behavior_workflows.engine.workflow.context import ContextInput, ContextObject, ExecutionContext
from behavior_workflows.engine.workflow.models import (
    BehaviorSpec,
    FailurePolicy,
    ParticipantBinding,
    ParticipantRef,
)


class InstantiateRequest(BaseModel):
    template_id: str
    participants: list[ParticipantBinding] = Field(default_factory=list)
    behavior_config_overrides: dict[int, dict[str, Any]] = Field(default_factory=dict)
    name: str | None = None
    description: str | None = None
    performed_by: str = "api"


class CreateWorkflowRequest(BaseModel):
    name: str
    subtype: str
    trigger_event: str
    behaviors: list[BehaviorSpec] = Field(default_factory=list)
    failure_policy: FailurePolicy = FailurePolicy.CONTINUE
    required_inputs: list[str] = Field(default_factory=list)
    output_actions: list[str] = Field(default_factory=list)
    participants: list[ParticipantRef] = Field(default_factory=list)
    zero_tolerance: bool = False
    description: str = ""
    performed_by: str = "api"


class UpdateWorkflowRequest(BaseModel):
    name: str | None = None
    description: str | None = None
    behaviors: list[BehaviorSpec] | None = None
    participants: list[ParticipantRef] | None = None
    performed_by: str = "api"


class DuplicateRequest(BaseModel):
    new_name: str
    performed_by: str = "api"


class ApiInput(BaseModel):
    kind: str
    payload: dict[str, Any] = Field(default_factory=dict)


class ApiObject(BaseModel):
    kind: str
    object_id: str
    data: dict[str, Any] = Field(default_factory=dict)


class EventRequest(BaseModel):
    """Context for one event execution."""

    workflow_name: str
    inputs: list[ApiInput] = Field(default_factory=list)
    objects: list[ApiObject] = Field(default_factory=list)
    data: dict[str, Any] = Field(default_factory=dict)

    def to_context(self, organization_id: str) -> ExecutionContext:
        return ExecutionContext(
            organization_id=organization_id,
            workflow_name=self.workflow_name,
            inputs=[ContextInput(kind=i.kind, payload=i.payload) for i in self.inputs],
            objects=[
                ContextObject(kind=o.kind, object_id=o.object_id, data=o.data) for o in self.objects
            ],
            data=dict(self.data),
        )


class ApiStep(BaseModel):
    behavior_id: str
    behavior_type: str
    success: bool
    message: str
    skipped: bool = False
    data: dict[str, Any] | None = None
    failure_kind: str | None = None


class ApiExecutionResult(BaseModel):
    success: bool
    steps: list[ApiStep]
    context: dict[str, Any]
    errors: list[str]
    executed_count: int
    total_count: int
