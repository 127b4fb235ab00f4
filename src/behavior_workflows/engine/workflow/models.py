"""Persisted workflow shapes.

A workflow is an organization-owned, configured instance of behaviors bound to
real participants. Records are pydantic models so they round-trip through the
JSON stores unchanged.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field

START_SUFFIX = "_start"


class WorkflowStatus(str, Enum):
    DRAFT = "draft"
    ACTIVE = "active"
    ARCHIVED = "archived"


class FailurePolicy(str, Enum):
    ROLLBACK = "rollback"
    CONTINUE = "continue"
    NOTIFY = "notify"


# Strictness used when several workflows contribute to one pipeline.
POLICY_STRICTNESS: dict[FailurePolicy, int] = {
    FailurePolicy.CONTINUE: 0,
    FailurePolicy.NOTIFY: 1,
    FailurePolicy.ROLLBACK: 2,
}


def utc_iso_now() -> str:
    return datetime.now(tz=UTC).isoformat()


def new_behavior_id() -> str:
    return f"bhv_{uuid.uuid4().hex}"


def new_workflow_id() -> str:
    return f"wf_{uuid.uuid4().hex}"


def context_name_for_trigger(trigger_event: str) -> str:
    """Logical workflow name a context must carry for a trigger.

    `checkout_start` -> `checkout`; triggers without the suffix map to themselves.
    """

    if trigger_event.endswith(START_SUFFIX) and len(trigger_event) > len(START_SUFFIX):
        return trigger_event[: -len(START_SUFFIX)]
    return trigger_event


class BehaviorTrigger(BaseModel):
    """Optional eligibility predicate for a behavior.

    A field left as None places no constraint on that dimension. A present
    field requires a non-empty intersection with the context.
    """

    input_kinds: list[str] | None = None
    object_kinds: list[str] | None = None
    workflow_names: list[str] | None = None


class BehaviorMetadata(BaseModel):
    created_at: str = Field(default_factory=utc_iso_now)
    created_by: str = "system"
    last_modified_at: str | None = None
    last_modified_by: str | None = None


class BehaviorSpec(BaseModel):
    """Caller-supplied behavior definition (create/update input).

    `id` is only meaningful on update, where it identifies an existing behavior.
    """

    id: str | None = None
    type: str
    enabled: bool = True
    priority: int = 100
    config: dict[str, Any] = Field(default_factory=dict)
    triggers: BehaviorTrigger | None = None
    description: str = ""


class BehaviorInstance(BaseModel):
    id: str = Field(default_factory=new_behavior_id)
    type: str
    enabled: bool = True
    priority: int = 0
    config: dict[str, Any] = Field(default_factory=dict)
    triggers: BehaviorTrigger | None = None
    description: str = ""
    metadata: BehaviorMetadata = Field(default_factory=BehaviorMetadata)


class ParticipantRef(BaseModel):
    object_id: str
    object_kind: str
    role: str
    config: dict[str, Any] = Field(default_factory=dict)


class ParticipantBinding(BaseModel):
    """Binding of a real object to a template role at instantiation time.

    `object_kind` defaults to the kind the template expects for the role.
    """

    role: str
    object_id: str
    object_kind: str | None = None
    config: dict[str, Any] = Field(default_factory=dict)


class ExecutionContract(BaseModel):
    trigger_event: str
    required_inputs: list[str] = Field(default_factory=list)
    output_actions: list[str] = Field(default_factory=list)
    failure_policy: FailurePolicy = FailurePolicy.CONTINUE
    zero_tolerance: bool = False

    @property
    def trigger_on(self) -> str:
        return self.trigger_event

    @property
    def workflow_name(self) -> str:
        return context_name_for_trigger(self.trigger_event)


class Workflow(BaseModel):
    id: str = Field(default_factory=new_workflow_id)
    organization_id: str
    name: str
    description: str = ""
    status: WorkflowStatus = WorkflowStatus.DRAFT
    subtype: str = ""
    participants: list[ParticipantRef] = Field(default_factory=list)
    behaviors: list[BehaviorInstance] = Field(default_factory=list)
    execution: ExecutionContract
    template_id: str | None = None

    created_by: str = "system"
    created_at: str = Field(default_factory=utc_iso_now)
    updated_at: str = Field(default_factory=utc_iso_now)

    def involves_object_kind(self, object_kind: str) -> bool:
        return any(p.object_kind == object_kind for p in self.participants)
