"""Execution context and result shapes.

The context is the shared blackboard of one execution. It is owned by a single
scheduler run; behaviors read and write `data` and must document the keys they
use (for example a billing-detection step writes `billingMethod`, an invoicing
step later reads it).
"""

from __future__ import annotations

import copy
from dataclasses import dataclass, field
from typing import Any

from .behaviors import FailureKind


@dataclass(frozen=True, slots=True)
class ContextInput:
    """A tagged input payload, e.g. kind `form_responses`."""

    kind: str
    payload: dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True, slots=True)
class ContextObject:
    """A resolved participant reference, e.g. kind `product`."""

    kind: str
    object_id: str
    data: dict[str, Any] = field(default_factory=dict)


@dataclass(slots=True)
class ExecutionContext:
    organization_id: str
    workflow_name: str
    inputs: list[ContextInput] = field(default_factory=list)
    objects: list[ContextObject] = field(default_factory=list)
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def input_kinds(self) -> set[str]:
        return {i.kind for i in self.inputs}

    @property
    def object_kinds(self) -> set[str]:
        return {o.kind for o in self.objects}

    def merge(self, data: dict[str, Any] | None) -> None:
        """Shallow merge; later keys win."""

        if data:
            self.data.update(data)

    def snapshot(self) -> ExecutionContext:
        return ExecutionContext(
            organization_id=self.organization_id,
            workflow_name=self.workflow_name,
            inputs=list(self.inputs),
            objects=list(self.objects),
            data=copy.deepcopy(self.data),
        )

    def to_json(self) -> dict[str, object]:
        return {
            "organization_id": self.organization_id,
            "workflow_name": self.workflow_name,
            "inputs": [{"kind": i.kind, "payload": i.payload} for i in self.inputs],
            "objects": [
                {"kind": o.kind, "object_id": o.object_id, "data": o.data} for o in self.objects
            ],
            "data": self.data,
        }


@dataclass(frozen=True, slots=True)
class StepResult:
    behavior_id: str
    behavior_type: str
    success: bool
    message: str
    data: dict[str, Any] | None = None
    failure_kind: FailureKind | None = None
    skipped: bool = False

    def to_json(self) -> dict[str, object]:
        out: dict[str, object] = {
            "behavior_id": self.behavior_id,
            "behavior_type": self.behavior_type,
            "success": self.success,
            "message": self.message,
            "skipped": self.skipped,
        }
        if self.data is not None:
            out["data"] = self.data
        if self.failure_kind is not None:
            out["failure_kind"] = self.failure_kind.value
        return out


@dataclass(slots=True)
class ExecutionResult:
    success: bool
    steps: list[StepResult]
    context: ExecutionContext
    errors: list[str] = field(default_factory=list)
    total_count: int = 0

    @property
    def executed_steps(self) -> list[StepResult]:
        return [s for s in self.steps if not s.skipped]

    @property
    def executed_types(self) -> list[str]:
        return [s.behavior_type for s in self.executed_steps]

    @property
    def executed_count(self) -> int:
        return len(self.executed_steps)

    @property
    def failed_steps(self) -> list[StepResult]:
        return [s for s in self.executed_steps if not s.success]

    def to_json(self) -> dict[str, object]:
        return {
            "success": self.success,
            "steps": [s.to_json() for s in self.steps],
            "context": self.context.to_json(),
            "errors": list(self.errors),
            "executed_count": self.executed_count,
            "total_count": self.total_count,
        }
