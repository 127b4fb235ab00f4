"""Error taxonomy for workflow lifecycle and execution.

Only the classes below cross the engine boundary as exceptions. Per-step
business failures are reported as values (see `FailureKind`).
"""

from __future__ import annotations

from dataclasses import dataclass, field


class WorkflowEngineError(Exception):
    """Base class for all engine errors."""


class WorkflowNotFound(WorkflowEngineError, KeyError):
    def __init__(self, workflow_id: str) -> None:
        super().__init__(workflow_id)
        self.workflow_id = workflow_id

    def __str__(self) -> str:
        return f"Workflow not found: {self.workflow_id}"


class TemplateNotFound(WorkflowEngineError, KeyError):
    def __init__(self, template_id: str) -> None:
        super().__init__(template_id)
        self.template_id = template_id

    def __str__(self) -> str:
        return f"Template not found: {self.template_id}"


class MissingParticipant(WorkflowEngineError):
    """A required template role has no bound participant."""

    def __init__(self, *, template_id: str, role: str) -> None:
        super().__init__(f"Template {template_id!r} requires a participant for role {role!r}")
        self.template_id = template_id
        self.role = role


class DuplicateParticipant(WorkflowEngineError):
    """A role is bound more than once, or the template does not declare it."""

    def __init__(self, *, template_id: str, role: str, reason: str) -> None:
        super().__init__(f"Invalid binding for role {role!r} on {template_id!r}: {reason}")
        self.template_id = template_id
        self.role = role


class InvalidTransition(WorkflowEngineError, ValueError):
    def __init__(self, *, current: str, target: str) -> None:
        super().__init__(f"Illegal transition: {current} -> {target}")
        self.current = current
        self.target = target


class UnknownBehaviorType(WorkflowEngineError):
    def __init__(self, behavior_type: str) -> None:
        super().__init__(f"No implementation registered for behavior type {behavior_type!r}")
        self.behavior_type = behavior_type


class WorkflowMismatch(WorkflowEngineError):
    """The execution context does not satisfy a workflow's execution contract."""

    def __init__(self, *, workflow_id: str, errors: list[str]) -> None:
        super().__init__(f"Context rejected by workflow {workflow_id}: {'; '.join(errors)}")
        self.workflow_id = workflow_id
        self.errors = errors


@dataclass(eq=False)
class LimitExceeded(WorkflowEngineError):
    """A plan limit (workflows per organization, behaviors per workflow) was hit."""

    limit_key: str
    limit: int
    current_count: int
    details: dict[str, object] = field(default_factory=dict)

    def __str__(self) -> str:
        return (
            f"You've reached your {self.limit_key} limit ({self.limit}); "
            f"requested {self.current_count}"
        )
