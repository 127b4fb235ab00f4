"""Workflow behavior execution.

This package holds the first-class types for:
- Templates (immutable blueprints) and persisted Workflows
- Behaviors (opaque, registry-dispatched pipeline steps)
- The execution context shared by the steps of one run
- Trigger resolution, contract validation and the priority scheduler

Control flow is deterministic: for a given behavior list and context the
execution order is fixed by priority with declaration order breaking ties.
"""

from .behaviors import Behavior, BehaviorRegistry, BehaviorResult, FailureKind
from .context import ContextInput, ContextObject, ExecutionContext, ExecutionResult, StepResult
from .errors import (
    DuplicateParticipant,
    InvalidTransition,
    LimitExceeded,
    MissingParticipant,
    TemplateNotFound,
    UnknownBehaviorType,
    WorkflowEngineError,
    WorkflowMismatch,
    WorkflowNotFound,
)
from .executor import WorkflowEngine
from .models import (
    BehaviorInstance,
    BehaviorSpec,
    BehaviorTrigger,
    ExecutionContract,
    FailurePolicy,
    ParticipantBinding,
    ParticipantRef,
    Workflow,
    WorkflowStatus,
)
from .scheduler import BehaviorScheduler
from .service import WorkflowService
from .store import WorkflowActionLog, WorkflowStore

__all__ = [
    "Behavior",
    "BehaviorInstance",
    "BehaviorRegistry",
    "BehaviorResult",
    "BehaviorScheduler",
    "BehaviorSpec",
    "BehaviorTrigger",
    "ContextInput",
    "ContextObject",
    "DuplicateParticipant",
    "ExecutionContext",
    "ExecutionContract",
    "ExecutionResult",
    "FailureKind",
    "FailurePolicy",
    "InvalidTransition",
    "LimitExceeded",
    "MissingParticipant",
    "ParticipantBinding",
    "ParticipantRef",
    "StepResult",
    "TemplateNotFound",
    "UnknownBehaviorType",
    "Workflow",
    "WorkflowActionLog",
    "WorkflowEngine",
    "WorkflowEngineError",
    "WorkflowMismatch",
    "WorkflowNotFound",
    "WorkflowService",
    "WorkflowStatus",
    "WorkflowStore",
]
