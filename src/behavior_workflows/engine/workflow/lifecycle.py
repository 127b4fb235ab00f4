from __future__ import annotations

from .errors import InvalidTransition
from .models import WorkflowStatus

ALLOWED_TRANSITIONS: dict[WorkflowStatus, set[WorkflowStatus]] = {
    WorkflowStatus.DRAFT: {WorkflowStatus.ACTIVE},
    WorkflowStatus.ACTIVE: {WorkflowStatus.ARCHIVED},
    WorkflowStatus.ARCHIVED: set(),
}


def can_transition(current: WorkflowStatus, to: WorkflowStatus) -> bool:
    return to in ALLOWED_TRANSITIONS.get(current, set())


def transition(*, current: WorkflowStatus, to: WorkflowStatus) -> WorkflowStatus:
    """Return `to` if the lifecycle allows `current -> to`, else fail loudly."""

    if not can_transition(current, to):
        raise InvalidTransition(current=current.value, target=to.value)
    return to
