"""Unit tests for the workflow lifecycle state machine.

Illegal transitions must fail loudly.
"""

from __future__ import annotations

import pytest

from behavior_workflows.engine.workflow.errors import InvalidTransition
from behavior_workflows.engine.workflow.lifecycle import can_transition, transition
from behavior_workflows.engine.workflow.models import WorkflowStatus


@pytest.mark.parametrize(
    ("current", "to", "allowed"),
    [
        (WorkflowStatus.DRAFT, WorkflowStatus.ACTIVE, True),
        (WorkflowStatus.ACTIVE, WorkflowStatus.ARCHIVED, True),
        (WorkflowStatus.DRAFT, WorkflowStatus.ARCHIVED, False),
        (WorkflowStatus.ACTIVE, WorkflowStatus.DRAFT, False),
        (WorkflowStatus.ARCHIVED, WorkflowStatus.ACTIVE, False),
        (WorkflowStatus.ARCHIVED, WorkflowStatus.DRAFT, False),
    ],
)
def test_can_transition(current: WorkflowStatus, to: WorkflowStatus, allowed: bool) -> None:
    assert can_transition(current, to) is allowed


def test_transition_rejects_illegal_transitions() -> None:
    with pytest.raises(InvalidTransition) as excinfo:
        transition(current=WorkflowStatus.ARCHIVED, to=WorkflowStatus.ACTIVE)
    assert (excinfo.value.current, excinfo.value.target) == ("archived", "active")

    assert transition(current=WorkflowStatus.DRAFT, to=WorkflowStatus.ACTIVE) == WorkflowStatus.ACTIVE
