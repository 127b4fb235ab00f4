"""Trigger resolution and cross-workflow behavior merge.

Behaviors from every matched workflow land in one priority space: there is no
namespacing between workflows at merge time. Two workflows reacting to the same
event are interleaved purely by numeric priority once the scheduler sorts the
merged list, so priorities are a global ordering per trigger event within an
organization.
"""

from __future__ import annotations

from collections.abc import Iterable

from .models import BehaviorInstance, Workflow, WorkflowStatus
from .store import WorkflowStore


def resolve_for_trigger(
    store: WorkflowStore, organization_id: str, event_name: str
) -> list[Workflow]:
    """Active workflows of `organization_id` whose contract triggers on `event_name`."""

    return [
        w
        for w in store.list_for_organization(organization_id, status=WorkflowStatus.ACTIVE)
        if w.execution.trigger_event == event_name
    ]


def flatten_behaviors(workflows: Iterable[Workflow]) -> list[BehaviorInstance]:
    """Concatenate behavior lists in workflow order, keeping each internal order.

    Returns copies, so an execution never shares behavior objects with another.
    """

    return [b.model_copy(deep=True) for w in workflows for b in w.behaviors]
