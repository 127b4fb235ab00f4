"""Event-driven execution: resolve, validate, merge and run.

Each matched workflow validates the context against its own contract; only
workflows that accept the context contribute behaviors to the merged pipeline.
The merged pipeline runs once under the strictest failure policy among the
contributors.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from typing import Any

from .behaviors import BehaviorRegistry
from .context import ContextInput, ContextObject, ExecutionContext, ExecutionResult
from .errors import WorkflowMismatch
from .models import POLICY_STRICTNESS, FailurePolicy, Workflow
from .notifier import LoggingNotifier, Notifier
from .resolver import flatten_behaviors, resolve_for_trigger
from .scheduler import BehaviorScheduler, RollbackHook
from .service import WorkflowService
from .validation import validate

logger = logging.getLogger(__name__)


def strictest_policy(workflows: Iterable[Workflow]) -> FailurePolicy:
    policies = [w.execution.failure_policy for w in workflows]
    if not policies:
        return FailurePolicy.CONTINUE
    return max(policies, key=lambda p: POLICY_STRICTNESS[p])


class WorkflowEngine:
    """Entry point a host application calls when a business event occurs."""

    def __init__(
        self,
        *,
        service: WorkflowService,
        registry: BehaviorRegistry,
        notifier: Notifier | None = None,
        on_rollback: RollbackHook | None = None,
    ) -> None:
        self.service = service
        self.scheduler = BehaviorScheduler(
            registry,
            notifier=notifier if notifier is not None else LoggingNotifier(),
            on_rollback=on_rollback,
        )

    def resolve(self, organization_id: str, event_name: str) -> list[Workflow]:
        return resolve_for_trigger(self.service.store, organization_id, event_name)

    def handle_event(
        self, organization_id: str, event_name: str, context: ExecutionContext
    ) -> ExecutionResult:
        matched = self.resolve(organization_id, event_name)
        contributors: list[Workflow] = []
        rejected: list[str] = []
        for workflow in matched:
            report = validate(workflow, context)
            if report.valid:
                contributors.append(workflow)
                continue
            logger.warning(
                "Workflow excluded: context rejected by contract",
                extra={"workflow_id": workflow.id, "errors": report.errors},
            )
            rejected.extend(f"{workflow.name}: {msg}" for msg in report.errors)

        if matched and not contributors:
            return ExecutionResult(
                success=False, steps=[], context=context.snapshot(), errors=rejected
            )

        behaviors = flatten_behaviors(contributors)
        result = self.scheduler.run(
            behaviors,
            context,
            strictest_policy(contributors),
            zero_tolerance=any(w.execution.zero_tolerance for w in contributors),
        )
        result.errors = rejected + result.errors
        logger.info(
            "Event handled",
            extra={
                "organization_id": organization_id,
                "event_name": event_name,
                "matched": len(matched),
                "contributing": len(contributors),
                "success": result.success,
            },
        )
        return result

    def execute_workflow(
        self,
        workflow_id: str,
        *,
        data: Mapping[str, Any] | None = None,
        inputs: Iterable[ContextInput] = (),
        performed_by: str = "system",
    ) -> ExecutionResult:
        """Manually run one workflow, building its context from the workflow itself.

        Raises:
            WorkflowMismatch: The built context does not satisfy the contract.
        """

        workflow = self.service.get(workflow_id)
        context = ExecutionContext(
            organization_id=workflow.organization_id,
            workflow_name=workflow.execution.workflow_name,
            inputs=list(inputs),
            objects=[
                ContextObject(kind=p.object_kind, object_id=p.object_id, data=dict(p.config))
                for p in workflow.participants
            ],
            data=dict(data or {}),
        )
        report = validate(workflow, context)
        if not report.valid:
            raise WorkflowMismatch(workflow_id=workflow.id, errors=report.errors)

        result = self.scheduler.run(
            flatten_behaviors([workflow]),
            context,
            workflow.execution.failure_policy,
            zero_tolerance=workflow.execution.zero_tolerance,
        )
        if self.service.actions is not None:
            self.service.actions.record(
                workflow=workflow,
                action_type="workflow_executed",
                performed_by=performed_by,
                success=result.success,
                behavior_count=result.executed_count,
                total_behaviors=result.total_count,
                manual_trigger=True,
            )
        return result
