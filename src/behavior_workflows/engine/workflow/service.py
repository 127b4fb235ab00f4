"""Workflow lifecycle operations.

Every operation either succeeds completely or persists nothing. Validation
and participant binding happen before the store is touched; the workflow
limit and status checks run inside the store lock with the write they guard.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping, Sequence
from typing import Any

from .errors import DuplicateParticipant, InvalidTransition, LimitExceeded, MissingParticipant
from .lifecycle import transition
from .models import (
    BehaviorInstance,
    BehaviorMetadata,
    BehaviorSpec,
    ExecutionContract,
    FailurePolicy,
    ParticipantBinding,
    ParticipantRef,
    Workflow,
    WorkflowStatus,
    new_behavior_id,
    utc_iso_now,
)
from .store import AddGuard, WorkflowActionLog, WorkflowStore
from .templates import Template, get_template

logger = logging.getLogger(__name__)

UNLIMITED = -1

ConfigOverrides = Mapping[int, Mapping[str, Any]] | Sequence[Mapping[str, Any] | None]


def _normalise_overrides(overrides: ConfigOverrides | None) -> dict[int, dict[str, Any]]:
    if overrides is None:
        return {}
    if isinstance(overrides, Mapping):
        return {int(k): dict(v) for k, v in overrides.items()}
    return {idx: dict(v) for idx, v in enumerate(overrides) if v is not None}


def bind_participants(
    template: Template, bindings: Iterable[ParticipantBinding]
) -> list[ParticipantRef]:
    """Bind objects to template roles.

    Each role may be bound at most once and must be declared by the template.
    Every required role must be bound. Output follows template role order.
    """

    by_role: dict[str, ParticipantBinding] = {}
    for binding in bindings:
        role = template.role(binding.role)
        if role is None:
            raise DuplicateParticipant(
                template_id=template.id, role=binding.role, reason="role not declared by template"
            )
        if binding.role in by_role:
            raise DuplicateParticipant(
                template_id=template.id, role=binding.role, reason="role bound more than once"
            )
        by_role[binding.role] = binding

    for required in template.required_roles:
        if required not in by_role:
            raise MissingParticipant(template_id=template.id, role=required)

    participants: list[ParticipantRef] = []
    for role in template.participants:
        binding = by_role.get(role.role)
        if binding is None:
            continue
        participants.append(
            ParticipantRef(
                object_id=binding.object_id,
                object_kind=binding.object_kind or role.object_kind,
                role=role.role,
                config=dict(binding.config),
            )
        )
    return participants


class WorkflowService:
    """Create, transition and maintain organization-owned workflows."""

    def __init__(
        self,
        *,
        store: WorkflowStore,
        actions: WorkflowActionLog | None = None,
        max_workflows_per_organization: int = UNLIMITED,
        max_behaviors_per_workflow: int = UNLIMITED,
    ) -> None:
        self.store = store
        self.actions = actions
        self.max_workflows_per_organization = max_workflows_per_organization
        self.max_behaviors_per_workflow = max_behaviors_per_workflow

    def _record(self, workflow: Workflow, action_type: str, performed_by: str, **data: Any) -> None:
        if self.actions is not None:
            self.actions.record(
                workflow=workflow, action_type=action_type, performed_by=performed_by, **data
            )

    def _workflow_limit_guard(self, organization_id: str) -> AddGuard:
        """Guard for `WorkflowStore.add` enforcing the per-organization limit."""

        def check(workflows: list[Workflow]) -> None:
            limit = self.max_workflows_per_organization
            if limit == UNLIMITED:
                return
            current = [
                w
                for w in workflows
                if w.organization_id == organization_id and w.status != WorkflowStatus.ARCHIVED
            ]
            if len(current) + 1 > limit:
                raise LimitExceeded(
                    limit_key="maxWorkflows",
                    limit=limit,
                    current_count=len(current) + 1,
                    details={"organization_id": organization_id},
                )

        return check

    def _check_behavior_limit(self, count: int) -> None:
        limit = self.max_behaviors_per_workflow
        if limit != UNLIMITED and count > limit:
            raise LimitExceeded(
                limit_key="maxBehaviorsPerWorkflow", limit=limit, current_count=count
            )

    def instantiate(
        self,
        template_id: str,
        organization_id: str,
        participant_bindings: Iterable[ParticipantBinding],
        behavior_config_overrides: ConfigOverrides | None = None,
        *,
        name: str | None = None,
        description: str | None = None,
        performed_by: str = "system",
    ) -> Workflow:
        """Create a draft workflow from a catalog template.

        Behaviors are copied in template order with fresh ids. An override at
        position `i` replaces the config of the i-th template behavior.
        """

        template = get_template(template_id)
        participants = bind_participants(template, participant_bindings)
        overrides = _normalise_overrides(behavior_config_overrides)

        unknown_positions = sorted(set(overrides) - set(range(len(template.behaviors))))
        if unknown_positions:
            raise ValueError(
                f"Config overrides reference unknown behavior positions: {unknown_positions}"
            )

        behaviors = [
            BehaviorInstance(
                id=new_behavior_id(),
                type=tb.type,
                enabled=tb.enabled,
                priority=tb.priority,
                description=tb.description,
                config=overrides[idx] if idx in overrides else dict(tb.config),
                metadata=BehaviorMetadata(created_by=performed_by),
            )
            for idx, tb in enumerate(template.behaviors)
        ]
        self._check_behavior_limit(len(behaviors))

        workflow = Workflow(
            organization_id=organization_id,
            name=name or template.name,
            description=template.description if description is None else description,
            status=WorkflowStatus.DRAFT,
            subtype=template.subtype,
            participants=participants,
            behaviors=behaviors,
            execution=template.execution.model_copy(deep=True),
            template_id=template.id,
            created_by=performed_by,
        )
        self.store.add(workflow, guard=self._workflow_limit_guard(organization_id))
        self._record(
            workflow,
            "workflow_created",
            performed_by,
            template_id=template.id,
            object_count=len(participants),
            behavior_count=len(behaviors),
        )
        logger.info(
            "Workflow instantiated from template",
            extra={
                "workflow_id": workflow.id,
                "template_id": template.id,
                "organization_id": organization_id,
            },
        )
        return workflow

    def create_custom(
        self,
        organization_id: str,
        *,
        name: str,
        subtype: str,
        trigger_event: str,
        behaviors: Iterable[BehaviorSpec] = (),
        failure_policy: FailurePolicy | str = FailurePolicy.CONTINUE,
        required_inputs: Iterable[str] = (),
        output_actions: Iterable[str] = (),
        participants: Iterable[ParticipantRef] = (),
        zero_tolerance: bool = False,
        description: str = "",
        performed_by: str = "system",
    ) -> Workflow:
        """Build a draft workflow from scratch (no template provenance)."""

        if not trigger_event.strip():
            raise ValueError("trigger_event is required")

        instances = [
            BehaviorInstance(
                id=new_behavior_id(),
                type=spec.type,
                enabled=spec.enabled,
                priority=spec.priority,
                config=dict(spec.config),
                triggers=spec.triggers,
                description=spec.description,
                metadata=BehaviorMetadata(created_by=performed_by),
            )
            for spec in behaviors
        ]
        self._check_behavior_limit(len(instances))

        workflow = Workflow(
            organization_id=organization_id,
            name=name,
            description=description,
            status=WorkflowStatus.DRAFT,
            subtype=subtype,
            participants=list(participants),
            behaviors=instances,
            execution=ExecutionContract(
                trigger_event=trigger_event,
                required_inputs=list(required_inputs),
                output_actions=list(output_actions),
                failure_policy=FailurePolicy(failure_policy),
                zero_tolerance=zero_tolerance,
            ),
            template_id=None,
            created_by=performed_by,
        )
        self.store.add(workflow, guard=self._workflow_limit_guard(organization_id))
        self._record(
            workflow,
            "workflow_created",
            performed_by,
            trigger_event=trigger_event,
            behavior_count=len(instances),
        )
        logger.info(
            "Custom workflow created",
            extra={"workflow_id": workflow.id, "organization_id": organization_id},
        )
        return workflow

    def get(self, workflow_id: str) -> Workflow:
        return self.store.get(workflow_id)

    def list_workflows(
        self,
        organization_id: str,
        *,
        subtype: str | None = None,
        status: WorkflowStatus | str | None = None,
        object_kind: str | None = None,
        trigger_event: str | None = None,
    ) -> list[Workflow]:
        wanted_status = WorkflowStatus(status) if status is not None else None
        workflows = self.store.list_for_organization(organization_id, status=wanted_status)
        if subtype:
            workflows = [w for w in workflows if w.subtype == subtype]
        if object_kind:
            workflows = [w for w in workflows if w.involves_object_kind(object_kind)]
        if trigger_event:
            workflows = [w for w in workflows if w.execution.trigger_event == trigger_event]
        return workflows

    def _set_status(
        self, workflow_id: str, to: WorkflowStatus, action_type: str, performed_by: str
    ) -> Workflow:
        def change(workflow: Workflow) -> Workflow:
            status = transition(current=workflow.status, to=to)
            return workflow.model_copy(update={"status": status, "updated_at": utc_iso_now()})

        before, updated = self.store.modify(workflow_id, change)
        previous = before.status
        self._record(updated, action_type, performed_by, previous_status=previous.value)
        logger.info(
            "Workflow status changed",
            extra={"workflow_id": workflow_id, "from": previous.value, "to": updated.status.value},
        )
        return updated

    def activate(self, workflow_id: str, *, performed_by: str = "system") -> Workflow:
        return self._set_status(
            workflow_id, WorkflowStatus.ACTIVE, "workflow_activated", performed_by
        )

    def archive(self, workflow_id: str, *, performed_by: str = "system") -> Workflow:
        return self._set_status(
            workflow_id, WorkflowStatus.ARCHIVED, "workflow_archived", performed_by
        )

    def update(
        self,
        workflow_id: str,
        *,
        name: str | None = None,
        description: str | None = None,
        behaviors: Iterable[BehaviorSpec] | None = None,
        participants: Iterable[ParticipantRef] | None = None,
        performed_by: str = "system",
    ) -> Workflow:
        """Edit a non-archived workflow. The execution contract is fixed at creation.

        Behavior specs that carry the id of an existing behavior keep that id
        and its creation metadata; all others become new behaviors.
        """

        specs = list(behaviors) if behaviors is not None else None
        if specs is not None:
            self._check_behavior_limit(len(specs))
        changed_fields = sorted(
            field
            for field, value in (
                ("name", name),
                ("description", description),
                ("participants", participants),
                ("behaviors", specs),
            )
            if value is not None
        )

        def change(workflow: Workflow) -> Workflow:
            if workflow.status == WorkflowStatus.ARCHIVED:
                raise InvalidTransition(current=workflow.status.value, target="updated")
            if not changed_fields:
                return workflow

            now = utc_iso_now()
            updates: dict[str, Any] = {"updated_at": now}
            if name is not None:
                updates["name"] = name
            if description is not None:
                updates["description"] = description
            if participants is not None:
                updates["participants"] = list(participants)
            if specs is not None:
                existing = {b.id: b for b in workflow.behaviors}
                rebuilt: list[BehaviorInstance] = []
                for spec in specs:
                    prior = existing.get(spec.id) if spec.id else None
                    if prior is not None:
                        metadata = prior.metadata.model_copy(
                            update={"last_modified_at": now, "last_modified_by": performed_by}
                        )
                        behavior_id = prior.id
                    else:
                        metadata = BehaviorMetadata(created_by=performed_by)
                        behavior_id = new_behavior_id()
                    rebuilt.append(
                        BehaviorInstance(
                            id=behavior_id,
                            type=spec.type,
                            enabled=spec.enabled,
                            priority=spec.priority,
                            config=dict(spec.config),
                            triggers=spec.triggers,
                            description=spec.description,
                            metadata=metadata,
                        )
                    )
                updates["behaviors"] = rebuilt
            return workflow.model_copy(update=updates)

        before, updated = self.store.modify(workflow_id, change)
        if updated is before:
            return updated
        self._record(updated, "workflow_updated", performed_by, updated_fields=changed_fields)
        return updated

    def duplicate(
        self, workflow_id: str, new_name: str, *, performed_by: str = "system"
    ) -> Workflow:
        """Copy a workflow into a new draft with fresh behavior ids."""

        source = self.store.get(workflow_id)
        now = utc_iso_now()
        original = source.model_copy(deep=True)
        clone = Workflow(
            organization_id=original.organization_id,
            name=new_name,
            description=original.description,
            status=WorkflowStatus.DRAFT,
            subtype=original.subtype,
            participants=original.participants,
            behaviors=[
                b.model_copy(
                    update={
                        "id": new_behavior_id(),
                        "metadata": BehaviorMetadata(created_at=now, created_by=performed_by),
                    }
                )
                for b in original.behaviors
            ],
            execution=original.execution,
            template_id=original.template_id,
            created_by=performed_by,
        )
        self.store.add(clone, guard=self._workflow_limit_guard(source.organization_id))
        self._record(
            clone,
            "workflow_duplicated",
            performed_by,
            original_workflow_id=source.id,
            original_workflow_name=source.name,
        )
        return clone

    def delete(self, workflow_id: str, *, performed_by: str = "system") -> Workflow:
        removed = self.store.delete(workflow_id)
        self._record(
            removed, "workflow_permanently_deleted", performed_by, workflow_name=removed.name
        )
        logger.info("Workflow permanently deleted", extra={"workflow_id": workflow_id})
        return removed
