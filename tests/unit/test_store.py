"""Unit tests for the JSON-file workflow store and action log."""

from __future__ import annotations

from pathlib import Path

import pytest

from behavior_workflows.engine.workflow.errors import WorkflowNotFound
from behavior_workflows.engine.workflow.models import (
    BehaviorInstance,
    BehaviorTrigger,
    ExecutionContract,
    Workflow,
    WorkflowStatus,
)
from behavior_workflows.engine.workflow.store import WorkflowActionLog, WorkflowStore


def _workflow(org: str = "org_1", status: WorkflowStatus = WorkflowStatus.DRAFT) -> Workflow:
    return Workflow(
        organization_id=org,
        name="w",
        status=status,
        behaviors=[
            BehaviorInstance(
                type="form-linking",
                priority=5,
                config={"timing": "duringCheckout"},
                triggers=BehaviorTrigger(input_kinds=["form_responses"]),
            )
        ],
        execution=ExecutionContract(trigger_event="checkout_start"),
    )


def test_store_roundtrip(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "nested" / "workflows.json")
    assert store.list() == []

    workflow = store.add(_workflow())

    reloaded = WorkflowStore(store.path).get(workflow.id)
    assert reloaded == workflow
    assert reloaded.behaviors[0].triggers == BehaviorTrigger(input_kinds=["form_responses"])


def test_store_rejects_duplicate_ids(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")
    workflow = store.add(_workflow())

    with pytest.raises(ValueError):
        store.add(workflow)


def test_upsert_and_filters(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")
    first = store.add(_workflow())
    store.add(_workflow(org="org_2"))

    store.upsert(first.model_copy(update={"status": WorkflowStatus.ACTIVE}))

    assert [w.id for w in store.list_for_organization("org_1")] == [first.id]
    assert [w.id for w in store.list_for_organization("org_1", status=WorkflowStatus.ACTIVE)] == [
        first.id
    ]
    assert store.list_for_organization("org_1", status=WorkflowStatus.DRAFT) == []


def test_missing_records(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")

    with pytest.raises(WorkflowNotFound):
        store.get("wf_missing")
    with pytest.raises(WorkflowNotFound):
        store.delete("wf_missing")


def test_modify_writes_the_changed_record(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")
    workflow = store.add(_workflow())

    before, after = store.modify(
        workflow.id, lambda w: w.model_copy(update={"status": WorkflowStatus.ACTIVE})
    )

    assert before == workflow
    assert after.status == WorkflowStatus.ACTIVE
    assert WorkflowStore(store.path).get(workflow.id).status == WorkflowStatus.ACTIVE


def test_modify_skips_the_write_when_nothing_changed(
    tmp_path: Path, monkeypatch: pytest.MonkeyPatch
) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")
    workflow = store.add(_workflow())
    saves: list[int] = []
    monkeypatch.setattr(store, "_save_unlocked", lambda workflows: saves.append(len(workflows)))

    before, after = store.modify(workflow.id, lambda w: w)

    assert before is after
    assert saves == []


def test_modify_errors_leave_the_file_untouched(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")
    workflow = store.add(_workflow())

    def refuse(_w: Workflow) -> Workflow:
        raise RuntimeError("nope")

    with pytest.raises(RuntimeError):
        store.modify(workflow.id, refuse)
    with pytest.raises(WorkflowNotFound):
        store.modify("wf_missing", lambda w: w)
    assert store.list() == [workflow]


def test_add_guard_sees_current_records_and_can_refuse(tmp_path: Path) -> None:
    store = WorkflowStore(tmp_path / "workflows.json")
    first = store.add(_workflow())
    seen: list[list[str]] = []

    def guard(workflows: list[Workflow]) -> None:
        seen.append([w.id for w in workflows])
        raise ValueError("full")

    with pytest.raises(ValueError, match="full"):
        store.add(_workflow(), guard=guard)

    assert seen == [[first.id]]
    assert store.list() == [first]


@pytest.mark.parametrize("content", ["{not json", '{"id": 1}', "null"])
def test_unreadable_file_is_treated_as_empty(tmp_path: Path, content: str) -> None:
    path = tmp_path / "workflows.json"
    path.write_text(content, encoding="utf-8")

    assert WorkflowStore(path).list() == []


def test_action_log_appends_and_filters(tmp_path: Path) -> None:
    log = WorkflowActionLog(tmp_path / "actions.json")
    a = _workflow()
    b = _workflow()

    recorded = log.record(workflow=a, action_type="workflow_created", performed_by="u1", n=1)
    log.record(workflow=b, action_type="workflow_created")

    assert recorded.action_id.startswith("act_")
    assert [x.workflow_id for x in log.list()] == [a.id, b.id]
    only_a = log.list(workflow_id=a.id)
    assert len(only_a) == 1
    assert only_a[0].action_data == {"n": 1}
    assert only_a[0].performed_by == "u1"
