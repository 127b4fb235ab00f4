from __future__ import annotations

from behavior_workflows.engine.workflow.context import ContextInput, ContextObject, ExecutionContext
from behavior_workflows.engine.workflow.models import (
    ExecutionContract,
    Workflow,
    context_name_for_trigger,
)
from behavior_workflows.engine.workflow.validation import validate


def _workflow(trigger_event: str, required_inputs: list[str]) -> Workflow:
    return Workflow(
        organization_id="org_1",
        name="w",
        execution=ExecutionContract(trigger_event=trigger_event, required_inputs=required_inputs),
    )


def test_valid_context() -> None:
    context = ExecutionContext(
        organization_id="org_1",
        workflow_name="checkout",
        inputs=[ContextInput(kind="form_responses")],
        objects=[ContextObject(kind="product", object_id="p1")],
    )

    report = validate(_workflow("checkout_start", ["form_responses", "product_selection"]), context)

    assert report.valid is True
    assert report.errors == []


def test_missing_inputs_and_objects_are_both_reported() -> None:
    context = ExecutionContext(organization_id="org_1", workflow_name="checkout")

    report = validate(_workflow("checkout_start", ["form_responses", "product_selection"]), context)

    assert report.valid is False
    assert [i.code for i in report.issues] == ["missing_inputs", "missing_objects"]
    assert report.errors == [
        "Form responses required but not provided",
        "Product selection required but no objects provided",
    ]


def test_unknown_required_input_can_never_be_satisfied() -> None:
    context = ExecutionContext(
        organization_id="org_1",
        workflow_name="checkout",
        inputs=[ContextInput(kind="signature")],
    )

    report = validate(_workflow("checkout_start", ["signature"]), context)

    assert [i.code for i in report.issues] == ["unsupported_input"]


def test_workflow_name_must_match_trigger() -> None:
    context = ExecutionContext(organization_id="org_1", workflow_name="form_submission")

    report = validate(_workflow("checkout_start", []), context)

    assert [i.code for i in report.issues] == ["workflow_mismatch"]
    assert "'checkout'" in report.errors[0]


def test_context_name_for_trigger() -> None:
    assert context_name_for_trigger("checkout_start") == "checkout"
    assert context_name_for_trigger("form_submission") == "form_submission"
    assert context_name_for_trigger("_start") == "_start"
