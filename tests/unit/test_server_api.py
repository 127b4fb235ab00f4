from __future__ import annotations

from collections.abc import Mapping
from pathlib import Path
from typing import Any
from unittest.mock import Mock

import pytest
from fastapi.testclient import TestClient

from behavior_workflows.engine.workflow.behaviors import (
    BehaviorRegistry,
    BehaviorResult,
    FailureKind,
)
from behavior_workflows.engine.workflow.context import ExecutionContext
from behavior_workflows.server.app import create_app


def _create_contact(_org: str, config: Mapping[str, Any], ctx: ExecutionContext) -> BehaviorResult:
    email = ctx.inputs[0].payload.get("email")
    if not email:
        return BehaviorResult.fail("email is required", FailureKind.VALIDATION_FAILED)
    return BehaviorResult.ok("contact created", {"contactId": f"c_{email}", "dedupe": config["dedupeBy"]})


def _send_email(_org: str, _config: Mapping[str, Any], ctx: ExecutionContext) -> BehaviorResult:
    if "contactId" not in ctx.data:
        return BehaviorResult.fail("no contact", FailureKind.PRECONDITION_NOT_MET)
    return BehaviorResult.ok("sent")


@pytest.fixture
def notifier() -> Mock:
    return Mock()


@pytest.fixture
def client(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, notifier: Mock) -> TestClient:
    monkeypatch.chdir(tmp_path)
    monkeypatch.setenv("ENGINE_STATE_PATH", str(tmp_path / "state"))
    registry = BehaviorRegistry(
        {"create-contact": _create_contact, "send-confirmation-email": _send_email}
    )
    return TestClient(create_app(registry=registry, notifier=notifier))


def _crm_workflow(client: TestClient, org: str = "org_1") -> dict[str, Any]:
    resp = client.post(
        f"/api/v1/organizations/{org}/workflows/from-template",
        json={
            "template_id": "form-submission-to-crm",
            "participants": [{"role": "form", "object_id": "form_1"}],
            "behavior_config_overrides": {"0": {"dedupeBy": "phone"}},
        },
    )
    assert resp.status_code == 201, resp.text
    return resp.json()


def test_health_and_templates(client: TestClient) -> None:
    assert client.get("/api/v1/health").json()["status"] == "ok"

    templates = client.get("/api/v1/templates").json()
    assert len(templates) == 5
    assert [t["id"] for t in client.get("/api/v1/templates?category=support").json()] == [
        "support-ticket-intake"
    ]
    assert client.get("/api/v1/templates/simple-product-checkout").json()["name"] == (
        "Simple Product Checkout"
    )

    missing = client.get("/api/v1/templates/nope")
    assert missing.status_code == 404
    assert missing.json()["error"] == "TemplateNotFound"


def test_workflow_lifecycle_over_http(client: TestClient) -> None:
    workflow = _crm_workflow(client)
    assert workflow["status"] == "draft"
    assert workflow["behaviors"][0]["config"] == {"dedupeBy": "phone"}
    wid = workflow["id"]

    assert client.post(f"/api/v1/workflows/{wid}/activate").json()["status"] == "active"
    again = client.post(f"/api/v1/workflows/{wid}/activate")
    assert again.status_code == 409
    assert again.json()["error"] == "InvalidTransition"

    listed = client.get("/api/v1/organizations/org_1/workflows?status=active").json()
    assert [w["id"] for w in listed] == [wid]

    renamed = client.patch(f"/api/v1/workflows/{wid}", json={"name": "Leads"})
    assert renamed.json()["name"] == "Leads"

    copy = client.post(f"/api/v1/workflows/{wid}/duplicate", json={"new_name": "Leads 2"})
    assert copy.status_code == 201
    assert copy.json()["status"] == "draft"

    actions = client.get(f"/api/v1/workflows/{wid}/actions").json()
    assert [a["action_type"] for a in actions] == [
        "workflow_created",
        "workflow_activated",
        "workflow_updated",
    ]

    assert client.post(f"/api/v1/workflows/{wid}/archive").json()["status"] == "archived"
    assert client.delete(f"/api/v1/workflows/{wid}").status_code == 204
    assert client.get(f"/api/v1/workflows/{wid}").status_code == 404


def test_action_history_is_served_from_the_app_action_log(client: TestClient) -> None:
    wid = _crm_workflow(client)["id"]
    # The route reads the log it was built with, not the service attribute.
    client.app.state.engine.service.actions = None

    resp = client.get(f"/api/v1/workflows/{wid}/actions")

    assert resp.status_code == 200
    assert [a["action_type"] for a in resp.json()] == ["workflow_created"]
    assert client.get("/api/v1/workflows/wf_missing/actions").status_code == 404


def test_instantiate_errors(client: TestClient) -> None:
    missing_role = client.post(
        "/api/v1/organizations/org_1/workflows/from-template",
        json={"template_id": "simple-product-checkout", "participants": []},
    )
    assert missing_role.status_code == 422
    assert missing_role.json()["error"] == "MissingParticipant"

    bad_override = client.post(
        "/api/v1/organizations/org_1/workflows/from-template",
        json={
            "template_id": "form-submission-to-crm",
            "participants": [{"role": "form", "object_id": "form_1"}],
            "behavior_config_overrides": {"9": {}},
        },
    )
    assert bad_override.status_code == 422

    assert client.get("/api/v1/organizations/org_1/workflows").json() == []


def test_custom_workflow(client: TestClient) -> None:
    resp = client.post(
        "/api/v1/organizations/org_1/workflows",
        json={
            "name": "Ad hoc",
            "subtype": "form-processing",
            "trigger_event": "form_submission",
            "failure_policy": "rollback",
            "behaviors": [{"type": "send-confirmation-email", "priority": 5}],
        },
    )

    assert resp.status_code == 201
    body = resp.json()
    assert body["template_id"] is None
    assert body["execution"]["failure_policy"] == "rollback"


def test_event_runs_active_workflows(client: TestClient) -> None:
    wid = _crm_workflow(client)["id"]
    client.post(f"/api/v1/workflows/{wid}/activate")

    resp = client.post(
        "/api/v1/organizations/org_1/events/form_submission",
        json={
            "workflow_name": "form_submission",
            "inputs": [{"kind": "form_responses", "payload": {"email": "a@example.com"}}],
        },
    )

    assert resp.status_code == 200
    result = resp.json()
    assert result["success"] is True
    assert [s["behavior_type"] for s in result["steps"]] == [
        "create-contact",
        "send-confirmation-email",
    ]
    assert result["context"]["data"]["contactId"] == "c_a@example.com"
    assert result["executed_count"] == 2


def test_event_failure_under_notify_policy(client: TestClient, notifier: Mock) -> None:
    wid = _crm_workflow(client)["id"]
    client.post(f"/api/v1/workflows/{wid}/activate")

    result = client.post(
        "/api/v1/organizations/org_1/events/form_submission",
        json={"workflow_name": "form_submission", "inputs": [{"kind": "form_responses"}]},
    ).json()

    assert result["success"] is True
    assert [s["failure_kind"] for s in result["steps"]] == [
        "validation_failed",
        "precondition_not_met",
    ]
    assert notifier.notify.call_count == 2


def test_event_with_unregistered_behavior_is_rejected(client: TestClient) -> None:
    resp = client.post(
        "/api/v1/organizations/org_1/workflows",
        json={
            "name": "Unwired",
            "subtype": "s",
            "trigger_event": "order_paid",
            "behaviors": [{"type": "ship-order"}],
        },
    )
    client.post(f"/api/v1/workflows/{resp.json()['id']}/activate")

    result = client.post(
        "/api/v1/organizations/org_1/events/order_paid", json={"workflow_name": "order_paid"}
    )

    assert result.status_code == 422
    assert result.json()["error"] == "UnknownBehaviorType"
