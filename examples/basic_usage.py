#!/usr/bin/env python3
"""Programmatic engine example.

This demonstrates using the engine components directly:

* load settings from `.env`
* instantiate and activate the employer-billed registration template
* register in-process behavior implementations
* handle a `checkout_start` event and print the step trail

Workflows are persisted under `ENGINE_STATE_PATH` (default `engine_state/`).
"""

from __future__ import annotations

import argparse
import json
from collections.abc import Mapping
from typing import Any, Sequence

from behavior_workflows.engine.config import EngineSettings
from behavior_workflows.engine.logging import configure_logging
from behavior_workflows.engine.workflow import (
    BehaviorRegistry,
    BehaviorResult,
    ContextInput,
    ContextObject,
    ExecutionContext,
    FailureKind,
    ParticipantBinding,
    WorkflowActionLog,
    WorkflowEngine,
    WorkflowService,
    WorkflowStore,
)


def form_linking(_org: str, config: Mapping[str, Any], _ctx: ExecutionContext) -> BehaviorResult:
    return BehaviorResult.ok("Registration form linked", {"formTiming": config.get("timing")})


def employer_detection(
    _org: str, config: Mapping[str, Any], ctx: ExecutionContext
) -> BehaviorResult:
    field = config.get("employerField", "employer")
    for i in ctx.inputs:
        employer = i.payload.get(field)
        if employer:
            return BehaviorResult.ok(
                f"Employer detected: {employer}",
                {"billingMethod": "employer_invoice", "employer": employer},
            )
    return BehaviorResult.ok("No employer; paying directly", {"billingMethod": "direct"})


def addon_calculation(
    _org: str, config: Mapping[str, Any], _ctx: ExecutionContext
) -> BehaviorResult:
    total = sum(float(a.get("price", 0)) for a in config.get("addons", []))
    return BehaviorResult.ok("Add-ons priced", {"addonTotal": total})


def invoice_mapping(
    _org: str, config: Mapping[str, Any], ctx: ExecutionContext
) -> BehaviorResult:
    if ctx.data.get("billingMethod") != "employer_invoice":
        return BehaviorResult.ok("Direct payment; no invoice needed")
    if "employer" not in ctx.data:
        return BehaviorResult.fail("Employer missing", FailureKind.PRECONDITION_NOT_MET)
    return BehaviorResult.ok(
        "Invoice mapped",
        {"invoice": {"employer": ctx.data["employer"], "terms": config.get("paymentTerms")}},
    )


def _parse_args(argv: Sequence[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run an employer-billed checkout (example).")
    parser.add_argument("--org", default="org_demo", help="Organization id")
    parser.add_argument("--employer", default="Acme Corp", help="Employer named in the form")
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    args = _parse_args(argv)

    settings = EngineSettings()
    configure_logging(settings.log_level)

    service = WorkflowService(
        store=WorkflowStore(settings.workflows_state_file),
        actions=WorkflowActionLog(settings.actions_state_file),
    )
    registry = BehaviorRegistry(
        {
            "form-linking": form_linking,
            "employer-detection": employer_detection,
            "addon-calculation": addon_calculation,
            "invoice-mapping": invoice_mapping,
        }
    )
    engine = WorkflowEngine(service=service, registry=registry)

    workflow = service.instantiate(
        "employer-billed-event-registration",
        args.org,
        [
            ParticipantBinding(role="product", object_id="prod_conference"),
            ParticipantBinding(role="checkout", object_id="chk_main"),
            ParticipantBinding(role="registration_form", object_id="form_registration"),
        ],
        performed_by="example",
    )
    service.activate(workflow.id, performed_by="example")

    context = ExecutionContext(
        organization_id=args.org,
        workflow_name="checkout",
        inputs=[ContextInput(kind="form_responses", payload={"employer": args.employer})],
        objects=[ContextObject(kind="product", object_id="prod_conference")],
    )
    result = engine.handle_event(args.org, "checkout_start", context)

    print(json.dumps(result.to_json(), indent=2, ensure_ascii=False))
    print(f"Persisted to: {settings.workflows_state_file}")
    return 0 if result.success else 1


if __name__ == "__main__":
    raise SystemExit(main())
