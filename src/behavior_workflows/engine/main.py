"""CLI entrypoint for the workflow behavior engine.

Covers the template catalog, the workflow lifecycle and a dry-run `plan` that
shows the merged execution order for an event without running anything.
"""

from __future__ import annotations

import argparse
import json
import logging
import sys

from pydantic import ValidationError

from behavior_workflows import __version__
from behavior_workflows.engine.config import EngineSettings
from behavior_workflows.engine.logging import configure_logging
from behavior_workflows.engine.workflow.errors import WorkflowEngineError
from behavior_workflows.engine.workflow.models import ParticipantBinding, WorkflowStatus
from behavior_workflows.engine.workflow.resolver import flatten_behaviors, resolve_for_trigger
from behavior_workflows.engine.workflow.scheduler import order_by_priority
from behavior_workflows.engine.workflow.service import WorkflowService
from behavior_workflows.engine.workflow.store import WorkflowActionLog, WorkflowStore
from behavior_workflows.engine.workflow.templates import get_template, list_templates

logger = logging.getLogger(__name__)


def _parse_binding(value: str) -> ParticipantBinding:
    """Parse `role=kind:object_id` or `role=object_id`."""

    role, sep, target = value.partition("=")
    if not sep or not role.strip() or not target.strip():
        raise argparse.ArgumentTypeError(f"Invalid binding {value!r}; expected role=kind:object_id")
    kind, sep, object_id = target.partition(":")
    if not sep:
        return ParticipantBinding(role=role.strip(), object_id=target.strip())
    return ParticipantBinding(role=role.strip(), object_kind=kind.strip(), object_id=object_id.strip())


def _parse_override(value: str) -> tuple[int, dict[str, object]]:
    """Parse `INDEX=JSON`."""

    index, sep, raw = value.partition("=")
    try:
        position = int(index)
        config = json.loads(raw) if sep else None
    except (ValueError, json.JSONDecodeError) as e:
        raise argparse.ArgumentTypeError(f"Invalid override {value!r}: {e}") from e
    if not isinstance(config, dict):
        raise argparse.ArgumentTypeError(f"Override {value!r} must map an index to a JSON object")
    return position, config


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="behavior-workflows",
        description="Workflow behavior engine: templates, workflow lifecycle and trigger plans",
    )
    parser.add_argument(
        "--version", action="version", version=f"workflow-behavior-engine {__version__}"
    )

    subparsers = parser.add_subparsers(dest="command", required=True)

    templates = subparsers.add_parser("templates", help="List catalog templates")
    templates.add_argument("--category", default=None, help="Only list this category")

    template = subparsers.add_parser("template", help="Show one template as JSON")
    template.add_argument("--id", dest="template_id", required=True, help="Template id")

    instantiate = subparsers.add_parser(
        "instantiate", help="Create a draft workflow from a template"
    )
    instantiate.add_argument("--org", dest="organization_id", required=True)
    instantiate.add_argument("--template", dest="template_id", required=True)
    instantiate.add_argument(
        "--bind",
        dest="bindings",
        action="append",
        type=_parse_binding,
        default=[],
        help="Participant binding 'role=kind:object_id' (repeatable)",
    )
    instantiate.add_argument(
        "--override",
        dest="overrides",
        action="append",
        type=_parse_override,
        default=[],
        help="Behavior config override 'INDEX={\"key\": \"value\"}' (repeatable)",
    )
    instantiate.add_argument("--name", default=None, help="Workflow name (defaults to template)")
    instantiate.add_argument("--user", default="cli", help="Acting user recorded in the action log")

    for command, help_text in (
        ("activate", "Activate a draft workflow"),
        ("archive", "Archive an active workflow"),
        ("show", "Show one workflow as JSON"),
        ("delete", "Permanently delete a workflow"),
        ("history", "Show the action log of a workflow"),
    ):
        sub = subparsers.add_parser(command, help=help_text)
        sub.add_argument("--id", dest="workflow_id", required=True, help="Workflow id")
        sub.add_argument("--user", default="cli", help="Acting user recorded in the action log")

    duplicate = subparsers.add_parser("duplicate", help="Copy a workflow into a new draft")
    duplicate.add_argument("--id", dest="workflow_id", required=True)
    duplicate.add_argument("--name", required=True, help="Name of the copy")
    duplicate.add_argument("--user", default="cli")

    list_cmd = subparsers.add_parser("list", help="List an organization's workflows")
    list_cmd.add_argument("--org", dest="organization_id", required=True)
    list_cmd.add_argument("--status", choices=[s.value for s in WorkflowStatus], default=None)
    list_cmd.add_argument("--subtype", default=None)
    list_cmd.add_argument("--object-kind", default=None)

    plan = subparsers.add_parser(
        "plan",
        help="Dry run: show matched workflows and the merged behavior order for an event",
    )
    plan.add_argument("--org", dest="organization_id", required=True)
    plan.add_argument("--event", required=True, help="Trigger event, e.g. checkout_start")

    return parser


def _print_json(payload: object) -> None:
    print(json.dumps(payload, indent=2, ensure_ascii=False))


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    try:
        settings = EngineSettings()
    except ValidationError as e:
        # Logging isn't configured yet; keep it simple and actionable.
        print("Configuration error (check your .env):", file=sys.stderr)
        print(e, file=sys.stderr)
        return 2

    configure_logging(settings.log_level)

    store = WorkflowStore(settings.workflows_state_file)
    actions = WorkflowActionLog(settings.actions_state_file)
    service = WorkflowService(
        store=store,
        actions=actions,
        max_workflows_per_organization=settings.max_workflows_per_organization,
        max_behaviors_per_workflow=settings.max_behaviors_per_workflow,
    )

    try:
        if args.command == "templates":
            for t in list_templates(args.category):
                print(
                    f"{t.id}\t{t.category}\t{t.execution.trigger_event}\t"
                    f"{len(t.behaviors)} behaviors\t{t.name}"
                )
            return 0

        if args.command == "template":
            _print_json(get_template(args.template_id).model_dump(mode="json"))
            return 0

        if args.command == "instantiate":
            workflow = service.instantiate(
                args.template_id,
                args.organization_id,
                args.bindings,
                dict(args.overrides),
                name=args.name,
                performed_by=args.user,
            )
            logger.info(
                "Workflow persisted",
                extra={"path": str(settings.workflows_state_file), "workflow_id": workflow.id},
            )
            print(f"Created workflow {workflow.id} ({workflow.status.value}): {workflow.name}")
            return 0

        if args.command == "activate":
            workflow = service.activate(args.workflow_id, performed_by=args.user)
            print(f"Workflow {workflow.id} is now {workflow.status.value}")
            return 0

        if args.command == "archive":
            workflow = service.archive(args.workflow_id, performed_by=args.user)
            print(f"Workflow {workflow.id} is now {workflow.status.value}")
            return 0

        if args.command == "show":
            _print_json(service.get(args.workflow_id).model_dump(mode="json"))
            return 0

        if args.command == "delete":
            removed = service.delete(args.workflow_id, performed_by=args.user)
            print(f"Deleted workflow {removed.id}: {removed.name}")
            return 0

        if args.command == "history":
            _print_json(
                [a.model_dump(mode="json") for a in actions.list(workflow_id=args.workflow_id)]
            )
            return 0

        if args.command == "duplicate":
            clone = service.duplicate(args.workflow_id, args.name, performed_by=args.user)
            print(f"Created workflow {clone.id} ({clone.status.value}): {clone.name}")
            return 0

        if args.command == "list":
            workflows = service.list_workflows(
                args.organization_id,
                subtype=args.subtype,
                status=args.status,
                object_kind=args.object_kind,
            )
            if not workflows:
                print(f"No workflows found for organization {args.organization_id}")
            for w in workflows:
                print(
                    f"{w.id}\t{w.status.value}\t{w.execution.trigger_event}\t"
                    f"{len(w.behaviors)} behaviors\t{w.name}"
                )
            return 0

        if args.command == "plan":
            matched = resolve_for_trigger(store, args.organization_id, args.event)
            if not matched:
                print(f"No active workflows trigger on {args.event!r}")
                return 0
            for w in matched:
                print(f"workflow {w.id} [{w.execution.failure_policy.value}] {w.name}")
            # Trigger predicates depend on the runtime context and are not applied here.
            ordered = order_by_priority(flatten_behaviors(matched))
            for position, b in enumerate(ordered, start=1):
                gated = "" if b.triggers is None else " (trigger-gated)"
                print(f"{position:>3}. {b.type} priority={b.priority}{gated}")
            return 0

        logger.error("Unknown command", extra={"command": args.command})
        return 2

    except WorkflowEngineError as e:
        logger.warning(str(e), extra={"error_type": type(e).__name__})
        print(str(e), file=sys.stderr)
        return 3

    except ValueError as e:
        logger.warning(str(e), extra={"error_type": type(e).__name__})
        print(f"Invalid input: {e}", file=sys.stderr)
        return 2

    except Exception:
        logger.exception("Command failed")
        return 1


if __name__ == "__main__":
    raise SystemExit(main())
