"""FastAPI app factory.

Endpoints are thin wrappers over the engine services. The two caller
contracts are the workflow lifecycle and event execution.
"""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from behavior_workflows import __version__
from behavior_workflows.engine.config import EngineSettings
from behavior_workflows.engine.workflow.behaviors import BehaviorRegistry
from behavior_workflows.engine.workflow.context import ExecutionResult
from behavior_workflows.engine.workflow.errors import (
    InvalidTransition,
    TemplateNotFound,
    WorkflowEngineError,
    WorkflowNotFound,
)
from behavior_workflows.engine.workflow.executor import WorkflowEngine
from behavior_workflows.engine.workflow.models import Workflow, WorkflowStatus
from behavior_workflows.engine.workflow.notifier import Notifier, build_notifier
from behavior_workflows.engine.workflow.service import WorkflowService
from behavior_workflows.engine.workflow.store import WorkflowAction, WorkflowActionLog, WorkflowStore
from behavior_workflows.engine.workflow.templates import Template, get_template, list_templates
from behavior_workflows.server.config import ServerSettings
from behavior_workflows.server.models import (
    ApiExecutionResult,
    CreateWorkflowRequest,
    DuplicateRequest,
    EventRequest,
    InstantiateRequest,
    UpdateWorkflowRequest,
)

logger = logging.getLogger(__name__)


def _error(status_code: int, exc: Exception) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"detail": str(exc), "error": type(exc).__name__},
    )


def _to_api_result(result: ExecutionResult) -> ApiExecutionResult:
    return ApiExecutionResult.model_validate(result.to_json())


def create_app(
    *,
    registry: BehaviorRegistry | None = None,
    notifier: Notifier | None = None,
    settings: EngineSettings | None = None,
) -> FastAPI:
    engine_settings = settings or EngineSettings()
    server_settings = ServerSettings()

    app = FastAPI(
        title="Workflow Behavior Engine",
        version=__version__,
        description="REST API over workflow lifecycle and behavior execution.",
        openapi_url="/api/openapi.json",
        docs_url="/api/docs",
        redoc_url="/api/redoc",
    )
    app.state.settings = engine_settings

    app.add_middleware(
        CORSMiddleware,
        allow_origins=server_settings.parsed_cors_origins(),
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    actions = WorkflowActionLog(engine_settings.actions_state_file)
    service = WorkflowService(
        store=WorkflowStore(engine_settings.workflows_state_file),
        actions=actions,
        max_workflows_per_organization=engine_settings.max_workflows_per_organization,
        max_behaviors_per_workflow=engine_settings.max_behaviors_per_workflow,
    )
    if notifier is None:
        notifier = build_notifier(
            engine_settings.notify_webhook_url, timeout=engine_settings.notify_timeout_seconds
        )
    engine = WorkflowEngine(
        service=service,
        registry=registry if registry is not None else BehaviorRegistry(),
        notifier=notifier,
    )
    app.state.engine = engine

    @app.exception_handler(WorkflowNotFound)
    async def _workflow_not_found(_request: Request, exc: WorkflowNotFound) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(TemplateNotFound)
    async def _template_not_found(_request: Request, exc: TemplateNotFound) -> JSONResponse:
        return _error(404, exc)

    @app.exception_handler(InvalidTransition)
    async def _invalid_transition(_request: Request, exc: InvalidTransition) -> JSONResponse:
        return _error(409, exc)

    @app.exception_handler(WorkflowEngineError)
    async def _engine_error(_request: Request, exc: WorkflowEngineError) -> JSONResponse:
        logger.warning("Request rejected", extra={"error_type": type(exc).__name__})
        return _error(422, exc)

    @app.exception_handler(ValueError)
    async def _value_error(_request: Request, exc: ValueError) -> JSONResponse:
        return _error(422, exc)

    @app.get("/api/v1/health")
    def health() -> dict[str, str]:
        return {"status": "ok", "version": __version__}

    @app.get("/api/v1/templates", response_model=list[Template])
    def templates(category: str | None = None) -> list[Template]:
        return list_templates(category)

    @app.get("/api/v1/templates/{template_id}", response_model=Template)
    def template(template_id: str) -> Template:
        return get_template(template_id)

    @app.post(
        "/api/v1/organizations/{organization_id}/workflows/from-template",
        response_model=Workflow,
        status_code=201,
    )
    def instantiate(organization_id: str, req: InstantiateRequest) -> Workflow:
        return service.instantiate(
            req.template_id,
            organization_id,
            req.participants,
            req.behavior_config_overrides,
            name=req.name,
            description=req.description,
            performed_by=req.performed_by,
        )

    @app.post(
        "/api/v1/organizations/{organization_id}/workflows",
        response_model=Workflow,
        status_code=201,
    )
    def create_workflow(organization_id: str, req: CreateWorkflowRequest) -> Workflow:
        return service.create_custom(
            organization_id,
            name=req.name,
            subtype=req.subtype,
            trigger_event=req.trigger_event,
            behaviors=req.behaviors,
            failure_policy=req.failure_policy,
            required_inputs=req.required_inputs,
            output_actions=req.output_actions,
            participants=req.participants,
            zero_tolerance=req.zero_tolerance,
            description=req.description,
            performed_by=req.performed_by,
        )

    @app.get("/api/v1/organizations/{organization_id}/workflows", response_model=list[Workflow])
    def list_workflows(
        organization_id: str,
        subtype: str | None = None,
        status: WorkflowStatus | None = None,
        object_kind: str | None = None,
        trigger_event: str | None = None,
    ) -> list[Workflow]:
        return service.list_workflows(
            organization_id,
            subtype=subtype,
            status=status,
            object_kind=object_kind,
            trigger_event=trigger_event,
        )

    @app.get("/api/v1/workflows/{workflow_id}", response_model=Workflow)
    def get_workflow(workflow_id: str) -> Workflow:
        return service.get(workflow_id)

    @app.patch("/api/v1/workflows/{workflow_id}", response_model=Workflow)
    def update_workflow(workflow_id: str, req: UpdateWorkflowRequest) -> Workflow:
        return service.update(
            workflow_id,
            name=req.name,
            description=req.description,
            behaviors=req.behaviors,
            participants=req.participants,
            performed_by=req.performed_by,
        )

    @app.post("/api/v1/workflows/{workflow_id}/activate", response_model=Workflow)
    def activate(workflow_id: str, performed_by: str = "api") -> Workflow:
        return service.activate(workflow_id, performed_by=performed_by)

    @app.post("/api/v1/workflows/{workflow_id}/archive", response_model=Workflow)
    def archive(workflow_id: str, performed_by: str = "api") -> Workflow:
        return service.archive(workflow_id, performed_by=performed_by)

    @app.post(
        "/api/v1/workflows/{workflow_id}/duplicate", response_model=Workflow, status_code=201
    )
    def duplicate(workflow_id: str, req: DuplicateRequest) -> Workflow:
        return service.duplicate(workflow_id, req.new_name, performed_by=req.performed_by)

    @app.delete("/api/v1/workflows/{workflow_id}", status_code=204)
    def delete_workflow(workflow_id: str, performed_by: str = "api") -> None:
        service.delete(workflow_id, performed_by=performed_by)

    @app.get("/api/v1/workflows/{workflow_id}/actions", response_model=list[WorkflowAction])
    def workflow_actions(workflow_id: str) -> list[WorkflowAction]:
        service.get(workflow_id)
        return actions.list(workflow_id=workflow_id)

    @app.post(
        "/api/v1/organizations/{organization_id}/events/{event_name}",
        response_model=ApiExecutionResult,
    )
    def handle_event(
        organization_id: str, event_name: str, req: EventRequest
    ) -> ApiExecutionResult:
        context = req.to_context(organization_id)
        return _to_api_result(engine.handle_event(organization_id, event_name, context))

    return app
