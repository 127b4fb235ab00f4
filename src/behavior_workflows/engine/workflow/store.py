"""JSON-file backed persistence for workflows and their audit trail.

Both stores keep the whole collection in one file and rewrite it on every
mutation. A lock serialises access within one process.
"""

from __future__ import annotations

import json
import logging
import threading
import uuid
from collections.abc import Callable
from pathlib import Path
from typing import Any

from pydantic import BaseModel, Field

from .errors import WorkflowNotFound
from .models import Workflow, WorkflowStatus, utc_iso_now

logger = logging.getLogger(__name__)

AddGuard = Callable[[list[Workflow]], None]
Change = Callable[[Workflow], Workflow]


def _read_json_list(path: Path, *, label: str) -> list[Any]:
    if not path.exists():
        return []
    try:
        raw = json.loads(path.read_text(encoding="utf-8"))
    except json.JSONDecodeError:
        logger.warning(f"{label} file is not valid JSON; treating as empty", extra={"path": str(path)})
        return []
    if raw is None:
        return []
    if not isinstance(raw, list):
        logger.warning(
            f"{label} file has unexpected shape; treating as empty", extra={"path": str(path)}
        )
        return []
    return raw


def _write_json_list(path: Path, payload: list[Any]) -> None:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(json.dumps(payload, indent=2, ensure_ascii=False) + "\n", encoding="utf-8")


class WorkflowStore:
    """Organization-scoped workflow records."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    @property
    def path(self) -> Path:
        return self._path

    def _load_unlocked(self) -> list[Workflow]:
        return [Workflow.model_validate(item) for item in _read_json_list(self._path, label="Workflow")]

    def _save_unlocked(self, workflows: list[Workflow]) -> None:
        _write_json_list(self._path, [w.model_dump(mode="json") for w in workflows])

    def list(self) -> list[Workflow]:
        with self._lock:
            return self._load_unlocked()

    def list_for_organization(
        self, organization_id: str, *, status: WorkflowStatus | None = None
    ) -> list[Workflow]:
        return [
            w
            for w in self.list()
            if w.organization_id == organization_id and (status is None or w.status == status)
        ]

    def get(self, workflow_id: str) -> Workflow:
        with self._lock:
            for workflow in self._load_unlocked():
                if workflow.id == workflow_id:
                    return workflow
        raise WorkflowNotFound(workflow_id)

    def add(self, workflow: Workflow, *, guard: AddGuard | None = None) -> Workflow:
        """Append `workflow`.

        `guard` is called with the current records while the store lock is
        held; raising from it refuses the insert.
        """

        with self._lock:
            workflows = self._load_unlocked()
            if any(w.id == workflow.id for w in workflows):
                raise ValueError(f"Workflow id already exists: {workflow.id}")
            if guard is not None:
                guard(workflows)
            workflows.append(workflow)
            self._save_unlocked(workflows)
            return workflow

    def modify(self, workflow_id: str, change: Change) -> tuple[Workflow, Workflow]:
        """Read, change and write one record under the store lock.

        Returns `(before, after)`. When `change` returns its argument unchanged
        nothing is written. Exceptions from `change` leave the file untouched.
        """

        with self._lock:
            workflows = self._load_unlocked()
            for idx, existing in enumerate(workflows):
                if existing.id == workflow_id:
                    updated = change(existing)
                    if updated is not existing:
                        workflows[idx] = updated
                        self._save_unlocked(workflows)
                    return existing, updated
        raise WorkflowNotFound(workflow_id)

    def upsert(self, workflow: Workflow) -> Workflow:
        with self._lock:
            workflows = self._load_unlocked()
            for idx, existing in enumerate(workflows):
                if existing.id == workflow.id:
                    workflows[idx] = workflow
                    break
            else:
                workflows.append(workflow)
            self._save_unlocked(workflows)
            return workflow

    def delete(self, workflow_id: str) -> Workflow:
        with self._lock:
            workflows = self._load_unlocked()
            for idx, existing in enumerate(workflows):
                if existing.id == workflow_id:
                    removed = workflows.pop(idx)
                    self._save_unlocked(workflows)
                    return removed
        raise WorkflowNotFound(workflow_id)


class WorkflowAction(BaseModel):
    action_id: str = Field(default_factory=lambda: f"act_{uuid.uuid4().hex}")
    organization_id: str
    workflow_id: str
    action_type: str
    action_data: dict[str, Any] = Field(default_factory=dict)
    performed_by: str = "system"
    performed_at: str = Field(default_factory=utc_iso_now)


class WorkflowActionLog:
    """Append-only audit trail of workflow mutations and executions."""

    def __init__(self, path: Path) -> None:
        self._path = path
        self._lock = threading.Lock()

    def record(
        self,
        *,
        workflow: Workflow,
        action_type: str,
        performed_by: str = "system",
        **action_data: Any,
    ) -> WorkflowAction:
        action = WorkflowAction(
            organization_id=workflow.organization_id,
            workflow_id=workflow.id,
            action_type=action_type,
            action_data=action_data,
            performed_by=performed_by,
        )
        with self._lock:
            raw = _read_json_list(self._path, label="Workflow action log")
            raw.append(action.model_dump(mode="json"))
            _write_json_list(self._path, raw)
        logger.debug(
            "Workflow action recorded",
            extra={"workflow_id": workflow.id, "action_type": action_type},
        )
        return action

    def list(self, *, workflow_id: str | None = None) -> list[WorkflowAction]:
        with self._lock:
            raw = _read_json_list(self._path, label="Workflow action log")
        actions = [WorkflowAction.model_validate(item) for item in raw]
        if workflow_id is None:
            return actions
        return [a for a in actions if a.workflow_id == workflow_id]
