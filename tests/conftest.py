"""Test configuration and fixtures."""

from __future__ import annotations

import logging
from collections.abc import Iterator
from pathlib import Path

import pytest

from behavior_workflows.engine.logging import JsonFormatter
from behavior_workflows.engine.workflow.behaviors import BehaviorRegistry
from behavior_workflows.engine.workflow.executor import WorkflowEngine
from behavior_workflows.engine.workflow.service import WorkflowService
from behavior_workflows.engine.workflow.store import WorkflowActionLog, WorkflowStore


@pytest.fixture(autouse=True)
def _drop_json_log_handlers() -> Iterator[None]:
    """`configure_logging` installs root handlers; remove them after each test."""
    root = logging.getLogger()
    level = root.level
    yield
    for handler in list(root.handlers):
        if isinstance(handler.formatter, JsonFormatter):
            root.removeHandler(handler)
    root.setLevel(level)


@pytest.fixture
def temp_state_dir(tmp_path: Path) -> Path:
    """Provide a temporary state directory."""
    state_dir = tmp_path / "engine_state"
    state_dir.mkdir()
    return state_dir


@pytest.fixture
def store(temp_state_dir: Path) -> WorkflowStore:
    return WorkflowStore(temp_state_dir / "workflows.json")


@pytest.fixture
def action_log(temp_state_dir: Path) -> WorkflowActionLog:
    return WorkflowActionLog(temp_state_dir / "workflow_actions.json")


@pytest.fixture
def service(store: WorkflowStore, action_log: WorkflowActionLog) -> WorkflowService:
    return WorkflowService(store=store, actions=action_log)


@pytest.fixture
def registry() -> BehaviorRegistry:
    return BehaviorRegistry()


@pytest.fixture
def engine(service: WorkflowService, registry: BehaviorRegistry) -> WorkflowEngine:
    return WorkflowEngine(service=service, registry=registry)
