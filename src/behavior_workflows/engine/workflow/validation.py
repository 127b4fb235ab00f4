"""Execution context validation against a workflow's execution contract."""

from __future__ import annotations

from dataclasses import dataclass, field

from .context import ExecutionContext
from .models import Workflow

# Required-input classes. Anything else declared on a contract cannot be satisfied.
FORM_RESPONSES = "form_responses"
PRODUCT_SELECTION = "product_selection"


@dataclass(frozen=True, slots=True)
class ValidationIssue:
    code: str
    message: str


@dataclass(frozen=True, slots=True)
class ValidationReport:
    valid: bool
    issues: list[ValidationIssue] = field(default_factory=list)

    @property
    def errors(self) -> list[str]:
        return [i.message for i in self.issues]


def validate(workflow: Workflow, context: ExecutionContext) -> ValidationReport:
    issues: list[ValidationIssue] = []
    contract = workflow.execution

    for kind in contract.required_inputs:
        if kind == FORM_RESPONSES:
            if not context.inputs:
                issues.append(
                    ValidationIssue("missing_inputs", "Form responses required but not provided")
                )
        elif kind == PRODUCT_SELECTION:
            if not context.objects:
                issues.append(
                    ValidationIssue(
                        "missing_objects", "Product selection required but no objects provided"
                    )
                )
        else:
            issues.append(
                ValidationIssue("unsupported_input", f"Unsupported required input kind: {kind}")
            )

    expected = contract.workflow_name
    if context.workflow_name != expected:
        issues.append(
            ValidationIssue(
                "workflow_mismatch",
                f"Workflow mismatch: expected {expected!r}, got {context.workflow_name!r}",
            )
        )

    return ValidationReport(valid=not issues, issues=issues)
