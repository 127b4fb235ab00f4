from __future__ import annotations

import pytest

from behavior_workflows.engine.workflow.errors import TemplateNotFound
from behavior_workflows.engine.workflow.templates import (
    TEMPLATES,
    get_template,
    list_categories,
    list_templates,
)


def test_catalog_contents() -> None:
    assert [t.id for t in list_templates()] == [
        "simple-product-checkout",
        "employer-billed-event-registration",
        "form-submission-to-crm",
        "course-booking-checkout",
        "support-ticket-intake",
    ]
    assert list_categories() == ["bookings", "checkout", "forms", "support"]
    assert [t.id for t in list_templates("forms")] == ["form-submission-to-crm"]
    assert list_templates("unknown") == []


def test_template_ids_are_unique_and_roles_are_declared_once() -> None:
    assert len({t.id for t in TEMPLATES}) == len(TEMPLATES)
    for template in TEMPLATES:
        roles = [p.role for p in template.participants]
        assert len(set(roles)) == len(roles), template.id


def test_lookups_return_copies() -> None:
    template = get_template("employer-billed-event-registration")
    template.behaviors[0].config["timing"] = "afterCheckout"

    assert get_template("employer-billed-event-registration").behaviors[0].config == {
        "timing": "duringCheckout"
    }


def test_required_roles_and_role_lookup() -> None:
    template = get_template("course-booking-checkout")

    assert template.required_roles == ["product", "checkout"]
    role = template.role("participant_form")
    assert role is not None
    assert role.required is False
    assert template.role("missing") is None


def test_unknown_template() -> None:
    with pytest.raises(TemplateNotFound) as excinfo:
        get_template("does-not-exist")
    assert str(excinfo.value) == "Template not found: does-not-exist"
