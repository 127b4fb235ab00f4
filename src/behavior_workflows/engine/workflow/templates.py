"""Code-defined template catalog.

Templates are immutable blueprints. Lookups hand out deep copies so that
instantiation can never mutate the catalog.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .errors import TemplateNotFound
from .models import ExecutionContract, FailurePolicy


class ParticipantRole(BaseModel):
    model_config = ConfigDict(frozen=True)

    role: str
    object_kind: str
    required: bool = True
    description: str = ""


class TemplateBehavior(BaseModel):
    model_config = ConfigDict(frozen=True)

    type: str
    enabled: bool = True
    priority: int = 100
    description: str = ""
    config: dict[str, Any] = Field(default_factory=dict)


class Template(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    description: str = ""
    category: str
    subtype: str
    participants: tuple[ParticipantRole, ...] = ()
    behaviors: tuple[TemplateBehavior, ...] = ()
    execution: ExecutionContract

    @property
    def required_roles(self) -> list[str]:
        return [p.role for p in self.participants if p.required]

    def role(self, name: str) -> ParticipantRole | None:
        for participant in self.participants:
            if participant.role == name:
                return participant
        return None


_PRODUCT = ParticipantRole(role="product", object_kind="product", description="Product sold")
_CHECKOUT = ParticipantRole(
    role="checkout", object_kind="checkout", description="Checkout instance hosting the flow"
)

TEMPLATES: tuple[Template, ...] = (
    Template(
        id="simple-product-checkout",
        name="Simple Product Checkout",
        description="Sell a product through a checkout with no additional behaviors.",
        category="checkout",
        subtype="checkout-flow",
        participants=(_PRODUCT, _CHECKOUT),
        behaviors=(),
        execution=ExecutionContract(
            trigger_event="checkout_start",
            required_inputs=["product_selection"],
            output_actions=[],
            failure_policy=FailurePolicy.CONTINUE,
        ),
    ),
    Template(
        id="employer-billed-event-registration",
        name="Event Registration with Employer Billing",
        description=(
            "Collect a registration form during checkout, detect employer billing and "
            "map the order to an employer invoice instead of an immediate payment."
        ),
        category="checkout",
        subtype="checkout-flow",
        participants=(
            _PRODUCT,
            _CHECKOUT,
            ParticipantRole(role="registration_form", object_kind="form"),
            ParticipantRole(
                role="employer_directory",
                object_kind="crm_organization",
                required=False,
                description="Organization list used to match employers",
            ),
        ),
        behaviors=(
            TemplateBehavior(
                type="form-linking",
                priority=100,
                description="Show the registration form during checkout",
                config={"timing": "duringCheckout"},
            ),
            TemplateBehavior(
                type="employer-detection",
                priority=90,
                description="Detect whether the employer pays; writes billingMethod",
                config={"employerField": "employer", "autoFillBillingAddress": True},
            ),
            TemplateBehavior(
                type="addon-calculation",
                priority=80,
                description="Price add-ons selected in the form",
                config={"addons": []},
            ),
            TemplateBehavior(
                type="invoice-mapping",
                priority=70,
                description="Map employer-billed orders to an invoice; reads billingMethod",
                config={"paymentTerms": "net30", "requireMapping": False},
            ),
        ),
        execution=ExecutionContract(
            trigger_event="checkout_start",
            required_inputs=["form_responses", "product_selection"],
            output_actions=["create_invoice", "skip_payment_step"],
            failure_policy=FailurePolicy.ROLLBACK,
        ),
    ),
    Template(
        id="form-submission-to-crm",
        name="Form Submission to CRM",
        description="Create a CRM contact from each form submission and confirm by email.",
        category="forms",
        subtype="form-processing",
        participants=(ParticipantRole(role="form", object_kind="form"),),
        behaviors=(
            TemplateBehavior(
                type="create-contact",
                priority=100,
                description="Upsert a CRM contact; writes contactId",
                config={"dedupeBy": "email"},
            ),
            TemplateBehavior(
                type="send-confirmation-email",
                priority=50,
                description="Send a confirmation email; reads contactId",
                config={"template": "form_confirmation"},
            ),
        ),
        execution=ExecutionContract(
            trigger_event="form_submission",
            required_inputs=["form_responses"],
            output_actions=["create_contact", "send_email"],
            failure_policy=FailurePolicy.NOTIFY,
        ),
    ),
    Template(
        id="course-booking-checkout",
        name="Course Booking Checkout",
        description="Pick a slot, validate capacity, collect participant data, then book.",
        category="bookings",
        subtype="checkout-flow",
        participants=(
            _PRODUCT,
            _CHECKOUT,
            ParticipantRole(role="participant_form", object_kind="form", required=False),
        ),
        behaviors=(
            TemplateBehavior(
                type="availability-slot-selection",
                priority=100,
                config={"slotType": "time_slot"},
            ),
            TemplateBehavior(
                type="capacity-validation",
                priority=90,
                description="Fails with precondition_not_met when the slot is full",
                config={"capacityType": "seats", "maxCapacity": 10},
            ),
            TemplateBehavior(
                type="form-linking",
                priority=80,
                config={"timing": "duringCheckout"},
            ),
            TemplateBehavior(
                type="booking-creation",
                priority=10,
                description="Create the booking; writes bookingId",
                config={"bookingType": "class_enrollment"},
            ),
        ),
        execution=ExecutionContract(
            trigger_event="checkout_start",
            required_inputs=["product_selection"],
            output_actions=["create_booking"],
            failure_policy=FailurePolicy.ROLLBACK,
        ),
    ),
    Template(
        id="support-ticket-intake",
        name="Support Ticket Intake",
        description="Turn an intake form submission into an assigned support ticket.",
        category="support",
        subtype="form-processing",
        participants=(ParticipantRole(role="intake_form", object_kind="form"),),
        behaviors=(
            TemplateBehavior(
                type="create-ticket",
                priority=100,
                description="Create a ticket; writes ticketId",
                config={"defaultPriority": "normal"},
            ),
            TemplateBehavior(
                type="assign-ticket",
                priority=80,
                description="Assign the ticket; reads ticketId",
                config={"strategy": "round_robin"},
            ),
            TemplateBehavior(
                type="send-confirmation-email",
                priority=50,
                config={"template": "ticket_received"},
            ),
        ),
        execution=ExecutionContract(
            trigger_event="form_submission",
            required_inputs=["form_responses"],
            output_actions=["create_ticket", "send_email"],
            failure_policy=FailurePolicy.CONTINUE,
        ),
    ),
)

_BY_ID: dict[str, Template] = {t.id: t for t in TEMPLATES}


def get_template(template_id: str) -> Template:
    try:
        template = _BY_ID[template_id]
    except KeyError:
        raise TemplateNotFound(template_id) from None
    return template.model_copy(deep=True)


def list_templates(category: str | None = None) -> list[Template]:
    return [
        t.model_copy(deep=True) for t in TEMPLATES if category is None or t.category == category
    ]


def list_categories() -> list[str]:
    return sorted({t.category for t in TEMPLATES})
