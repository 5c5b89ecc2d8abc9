"""Constants and enums for the lead outreach engine."""

from enum import Enum


class WorkflowTrigger(str, Enum):
    """Event that enrolls a contact into a workflow."""

    FORM_SUBMIT = "form_submit"
    BOOKING = "booking"
    STATUS_CHANGE = "status_change"


class InstanceStatus(str, Enum):
    """Workflow instance status. Everything except ACTIVE is terminal."""

    ACTIVE = "active"
    COMPLETED = "completed"
    ERROR = "error"
    CANCELLED = "cancelled"


class StepType(str, Enum):
    """Workflow step type."""

    EMAIL = "email"
    SMS = "sms"
    TASK = "task"
    DELAY = "delay"


class Channel(str, Enum):
    """Outbound messaging channel."""

    EMAIL = "email"
    SMS = "sms"


class CommunicationStatus(str, Enum):
    """Outcome recorded on a communication log entry."""

    SENT = "sent"
    FAILED = "failed"


class LeadSource(str, Enum):
    """Where a lead was captured."""

    FORM_SUBMIT = "form_submit"
    BOOKING = "booking"


class LeadStatus(str, Enum):
    """Sales pipeline status of a lead."""

    NEW = "new"
    CONTACTED = "contacted"
    QUOTED = "quoted"
    WON = "won"
    LOST = "lost"


# Known template placeholders and the value used when they are unset.
TEMPLATE_DEFAULTS = {
    "firstName": "Friend",
    "lastName": "",
    "name": "",
    "service": "",
    "phone": "",
    "email": "",
}

# Placeholders that are only substituted when a value is present.
OPTIONAL_TEMPLATE_KEYS = ("appointmentDate", "appointmentTime", "appointmentAddress")

LEGACY_EMAIL_TEMPLATES_KEY = "email_templates"
BOOKING_CANCELLATION_REASON = "New booking"
