"""Lead trigger handlers: enroll leads into matching workflows.

A new lead enrolls into every enabled workflow for its trigger
(``booking`` for bookings, ``form_submit`` otherwise). A booking first
cancels every active instance for the same email so nurture sequences stop
once the contact has booked. A status change enrolls into enabled
``status_change`` workflows whose trigger status matches.
"""

import logging
from datetime import datetime
from typing import Any, Mapping, Optional, Sequence

from core.constants import BOOKING_CANCELLATION_REASON, LeadSource, WorkflowTrigger
from db.models import Lead, WorkflowDefinition
from services.enrollment_service import EnrollmentService
from services.workflow_store import WorkflowDefinitionService, WorkflowInstanceService
from triggers.base import BaseTriggerHandler, LeadEvent, LeadEventType, TriggerResult

logger = logging.getLogger(__name__)


def lead_snapshot(lead: Lead) -> dict[str, Any]:
    """Plain-dict copy of the lead fields triggers and templates use."""
    return {
        "name": lead.name,
        "email": lead.email,
        "phone": lead.phone,
        "service": lead.service,
        "source": lead.source,
        "status": lead.status,
        "booking_data": dict(lead.booking_data) if lead.booking_data else None,
    }


def _parse_start_time(value: Optional[str]) -> Optional[datetime]:
    if not value:
        return None
    try:
        return datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        logger.warning(f"Unparseable booking start time: {value!r}")
        return None


def enrollment_variables(lead: Mapping[str, Any]) -> dict[str, str]:
    """Per-instance template variables seeded from the lead.

    Booking times are rendered as given by the booking provider (UTC).
    """
    variables: dict[str, str] = {}
    if lead.get("service"):
        variables["service"] = lead["service"]

    start = _parse_start_time((lead.get("booking_data") or {}).get("startTime"))
    if start is not None:
        variables["appointmentDate"] = start.strftime("%A, %B %d, %Y")
        variables["appointmentTime"] = start.strftime("%I:%M %p").lstrip("0")
    return variables


class _EnrollingHandler(BaseTriggerHandler):
    async def _enroll_all(
        self, event: LeadEvent, workflows: Sequence[WorkflowDefinition]
    ) -> list[str]:
        """Enroll the lead into each workflow, one transaction per enrollment."""
        variables = enrollment_variables(event.lead)
        enrolled = []
        for workflow in workflows:
            try:
                async with self.session_factory() as session:
                    instance = await EnrollmentService(session, clock=self.clock).enroll(
                        event.lead_id, workflow.id, event.lead, variables
                    )
                    await session.commit()
            except Exception as e:
                logger.error(
                    f"Enrollment of lead {event.lead_id} in workflow {workflow.id} failed: {e}",
                    exc_info=True,
                )
                continue
            if instance is not None:
                enrolled.append(instance.id)
        return enrolled


class LeadCreatedHandler(_EnrollingHandler):
    """Cancellation + enrollment fan-out for a newly created lead."""

    event_type = LeadEventType.CREATED

    async def handle(self, event: LeadEvent) -> TriggerResult:
        lead = event.lead
        trigger = (
            WorkflowTrigger.BOOKING
            if lead.get("source") == LeadSource.BOOKING.value
            else WorkflowTrigger.FORM_SUBMIT
        )
        logger.info(f"New lead: {event.lead_id}, trigger: {trigger.value}")

        cancelled = 0
        if trigger == WorkflowTrigger.BOOKING and lead.get("email"):
            async with self.session_factory() as session:
                cancelled = await WorkflowInstanceService(session).cancel_active_for_contact(
                    lead["email"], BOOKING_CANCELLATION_REASON, self.clock()
                )

        async with self.session_factory() as session:
            workflows = await WorkflowDefinitionService(session).find_enabled_by_trigger(trigger)

        if not workflows:
            logger.info("No workflows found for this trigger.")
            return TriggerResult(
                success=True,
                message="No matching workflows",
                lead_id=event.lead_id,
                cancelled=cancelled,
            )

        enrolled = await self._enroll_all(event, workflows)
        return TriggerResult(
            success=True,
            message=f"Enrolled in {len(enrolled)} workflow(s)",
            lead_id=event.lead_id,
            enrolled=enrolled,
            cancelled=cancelled,
        )


class LeadStatusChangedHandler(_EnrollingHandler):
    """Enroll a lead into status_change workflows for its new status."""

    event_type = LeadEventType.STATUS_CHANGED

    async def handle(self, event: LeadEvent) -> TriggerResult:
        new_status = event.lead.get("status")
        if not new_status or new_status == event.previous_status:
            return TriggerResult(success=True, message="Status unchanged", lead_id=event.lead_id)

        async with self.session_factory() as session:
            workflows = await WorkflowDefinitionService(session).find_enabled_by_trigger(
                WorkflowTrigger.STATUS_CHANGE, trigger_status=new_status
            )

        enrolled = await self._enroll_all(event, workflows)
        return TriggerResult(
            success=True,
            message=f"Enrolled in {len(enrolled)} workflow(s)",
            lead_id=event.lead_id,
            enrolled=enrolled,
        )


def handler_for(event: LeadEvent, session_factory, **kwargs) -> BaseTriggerHandler:
    """Build the handler for ``event.event_type``."""
    if event.event_type == LeadEventType.STATUS_CHANGED:
        return LeadStatusChangedHandler(session_factory, **kwargs)
    return LeadCreatedHandler(session_factory, **kwargs)


async def dispatch_lead_event(event: LeadEvent, session_factory, **kwargs) -> TriggerResult:
    """Run the handler for ``event``. Used as a FastAPI background task."""
    try:
        return await handler_for(event, session_factory, **kwargs).handle(event)
    except Exception as e:
        logger.error(f"Lead trigger failed for {event.lead_id}: {e}", exc_info=True)
        return TriggerResult(
            success=False,
            message="Lead trigger failed",
            lead_id=event.lead_id,
            error=str(e),
        )
