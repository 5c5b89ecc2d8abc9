"""Booking webhook mapping (Cal.com).

Turns a ``BOOKING_CREATED`` delivery into the field set of a new
``booking`` lead. Other event types are acknowledged and ignored so the
provider does not retry them.
"""

from typing import Any, Optional

from core.constants import LeadSource, LeadStatus

BOOKING_CREATED = "BOOKING_CREATED"


def is_booking_created(body: Any) -> bool:
    return isinstance(body, dict) and body.get("triggerEvent") == BOOKING_CREATED


def _event_type_title(payload: dict) -> Optional[str]:
    event_type = payload.get("eventType")
    if isinstance(event_type, dict):
        return event_type.get("title")
    return None


def booking_to_lead(body: dict) -> dict[str, Any]:
    """Map a webhook body to ``Lead`` column values.

    Raises:
        ValueError: if ``payload`` is not an object
    """
    payload = body.get("payload") or {}
    if not isinstance(payload, dict):
        raise ValueError("Booking payload must be an object")

    attendees = payload.get("attendees") or []
    attendee = attendees[0] if attendees and isinstance(attendees[0], dict) else {}
    event_title = _event_type_title(payload)
    title = payload.get("title")

    return {
        "name": attendee.get("name") or title or "Cal.com Booking",
        "email": attendee.get("email") or None,
        "phone": attendee.get("phone") or None,
        "service": event_title or title or "Consultation",
        "message": (
            f"Booked: {title or 'Appointment'}\n"
            f"Time: {payload.get('startTime') or 'N/A'}\n"
            f"Event ID: {payload.get('uid') or 'N/A'}"
        ),
        "source": LeadSource.BOOKING.value,
        "status": LeadStatus.NEW.value,
        "notified": False,
        "booking_data": {
            "bookingId": payload.get("uid"),
            "eventType": event_title,
            "startTime": payload.get("startTime"),
            "endTime": payload.get("endTime"),
            "rescheduleUrl": payload.get("rescheduleUrl"),
            "cancelUrl": payload.get("cancelUrl"),
        },
    }
