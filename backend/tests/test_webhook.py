"""Tests for the Cal.com booking webhook."""

import pytest
from sqlalchemy import select

from db.models import Lead, WorkflowInstance
from triggers.handlers.webhook import booking_to_lead, is_booking_created

WEBHOOK_URL = "/api/v1/webhooks/calcom"

BOOKING = {
    "triggerEvent": "BOOKING_CREATED",
    "payload": {
        "uid": "bk_123",
        "title": "Consultation between Co and Pat",
        "startTime": "2026-03-09T14:30:00Z",
        "endTime": "2026-03-09T15:00:00Z",
        "eventType": {"title": "Kitchen Remodel Consultation"},
        "attendees": [{"name": "Pat Lee", "email": "pat@example.com", "phone": "+1 512 555 0100"}],
        "rescheduleUrl": "https://cal.example/reschedule/bk_123",
        "cancelUrl": "https://cal.example/cancel/bk_123",
    },
}


class TestBookingMapping:
    def test_is_booking_created(self):
        assert is_booking_created(BOOKING) is True
        assert is_booking_created({"triggerEvent": "BOOKING_CANCELLED"}) is False
        assert is_booking_created(["BOOKING_CREATED"]) is False

    def test_full_payload(self):
        lead = booking_to_lead(BOOKING)
        assert lead["name"] == "Pat Lee"
        assert lead["email"] == "pat@example.com"
        assert lead["phone"] == "+1 512 555 0100"
        assert lead["service"] == "Kitchen Remodel Consultation"
        assert lead["source"] == "booking"
        assert lead["status"] == "new"
        assert lead["notified"] is False
        assert lead["message"] == (
            "Booked: Consultation between Co and Pat\n"
            "Time: 2026-03-09T14:30:00Z\n"
            "Event ID: bk_123"
        )
        assert lead["booking_data"] == {
            "bookingId": "bk_123",
            "eventType": "Kitchen Remodel Consultation",
            "startTime": "2026-03-09T14:30:00Z",
            "endTime": "2026-03-09T15:00:00Z",
            "rescheduleUrl": "https://cal.example/reschedule/bk_123",
            "cancelUrl": "https://cal.example/cancel/bk_123",
        }

    def test_sparse_payload_defaults(self):
        lead = booking_to_lead({"triggerEvent": "BOOKING_CREATED", "payload": {}})
        assert lead["name"] == "Cal.com Booking"
        assert lead["email"] is None
        assert lead["service"] == "Consultation"
        assert lead["message"] == "Booked: Appointment\nTime: N/A\nEvent ID: N/A"

    def test_title_used_when_no_attendee_or_event_type(self):
        lead = booking_to_lead({"payload": {"title": "Intro call"}})
        assert lead["name"] == "Intro call"
        assert lead["service"] == "Intro call"

    def test_non_object_payload_rejected(self):
        with pytest.raises(ValueError):
            booking_to_lead({"payload": "nope"})


@pytest.mark.integration
class TestCalcomWebhook:

    async def test_preflight(self, client):
        response = await client.options(WEBHOOK_URL, headers={"Origin": "https://cal.com"})
        assert response.status_code == 204
        assert response.headers["access-control-allow-origin"] == "*"
        assert "POST" in response.headers["access-control-allow-methods"]

    async def test_other_methods_rejected(self, client):
        response = await client.get(WEBHOOK_URL)
        assert response.status_code == 405
        assert response.text == "Method Not Allowed"

    async def test_non_booking_event_ignored(self, client, session_factory):
        response = await client.post(WEBHOOK_URL, json={"triggerEvent": "BOOKING_CANCELLED", "payload": {}})

        assert response.status_code == 200
        assert response.json() == {"success": True, "message": "Event ignored"}
        async with session_factory() as session:
            assert (await session.execute(select(Lead))).scalars().all() == []

    async def test_booking_creates_lead_and_enrolls(
        self, client, session_factory, create_workflow, create_instance, load_instance
    ):
        await create_workflow([{"type": "task"}], trigger="form_submit", id="wf_form")
        await create_workflow([{"type": "task"}], trigger="booking", id="wf_booking")
        nurture = await create_instance("wf_form", contact_email="pat@example.com")

        response = await client.post(WEBHOOK_URL, json=BOOKING)

        assert response.status_code == 200
        body = response.json()
        assert body["success"] is True
        assert body["message"] == "Booking saved as lead"
        assert response.headers["access-control-allow-origin"] == "*"

        async with session_factory() as session:
            lead = await session.get(Lead, body["leadId"])
            assert lead.source == "booking"
            assert lead.email == "pat@example.com"
            booked = (
                await session.execute(
                    select(WorkflowInstance).where(WorkflowInstance.contact_id == lead.id)
                )
            ).scalars().all()

        assert [i.workflow_id for i in booked] == ["wf_booking"]
        assert booked[0].variables["appointmentDate"] == "Monday, March 09, 2026"
        assert (await load_instance(nurture.id)).status == "cancelled"

    async def test_malformed_body_returns_500(self, client):
        response = await client.post(
            WEBHOOK_URL, content=b"{not json", headers={"Content-Type": "application/json"}
        )
        assert response.status_code == 500
        body = response.json()
        assert body["success"] is False
        assert body["error"]

    async def test_bad_payload_returns_500(self, client):
        response = await client.post(WEBHOOK_URL, json={"triggerEvent": "BOOKING_CREATED", "payload": [1]})
        assert response.status_code == 500
        assert response.json()["error"] == "Booking payload must be an object"
