"""Inbound booking webhook (Cal.com).

Answers CORS preflight itself, rejects anything but POST, acknowledges
non-booking events with 200 so the provider does not retry, and turns a
``BOOKING_CREATED`` delivery into a ``booking`` lead.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Request
from fastapi.responses import JSONResponse, PlainTextResponse, Response
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import get_settings
from app.dependencies import get_session_factory
from services.lead_service import LeadService
from triggers.base import LeadEvent, LeadEventType
from triggers.handlers.lead_created import dispatch_lead_event, lead_snapshot
from triggers.handlers.webhook import booking_to_lead, is_booking_created

logger = logging.getLogger(__name__)

router = APIRouter(tags=["webhooks"])


def _cors_headers() -> dict[str, str]:
    return {
        "Access-Control-Allow-Origin": get_settings().WEBHOOK_ALLOWED_ORIGIN,
        "Access-Control-Allow-Methods": "POST, OPTIONS",
        "Access-Control-Allow-Headers": "Content-Type",
    }


@router.api_route("/calcom", methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"])
async def calcom_webhook(
    request: Request,
    background_tasks: BackgroundTasks,
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    headers = _cors_headers()

    if request.method == "OPTIONS":
        return Response(status_code=204, headers=headers)
    if request.method != "POST":
        return PlainTextResponse("Method Not Allowed", status_code=405, headers=headers)

    try:
        body = await request.json()
        trigger_event = body.get("triggerEvent") if isinstance(body, dict) else None
        logger.info(f"Received Cal.com webhook: {trigger_event}")

        if not is_booking_created(body):
            logger.info(f"Ignoring event type: {trigger_event}")
            return JSONResponse({"success": True, "message": "Event ignored"}, headers=headers)

        async with session_factory() as session:
            lead = await LeadService(session).create_lead(booking_to_lead(body))
            event = LeadEvent(lead_id=lead.id, event_type=LeadEventType.CREATED, lead=lead_snapshot(lead))
            await session.commit()
    except Exception as e:
        logger.error(f"Error processing Cal.com webhook: {e}", exc_info=True)
        return JSONResponse(
            {"success": False, "error": str(e) or type(e).__name__},
            status_code=500,
            headers=headers,
        )

    logger.info(f"Lead created with ID: {lead.id}")
    background_tasks.add_task(dispatch_lead_event, event, session_factory)
    return JSONResponse(
        {"success": True, "leadId": lead.id, "message": "Booking saved as lead"},
        headers=headers,
    )
