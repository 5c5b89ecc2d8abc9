"""Communication log feed and manual sends."""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.communication import (
    CommunicationListResponse,
    CommunicationLogResponse,
    SendMessageRequest,
    SendMessageResponse,
)
from app.dependencies import get_db, get_gateway
from messaging.gateway import MessagingGateway
from services.communication_service import CommunicationService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["communications"])


@router.get("", response_model=CommunicationListResponse)
async def list_communications(
    limit: int = Query(default=50, ge=1, le=500),
    contact_id: str = Query(default=None),
    workflow_id: str = Query(default=None),
    channel: str = Query(default=None, alias="type"),
    db: AsyncSession = Depends(get_db),
) -> CommunicationListResponse:
    """
    Most recent send attempts, newest first.
    """
    entries = await CommunicationService(db).recent(
        limit=limit, contact_id=contact_id, workflow_id=workflow_id, channel=channel
    )
    return CommunicationListResponse(
        communications=[CommunicationLogResponse.model_validate(e) for e in entries],
        total=len(entries),
    )


@router.post("/send", response_model=SendMessageResponse)
async def send_message(
    request: SendMessageRequest,
    gateway: MessagingGateway = Depends(get_gateway),
) -> SendMessageResponse:
    """
    Send one email or SMS outside any workflow. Failures are reported in the
    body (``success: false``) and logged like workflow sends.
    """
    outcome = await gateway.send(
        request.channel,
        request.to,
        template_id=request.template_id,
        content={"subject": request.subject, "html": request.html, "text": request.text},
        variables=request.variables,
        contact_id=request.contact_id,
    )
    return SendMessageResponse(**outcome.to_dict())
