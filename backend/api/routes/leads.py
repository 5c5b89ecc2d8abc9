"""Lead endpoints: capture, listing, detail, status changes.

Creating a lead and changing its status fire lead triggers after the
request's transaction has committed.
"""

import logging

from fastapi import APIRouter, BackgroundTasks, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from api.schemas.common import PaginationParams
from api.schemas.lead import (
    LeadCreate,
    LeadDetailResponse,
    LeadListResponse,
    LeadResponse,
    LeadUpdate,
)
from api.schemas.workflow import InstanceResponse
from app.dependencies import get_db, get_session_factory
from core.constants import LeadSource
from core.exceptions import NotFoundError
from core.utils import calculate_offset
from services.lead_service import LeadService
from services.workflow_store import WorkflowInstanceService
from triggers.base import LeadEvent, LeadEventType
from triggers.handlers.lead_created import dispatch_lead_event, lead_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(tags=["leads"])


@router.get("", response_model=LeadListResponse)
async def list_leads(
    pagination: PaginationParams = Depends(),
    status_filter: str = Query(default=None, alias="status"),
    source: str = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> LeadListResponse:
    leads, total = await LeadService(db).list(
        offset=calculate_offset(pagination.page, pagination.per_page),
        limit=pagination.per_page,
        filters={"status": status_filter, "source": source},
    )
    return LeadListResponse(
        leads=[LeadResponse.model_validate(lead) for lead in leads],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.post("", response_model=LeadResponse, status_code=status.HTTP_201_CREATED)
async def create_lead(
    request: LeadCreate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> LeadResponse:
    """
    Capture a website form lead and enroll it into form_submit workflows.
    """
    data = request.model_dump()
    data["source"] = LeadSource.FORM_SUBMIT.value
    lead = await LeadService(db).create_lead(data)
    response = LeadResponse.model_validate(lead)
    event = LeadEvent(lead_id=lead.id, event_type=LeadEventType.CREATED, lead=lead_snapshot(lead))
    await db.commit()

    background_tasks.add_task(dispatch_lead_event, event, session_factory)
    return response


@router.get("/{lead_id}", response_model=LeadDetailResponse)
async def get_lead(
    lead_id: str,
    db: AsyncSession = Depends(get_db),
) -> LeadDetailResponse:
    """
    Lead details with every workflow instance it has been enrolled in.
    """
    lead = await LeadService(db).get_by_id(lead_id)
    if not lead:
        raise NotFoundError("Lead not found")
    instances = await WorkflowInstanceService(db).list_by_contact(lead_id)
    return LeadDetailResponse(
        **LeadResponse.model_validate(lead).model_dump(),
        instances=[InstanceResponse.model_validate(i) for i in instances],
    )


@router.patch("/{lead_id}", response_model=LeadResponse)
async def update_lead(
    lead_id: str,
    request: LeadUpdate,
    background_tasks: BackgroundTasks,
    db: AsyncSession = Depends(get_db),
    session_factory: async_sessionmaker = Depends(get_session_factory),
) -> LeadResponse:
    """
    Update a lead's status or notes. A status change enrolls the lead into
    matching status_change workflows.
    """
    lead, previous_status = await LeadService(db).update_lead(
        lead_id,
        status=request.status.value if request.status else None,
        notes=request.notes,
    )
    if not lead:
        raise NotFoundError("Lead not found")

    response = LeadResponse.model_validate(lead)
    snapshot = lead_snapshot(lead)
    await db.commit()

    if request.status is not None and snapshot["status"] != previous_status:
        event = LeadEvent(
            lead_id=lead_id,
            event_type=LeadEventType.STATUS_CHANGED,
            lead=snapshot,
            previous_status=previous_status,
        )
        background_tasks.add_task(dispatch_lead_event, event, session_factory)
    return response
