"""Workflow instance listing."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import PaginationParams
from api.schemas.workflow import InstanceListResponse, InstanceResponse
from app.dependencies import get_db
from core.exceptions import NotFoundError
from core.utils import calculate_offset
from services.workflow_store import WorkflowInstanceService

router = APIRouter(tags=["instances"])


@router.get("", response_model=InstanceListResponse)
async def list_instances(
    pagination: PaginationParams = Depends(),
    contact_id: str = Query(default=None),
    status_filter: str = Query(default=None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> InstanceListResponse:
    """
    List workflow instances, newest first, filtered by contact and/or status.
    """
    instances, total = await WorkflowInstanceService(db).list(
        offset=calculate_offset(pagination.page, pagination.per_page),
        limit=pagination.per_page,
        filters={"contact_id": contact_id, "status": status_filter},
    )
    return InstanceListResponse(
        instances=[InstanceResponse.model_validate(i) for i in instances],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.get("/{instance_id}", response_model=InstanceResponse)
async def get_instance(
    instance_id: str,
    db: AsyncSession = Depends(get_db),
) -> InstanceResponse:
    instance = await WorkflowInstanceService(db).get_by_id(instance_id)
    if not instance:
        raise NotFoundError("Instance not found")
    return InstanceResponse.model_validate(instance)
