"""Workflow definition endpoints: CRUD, per-workflow instances, manual enrollment."""

import logging

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import MessageResponse, PaginationParams
from api.schemas.workflow import (
    EnrollRequest,
    InstanceListResponse,
    InstanceResponse,
    WorkflowCreate,
    WorkflowListResponse,
    WorkflowResponse,
    WorkflowUpdate,
)
from app.dependencies import get_db
from core.exceptions import ConflictError, NotFoundError
from core.utils import calculate_offset
from services.enrollment_service import EnrollmentService
from services.lead_service import LeadService
from services.workflow_store import WorkflowDefinitionService, WorkflowInstanceService
from triggers.handlers.lead_created import enrollment_variables, lead_snapshot

logger = logging.getLogger(__name__)

router = APIRouter(tags=["workflows"])


def _workflow_to_response(wf, active_count: int = 0) -> WorkflowResponse:
    return WorkflowResponse(
        id=wf.id,
        name=wf.name,
        description=wf.description or "",
        trigger=wf.trigger,
        trigger_status=wf.trigger_status,
        enabled=wf.enabled,
        steps=wf.steps or [],
        category=wf.category,
        version=wf.version,
        active_count=active_count,
        created_at=wf.created_at,
        updated_at=wf.updated_at,
    )


def _steps_payload(steps) -> list[dict]:
    return [step.model_dump(exclude_none=True) for step in steps]


@router.get("", response_model=WorkflowListResponse)
async def list_workflows(
    pagination: PaginationParams = Depends(),
    category: str = Query(default=None),
    db: AsyncSession = Depends(get_db),
) -> WorkflowListResponse:
    """
    List workflow definitions with their active instance counts.
    """
    svc = WorkflowDefinitionService(db)
    workflows, total = await svc.list(
        offset=calculate_offset(pagination.page, pagination.per_page),
        limit=pagination.per_page,
        filters={"category": category},
    )
    counts = await WorkflowInstanceService(db).active_count_by_workflow()

    return WorkflowListResponse(
        workflows=[_workflow_to_response(wf, counts.get(wf.id, 0)) for wf in workflows],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.post("", response_model=WorkflowResponse, status_code=status.HTTP_201_CREATED)
async def create_workflow(
    request: WorkflowCreate,
    db: AsyncSession = Depends(get_db),
) -> WorkflowResponse:
    """
    Create a workflow definition, optionally under a chosen ID.
    """
    svc = WorkflowDefinitionService(db)
    if request.id and await svc.exists(request.id, include_deleted=True):
        raise ConflictError(f"Workflow '{request.id}' already exists")

    data = request.model_dump(exclude={"steps"})
    data["trigger"] = request.trigger.value
    data["trigger_status"] = request.trigger_status.value if request.trigger_status else None
    data["steps"] = _steps_payload(request.steps)
    wf = await svc.create_definition(data)
    logger.info(f"Workflow created: {wf.id}")
    return _workflow_to_response(wf)


@router.get("/{workflow_id}", response_model=WorkflowResponse)
async def get_workflow(
    workflow_id: str,
    db: AsyncSession = Depends(get_db),
) -> WorkflowResponse:
    wf = await WorkflowDefinitionService(db).get_by_id(workflow_id)
    if not wf:
        raise NotFoundError("Workflow not found")
    counts = await WorkflowInstanceService(db).active_count_by_workflow()
    return _workflow_to_response(wf, counts.get(wf.id, 0))


@router.put("/{workflow_id}", response_model=WorkflowResponse)
async def update_workflow(
    workflow_id: str,
    request: WorkflowUpdate,
    db: AsyncSession = Depends(get_db),
) -> WorkflowResponse:
    """
    Update a workflow definition. Step changes bump the version.
    """
    update_data = request.model_dump(exclude_unset=True, exclude={"steps"})
    if request.steps is not None:
        update_data["steps"] = _steps_payload(request.steps)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update",
        )
    for key in ("trigger", "trigger_status"):
        if update_data.get(key) is not None:
            update_data[key] = update_data[key].value

    wf = await WorkflowDefinitionService(db).update_definition(workflow_id, update_data)
    if not wf:
        raise NotFoundError("Workflow not found")
    return _workflow_to_response(wf)


@router.delete("/{workflow_id}", response_model=MessageResponse)
async def delete_workflow(
    workflow_id: str,
    db: AsyncSession = Depends(get_db),
) -> MessageResponse:
    """
    Soft-delete a workflow. Its active instances move to error on their next sweep.
    """
    if not await WorkflowDefinitionService(db).soft_delete(workflow_id):
        raise NotFoundError("Workflow not found")
    return MessageResponse(message="Workflow deleted")


@router.get("/{workflow_id}/instances", response_model=InstanceListResponse)
async def list_workflow_instances(
    workflow_id: str,
    pagination: PaginationParams = Depends(),
    status_filter: str = Query(default=None, alias="status"),
    db: AsyncSession = Depends(get_db),
) -> InstanceListResponse:
    instances, total = await WorkflowInstanceService(db).list(
        offset=calculate_offset(pagination.page, pagination.per_page),
        limit=pagination.per_page,
        filters={"workflow_id": workflow_id, "status": status_filter},
    )
    return InstanceListResponse(
        instances=[InstanceResponse.model_validate(i) for i in instances],
        total=total,
        page=pagination.page,
        per_page=pagination.per_page,
    )


@router.post(
    "/{workflow_id}/enroll",
    response_model=InstanceResponse,
    status_code=status.HTTP_201_CREATED,
)
async def enroll_lead(
    workflow_id: str,
    request: EnrollRequest,
    db: AsyncSession = Depends(get_db),
) -> InstanceResponse:
    """
    Manually enroll a lead. The first step runs on the next sweep.
    """
    wf = await WorkflowDefinitionService(db).get_by_id(workflow_id)
    if not wf:
        raise NotFoundError("Workflow not found")
    if not wf.enabled:
        raise ConflictError("Workflow is disabled")

    lead = await LeadService(db).get_by_id(request.lead_id)
    if not lead:
        raise NotFoundError("Lead not found")

    snapshot = lead_snapshot(lead)
    variables = {**enrollment_variables(snapshot), **request.variables}
    instance = await EnrollmentService(db).enroll(lead.id, workflow_id, snapshot, variables)
    if instance is None:
        raise ConflictError("Lead is already active in this workflow")
    return InstanceResponse.model_validate(instance)
