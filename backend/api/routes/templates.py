"""Email and SMS template CRUD."""

import logging
from typing import List

from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy.ext.asyncio import AsyncSession

from api.schemas.common import MessageResponse
from api.schemas.template import (
    EmailTemplateCreate,
    EmailTemplateResponse,
    EmailTemplateUpdate,
    SmsTemplateCreate,
    SmsTemplateResponse,
    SmsTemplateUpdate,
)
from app.dependencies import get_db
from core.exceptions import NotFoundError
from services.template_service import EmailTemplateService, SmsTemplateService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["templates"])


def _sms_to_response(t) -> SmsTemplateResponse:
    return SmsTemplateResponse(
        id=t.id,
        name=t.name,
        category=t.category,
        content=t.body,
        variables=t.variables or [],
        created_at=t.created_at,
        updated_at=t.updated_at,
    )


def _require_changes(data: dict) -> dict:
    if not data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="No fields to update",
        )
    return data


# ─── Email ────────────────────────────────────────────────

@router.get("/email", response_model=List[EmailTemplateResponse])
async def list_email_templates(db: AsyncSession = Depends(get_db)):
    templates, _ = await EmailTemplateService(db).list(limit=500, order_by="name", order_desc=False)
    return [EmailTemplateResponse.model_validate(t) for t in templates]


@router.post("/email", response_model=EmailTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_email_template(
    request: EmailTemplateCreate,
    db: AsyncSession = Depends(get_db),
):
    template = await EmailTemplateService(db).create_template(request.model_dump())
    logger.info(f"Email template created: {template.id}")
    return EmailTemplateResponse.model_validate(template)


@router.get("/email/{template_id}", response_model=EmailTemplateResponse)
async def get_email_template(template_id: str, db: AsyncSession = Depends(get_db)):
    template = await EmailTemplateService(db).get_by_id(template_id)
    if not template:
        raise NotFoundError("Email template not found")
    return EmailTemplateResponse.model_validate(template)


@router.put("/email/{template_id}", response_model=EmailTemplateResponse)
async def update_email_template(
    template_id: str,
    request: EmailTemplateUpdate,
    db: AsyncSession = Depends(get_db),
):
    data = _require_changes(request.model_dump(exclude_unset=True))
    template = await EmailTemplateService(db).update(template_id, data)
    if not template:
        raise NotFoundError("Email template not found")
    return EmailTemplateResponse.model_validate(template)


@router.delete("/email/{template_id}", response_model=MessageResponse)
async def delete_email_template(template_id: str, db: AsyncSession = Depends(get_db)):
    if not await EmailTemplateService(db).soft_delete(template_id):
        raise NotFoundError("Email template not found")
    return MessageResponse(message="Email template deleted")


# ─── SMS ──────────────────────────────────────────────────

@router.get("/sms", response_model=List[SmsTemplateResponse])
async def list_sms_templates(db: AsyncSession = Depends(get_db)):
    templates, _ = await SmsTemplateService(db).list(limit=500, order_by="name", order_desc=False)
    return [_sms_to_response(t) for t in templates]


@router.post("/sms", response_model=SmsTemplateResponse, status_code=status.HTTP_201_CREATED)
async def create_sms_template(
    request: SmsTemplateCreate,
    db: AsyncSession = Depends(get_db),
):
    data = request.model_dump()
    # Store the body under ``content``; ``message`` is only read for old rows.
    data["content"] = data.pop("content") or data.get("message")
    data["message"] = None
    template = await SmsTemplateService(db).create_template(data)
    logger.info(f"SMS template created: {template.id}")
    return _sms_to_response(template)


@router.get("/sms/{template_id}", response_model=SmsTemplateResponse)
async def get_sms_template(template_id: str, db: AsyncSession = Depends(get_db)):
    template = await SmsTemplateService(db).get_by_id(template_id)
    if not template:
        raise NotFoundError("SMS template not found")
    return _sms_to_response(template)


@router.put("/sms/{template_id}", response_model=SmsTemplateResponse)
async def update_sms_template(
    template_id: str,
    request: SmsTemplateUpdate,
    db: AsyncSession = Depends(get_db),
):
    data = _require_changes(request.model_dump(exclude_unset=True))
    template = await SmsTemplateService(db).update(template_id, data)
    if not template:
        raise NotFoundError("SMS template not found")
    return _sms_to_response(template)


@router.delete("/sms/{template_id}", response_model=MessageResponse)
async def delete_sms_template(template_id: str, db: AsyncSession = Depends(get_db)):
    if not await SmsTemplateService(db).soft_delete(template_id):
        raise NotFoundError("SMS template not found")
    return MessageResponse(message="SMS template deleted")
