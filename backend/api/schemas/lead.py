"""Lead schemas."""

from pydantic import BaseModel, Field
from datetime import datetime
from typing import Any, Dict, List, Optional

from api.schemas.workflow import InstanceResponse
from core.constants import LeadStatus


class LeadCreate(BaseModel):
    """Website form submission."""

    name: str = Field(min_length=1, max_length=200)
    email: Optional[str] = Field(default=None, max_length=320)
    phone: Optional[str] = Field(default=None, max_length=40)
    service: Optional[str] = None
    message: Optional[str] = None


class LeadUpdate(BaseModel):
    """Operator update of a lead's pipeline status or notes."""

    status: Optional[LeadStatus] = None
    notes: Optional[str] = None


class LeadResponse(BaseModel):
    """Lead response."""

    id: str
    name: str
    email: Optional[str]
    phone: Optional[str]
    service: Optional[str]
    message: Optional[str]
    source: str
    status: str
    notes: Optional[str]
    notified: bool
    booking_data: Optional[Dict[str, Any]]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class LeadDetailResponse(LeadResponse):
    """Lead with its automation history."""

    instances: List[InstanceResponse] = Field(default_factory=list)


class LeadListResponse(BaseModel):
    """Paginated list of leads."""

    leads: List[LeadResponse]
    total: int
    page: int
    per_page: int
