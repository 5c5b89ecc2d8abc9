"""Email and SMS template schemas."""

from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import List, Optional

_TEMPLATE_ID = r"^[A-Za-z0-9_\-]+$"


class EmailTemplateCreate(BaseModel):
    id: str = Field(min_length=1, max_length=100, pattern=_TEMPLATE_ID)
    name: str = Field(min_length=1)
    category: Optional[str] = None
    subject: str = ""
    html: str = Field(min_length=1)


class EmailTemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    subject: Optional[str] = None
    html: Optional[str] = Field(default=None, min_length=1)


class EmailTemplateResponse(BaseModel):
    id: str
    name: str
    category: Optional[str]
    subject: str
    html: str
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class SmsTemplateCreate(BaseModel):
    id: str = Field(min_length=1, max_length=100, pattern=_TEMPLATE_ID)
    name: str = Field(min_length=1)
    category: Optional[str] = None
    content: Optional[str] = None
    message: Optional[str] = None
    variables: List[str] = Field(default_factory=list)

    @model_validator(mode="after")
    def _body_required(self):
        if not (self.content or self.message):
            raise ValueError("content is required")
        return self


class SmsTemplateUpdate(BaseModel):
    name: Optional[str] = Field(default=None, min_length=1)
    category: Optional[str] = None
    content: Optional[str] = None
    variables: Optional[List[str]] = None


class SmsTemplateResponse(BaseModel):
    id: str
    name: str
    category: Optional[str]
    content: str = Field(description="Message body (falls back to the legacy message field)")
    variables: List[str]
    created_at: datetime
    updated_at: datetime
