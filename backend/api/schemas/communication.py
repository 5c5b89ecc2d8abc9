"""Communication log and manual send schemas."""

from pydantic import BaseModel, Field, model_validator
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.constants import Channel


class CommunicationLogResponse(BaseModel):
    id: str
    type: str
    contact_id: Optional[str]
    workflow_id: Optional[str]
    provider: str
    provider_message_id: Optional[str]
    status: str
    recipient: str
    content: Dict[str, Any]
    error: Optional[str]
    timestamp: datetime

    class Config:
        from_attributes = True


class CommunicationListResponse(BaseModel):
    communications: List[CommunicationLogResponse]
    total: int


class SendMessageRequest(BaseModel):
    """Manual one-off send. Inline content takes precedence over ``template_id``."""

    channel: Channel
    to: str = Field(min_length=1)
    template_id: Optional[str] = None
    subject: Optional[str] = None
    html: Optional[str] = None
    text: Optional[str] = None
    variables: Dict[str, Any] = Field(default_factory=dict)
    contact_id: Optional[str] = None

    @model_validator(mode="after")
    def _content_required(self):
        inline = self.html if self.channel == Channel.EMAIL else self.text
        if not (inline or self.template_id):
            raise ValueError("template_id or inline content is required")
        return self


class SendMessageResponse(BaseModel):
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None
