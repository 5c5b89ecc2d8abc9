"""Communication log model (append-only audit of send attempts)."""

from datetime import datetime
from typing import Optional
from uuid import uuid4

from sqlalchemy import JSON, DateTime, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.utils import utc_now
from db.base import Base


class CommunicationLog(Base):
    """One email or SMS send attempt.

    Never updated after insert, so it carries no ``updated_at`` and no
    soft-delete columns.

    Attributes:
        type: email or sms
        contact_id: Lead the message was sent to, if known
        workflow_id: Workflow that sent it; None for manual sends
        provider: Provider name (resend, plivo)
        provider_message_id: Provider-assigned id, absent on failure
        status: sent or failed
        recipient: Email address or normalized phone number
        content: Snapshot of subject/body/template id
        error: Failure description
        timestamp: When the attempt finished
    """

    __tablename__ = "communication_logs"

    id: Mapped[str] = mapped_column(primary_key=True, default=lambda: str(uuid4()))
    type: Mapped[str] = mapped_column(nullable=False, index=True)
    contact_id: Mapped[Optional[str]] = mapped_column(nullable=True, index=True)
    workflow_id: Mapped[Optional[str]] = mapped_column(nullable=True, index=True)
    provider: Mapped[str] = mapped_column(nullable=False)
    provider_message_id: Mapped[Optional[str]] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(nullable=False)
    recipient: Mapped[str] = mapped_column(nullable=False)
    content: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utc_now, index=True
    )
