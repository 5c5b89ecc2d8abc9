"""Lead model."""

from typing import Optional

from sqlalchemy import JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import LeadSource, LeadStatus
from db.base import BaseModel


class Lead(BaseModel):
    """A prospect captured from the website form or a booking.

    Attributes:
        name / email / phone: Contact details
        service: Service the lead is interested in
        message: Free-text message or booking summary
        source: form_submit or booking
        status: Sales pipeline status
        notes: Operator notes
        notified: Whether an operator notification went out
        booking_data: Booking id, event type, times and manage URLs
    """

    __tablename__ = "leads"

    name: Mapped[str] = mapped_column(nullable=False, default="")
    email: Mapped[Optional[str]] = mapped_column(nullable=True, index=True)
    phone: Mapped[Optional[str]] = mapped_column(nullable=True)
    service: Mapped[Optional[str]] = mapped_column(nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source: Mapped[str] = mapped_column(
        nullable=False, default=LeadSource.FORM_SUBMIT.value, index=True
    )
    status: Mapped[str] = mapped_column(
        nullable=False, default=LeadStatus.NEW.value, index=True
    )
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notified: Mapped[bool] = mapped_column(default=False)
    booking_data: Mapped[Optional[dict]] = mapped_column(JSON, nullable=True)
