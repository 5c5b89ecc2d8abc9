"""Email and SMS template models."""

from typing import Optional

from sqlalchemy import JSON, Text
from sqlalchemy.orm import Mapped, mapped_column

from db.base import BaseModel


class EmailTemplate(BaseModel):
    """Operator-authored HTML email with a subject line."""

    __tablename__ = "email_templates"

    name: Mapped[str] = mapped_column(nullable=False)
    category: Mapped[Optional[str]] = mapped_column(nullable=True)
    subject: Mapped[str] = mapped_column(nullable=False, default="")
    html: Mapped[str] = mapped_column(Text, nullable=False, default="")


class SmsTemplate(BaseModel):
    """Operator-authored SMS body.

    Older records store the body under ``message``; ``body`` prefers
    ``content`` and falls back to it.
    """

    __tablename__ = "sms_templates"

    name: Mapped[str] = mapped_column(nullable=False)
    category: Mapped[Optional[str]] = mapped_column(nullable=True)
    content: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    message: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    variables: Mapped[list] = mapped_column(JSON, nullable=False, default=list)

    @property
    def body(self) -> str:
        return self.content or self.message or ""
