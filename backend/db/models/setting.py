"""Key/value application settings stored in the database."""

from datetime import datetime
from typing import Any, Optional

from sqlalchemy import JSON, DateTime, func
from sqlalchemy.orm import Mapped, mapped_column

from db.base import Base


class AppSetting(Base):
    """A JSON value stored under a string key.

    The ``email_templates`` key holds the legacy mapping of template id to
    HTML body that predates the ``email_templates`` table.
    """

    __tablename__ = "app_settings"

    key: Mapped[str] = mapped_column(primary_key=True)
    value: Mapped[Optional[Any]] = mapped_column(JSON, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=func.now(), onupdate=func.now()
    )
