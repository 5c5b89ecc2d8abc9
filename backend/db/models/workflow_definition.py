"""Workflow definition model."""

from typing import Optional

from sqlalchemy import JSON, Index
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import WorkflowTrigger
from db.base import BaseModel


class WorkflowDefinition(BaseModel):
    """An ordered list of outreach steps started by a trigger.

    Attributes:
        id: Stable identifier (UUID string or operator-chosen slug)
        name: Workflow name
        description: Free-form description
        trigger: Enrollment trigger (form_submit, booking, status_change)
        trigger_status: Lead status that fires a status_change workflow
        enabled: Whether new contacts may be enrolled
        steps: Ordered list of step dicts; the list index addresses a step
        category: Optional grouping label
        version: Bumped whenever ``steps`` change
    """

    __tablename__ = "workflow_definitions"
    __table_args__ = (
        Index("ix_workflow_definitions_trigger_enabled", "trigger", "enabled"),
    )

    name: Mapped[str] = mapped_column(nullable=False, index=True)
    description: Mapped[str] = mapped_column(nullable=False, default="")
    trigger: Mapped[str] = mapped_column(
        nullable=False, default=WorkflowTrigger.FORM_SUBMIT.value
    )
    trigger_status: Mapped[Optional[str]] = mapped_column(nullable=True)
    enabled: Mapped[bool] = mapped_column(default=True)
    steps: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    category: Mapped[Optional[str]] = mapped_column(nullable=True)
    version: Mapped[int] = mapped_column(default=1)
