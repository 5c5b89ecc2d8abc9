"""Workflow instance model: one contact's progress through one workflow."""

from datetime import datetime
from typing import Optional

from sqlalchemy import JSON, DateTime, Index, Text
from sqlalchemy.orm import Mapped, mapped_column

from core.constants import InstanceStatus
from db.base import BaseModel


class WorkflowInstance(BaseModel):
    """Per-contact execution state of a workflow definition.

    Attributes:
        workflow_id: Referenced definition (not owned; may disappear)
        workflow_version: Definition version captured at enrollment
        contact_id: Lead id of the enrolled contact
        contact_name / contact_email / contact_phone: Snapshot at enrollment
        status: active, completed, error or cancelled
        current_step_index: Index into the definition's steps; never decreases
        next_execution_at: Naive UTC due time, meaningful only while active
        history: Append-only list of executed steps and their results
        error: Failure description when status is error
        variables: Per-instance template variable overrides
        completed_at / cancelled_at: Terminal timestamps
        cancellation_reason: Why the instance was cancelled
    """

    __tablename__ = "workflow_instances"
    __table_args__ = (
        Index("ix_workflow_instances_due", "status", "next_execution_at"),
        Index("ix_workflow_instances_contact_email_status", "contact_email", "status"),
    )

    workflow_id: Mapped[str] = mapped_column(nullable=False, index=True)
    workflow_version: Mapped[int] = mapped_column(default=1)
    contact_id: Mapped[str] = mapped_column(nullable=False, index=True)
    contact_name: Mapped[str] = mapped_column(nullable=False, default="")
    contact_email: Mapped[Optional[str]] = mapped_column(nullable=True)
    contact_phone: Mapped[Optional[str]] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        nullable=False, default=InstanceStatus.ACTIVE.value
    )
    current_step_index: Mapped[int] = mapped_column(default=0)
    next_execution_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    history: Mapped[list] = mapped_column(JSON, nullable=False, default=list)
    error: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    variables: Mapped[dict] = mapped_column(JSON, nullable=False, default=dict)
    completed_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    cancelled_at: Mapped[Optional[datetime]] = mapped_column(
        DateTime(timezone=False), nullable=True
    )
    cancellation_reason: Mapped[Optional[str]] = mapped_column(nullable=True)

    @property
    def is_active(self) -> bool:
        return self.status == InstanceStatus.ACTIVE.value
