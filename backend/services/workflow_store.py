"""Workflow definition and instance persistence.

Query shapes the scheduler and triggers rely on:
- due instances: ``status='active' AND next_execution_at <= now``
- enrollment matching: enabled definitions by trigger
- booking cancellation: active instances by contact email
"""

import logging
from datetime import datetime
from typing import Any, Optional, Sequence

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import InstanceStatus, WorkflowTrigger
from core.exceptions import ValidationError
from db.models import WorkflowDefinition, WorkflowInstance
from services.base import BaseService

logger = logging.getLogger(__name__)


class WorkflowDefinitionService(BaseService[WorkflowDefinition]):
    """CRUD and trigger matching for workflow definitions."""

    def __init__(self, db: AsyncSession):
        super().__init__(WorkflowDefinition, db)

    async def create_definition(self, data: dict[str, Any]) -> WorkflowDefinition:
        data = dict(data)
        data["version"] = 1
        if data.get("trigger") != WorkflowTrigger.STATUS_CHANGE.value:
            data["trigger_status"] = None
        return await self.create(data)

    async def update_definition(self, workflow_id: str, data: dict[str, Any]) -> Optional[WorkflowDefinition]:
        """Update a definition, bumping ``version`` when its steps change.

        Raises ValidationError when the result would be a ``status_change``
        workflow without a ``trigger_status``.
        """
        wf = await self.get_by_id(workflow_id)
        if not wf:
            return None
        data = dict(data)
        trigger = data.get("trigger") or wf.trigger
        if trigger == WorkflowTrigger.STATUS_CHANGE.value:
            if not (data.get("trigger_status") or wf.trigger_status):
                raise ValidationError("status_change workflows require trigger_status")
        else:
            data.pop("trigger_status", None)
            wf.trigger_status = None
        if data.get("steps") is not None and data["steps"] != wf.steps:
            data["version"] = wf.version + 1
        return await self.update(workflow_id, data)

    async def find_enabled_by_trigger(
        self,
        trigger: WorkflowTrigger | str,
        trigger_status: Optional[str] = None,
    ) -> Sequence[WorkflowDefinition]:
        """Enabled, non-deleted definitions for ``trigger``.

        For ``status_change`` only definitions whose ``trigger_status``
        equals ``trigger_status`` match.
        """
        trigger = WorkflowTrigger(trigger)
        query = select(WorkflowDefinition).where(
            WorkflowDefinition.trigger == trigger.value,
            WorkflowDefinition.enabled == True,  # noqa: E712
            WorkflowDefinition.is_deleted == False,  # noqa: E712
        )
        if trigger == WorkflowTrigger.STATUS_CHANGE:
            query = query.where(WorkflowDefinition.trigger_status == trigger_status)
        result = await self.db.execute(query.order_by(WorkflowDefinition.created_at))
        return result.scalars().all()


class WorkflowInstanceService(BaseService[WorkflowInstance]):
    """Queries and state transitions for workflow instances."""

    def __init__(self, db: AsyncSession):
        super().__init__(WorkflowInstance, db)

    # ─── Scheduler ─────────────────────────────────────────

    async def find_due(self, now: datetime, limit: Optional[int] = None) -> list[str]:
        """Ids of active instances whose ``next_execution_at`` has passed."""
        query = (
            select(WorkflowInstance.id)
            .where(
                WorkflowInstance.status == InstanceStatus.ACTIVE.value,
                WorkflowInstance.next_execution_at <= now,
                WorkflowInstance.is_deleted == False,  # noqa: E712
            )
            .order_by(WorkflowInstance.next_execution_at)
        )
        if limit:
            query = query.limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def claim(self, instance_id: str, now: datetime, lease_until: datetime) -> bool:
        """Conditionally push a due instance's ``next_execution_at`` to ``lease_until``.

        Returns False when the instance is no longer active and due, which
        means another sweep already claimed or advanced it.
        """
        result = await self.db.execute(
            update(WorkflowInstance)
            .where(
                WorkflowInstance.id == instance_id,
                WorkflowInstance.status == InstanceStatus.ACTIVE.value,
                WorkflowInstance.is_deleted == False,  # noqa: E712
                WorkflowInstance.next_execution_at <= now,
            )
            .values(next_execution_at=lease_until)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    async def transition(self, instance_id: str, values: dict[str, Any]) -> bool:
        """Write ``values`` only if the instance is still active.

        A booking cancellation that lands while a step is running wins;
        the step result is then dropped.
        """
        result = await self.db.execute(
            update(WorkflowInstance)
            .where(
                WorkflowInstance.id == instance_id,
                WorkflowInstance.status == InstanceStatus.ACTIVE.value,
            )
            .values(**values)
            .execution_options(synchronize_session=False)
        )
        return result.rowcount == 1

    # ─── Contact queries ───────────────────────────────────

    async def find_active_by_contact_email(self, email: str) -> Sequence[WorkflowInstance]:
        result = await self.db.execute(
            select(WorkflowInstance).where(
                WorkflowInstance.contact_email == email,
                WorkflowInstance.status == InstanceStatus.ACTIVE.value,
                WorkflowInstance.is_deleted == False,  # noqa: E712
            )
        )
        return result.scalars().all()

    async def find_active_for_contact(self, contact_id: str, workflow_id: str) -> Optional[WorkflowInstance]:
        result = await self.db.execute(
            select(WorkflowInstance)
            .where(
                WorkflowInstance.contact_id == contact_id,
                WorkflowInstance.workflow_id == workflow_id,
                WorkflowInstance.status == InstanceStatus.ACTIVE.value,
                WorkflowInstance.is_deleted == False,  # noqa: E712
            )
            .limit(1)
        )
        return result.scalar_one_or_none()

    async def list_by_contact(self, contact_id: str) -> Sequence[WorkflowInstance]:
        result = await self.db.execute(
            select(WorkflowInstance)
            .where(
                WorkflowInstance.contact_id == contact_id,
                WorkflowInstance.is_deleted == False,  # noqa: E712
            )
            .order_by(WorkflowInstance.created_at.desc())
        )
        return result.scalars().all()

    async def active_count_by_workflow(self) -> dict[str, int]:
        result = await self.db.execute(
            select(WorkflowInstance.workflow_id, func.count())
            .where(
                WorkflowInstance.status == InstanceStatus.ACTIVE.value,
                WorkflowInstance.is_deleted == False,  # noqa: E712
            )
            .group_by(WorkflowInstance.workflow_id)
        )
        return {workflow_id: count for workflow_id, count in result.all()}

    # ─── Cancellation ──────────────────────────────────────

    def _apply_cancellation(self, instance: WorkflowInstance, reason: str, now: datetime) -> None:
        instance.status = InstanceStatus.CANCELLED.value
        instance.cancellation_reason = reason
        instance.cancelled_at = now
        instance.next_execution_at = None

    async def cancel_active_for_contact(self, email: str, reason: str, now: datetime) -> int:
        """Cancel every active instance for ``email`` in one transaction.

        Either all matching instances are cancelled or, if anything fails,
        none are. Commits on success.

        Returns:
            Number of cancelled instances
        """
        try:
            instances = await self.find_active_by_contact_email(email)
            for instance in instances:
                self._apply_cancellation(instance, reason, now)
            await self.db.commit()
        except Exception:
            await self.db.rollback()
            raise

        if instances:
            logger.info(
                f"Cancelled {len(instances)} active workflow(s) for {email}",
                extra={"reason": reason},
            )
        return len(instances)
