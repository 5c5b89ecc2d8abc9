"""Enroll contacts into workflows."""

import logging
from typing import Any, Callable, Mapping, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from app.config import get_settings
from core.constants import InstanceStatus
from core.utils import utcnow_naive
from db.models import WorkflowInstance
from services.workflow_store import WorkflowDefinitionService, WorkflowInstanceService

logger = logging.getLogger(__name__)


class EnrollmentService:
    """Creates workflow instances. Enrollment is best-effort: a missing or
    disabled workflow is logged and skipped, never raised.

    The caller owns the transaction; ``enroll`` only flushes.
    """

    def __init__(
        self,
        db: AsyncSession,
        dedup: Optional[bool] = None,
        clock: Callable[[], Any] = utcnow_naive,
    ):
        self.db = db
        self.dedup = get_settings().ENROLLMENT_DEDUP if dedup is None else dedup
        self.clock = clock
        self.definitions = WorkflowDefinitionService(db)
        self.instances = WorkflowInstanceService(db)

    async def enroll(
        self,
        contact_id: str,
        workflow_id: str,
        contact: Mapping[str, Any],
        variables: Optional[Mapping[str, Any]] = None,
    ) -> Optional[WorkflowInstance]:
        """Create one active instance due immediately at step 0.

        Args:
            contact_id: Lead id
            workflow_id: Definition to enroll into
            contact: Contact snapshot with ``name``/``firstName``, ``email``, ``phone``
            variables: Per-instance template variable overrides

        Returns:
            The new instance, or None when enrollment was skipped
        """
        workflow = await self.definitions.get_by_id(workflow_id)
        if workflow is None:
            logger.error(f"Workflow {workflow_id} not found, skipping enrollment of {contact_id}")
            return None
        if not workflow.enabled:
            logger.info(f"Workflow {workflow.name} is disabled, skipping enrollment of {contact_id}")
            return None

        if self.dedup:
            existing = await self.instances.find_active_for_contact(contact_id, workflow_id)
            if existing is not None:
                logger.info(f"Contact {contact_id} already active in workflow {workflow_id}")
                return None

        instance = await self.instances.create({
            "workflow_id": workflow_id,
            "workflow_version": workflow.version,
            "contact_id": contact_id,
            "contact_name": contact.get("name") or contact.get("firstName") or "Friend",
            "contact_email": contact.get("email") or None,
            "contact_phone": contact.get("phone") or None,
            "status": InstanceStatus.ACTIVE.value,
            "current_step_index": 0,
            "next_execution_at": self.clock(),
            "history": [],
            "variables": dict(variables or {}),
        })
        logger.info(
            f"Enrolled contact {contact_id} in workflow {workflow_id}",
            extra={"instance_id": instance.id},
        )
        return instance
