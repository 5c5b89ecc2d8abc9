"""Workflow execution engine: advance due instances one step per sweep.

Per instance and tick:

1. Claim the instance (conditional update pushing ``next_execution_at``
   forward by a lease). Losing the claim means another sweep owns it.
2. Re-read the definition. Missing or deleted -> ``error``.
3. ``steps[current_step_index]`` absent -> ``completed``.
4. Execute the step, append a history entry, then either advance to the
   next index (due ``now + next_step.delay_minutes``), complete, or move to
   ``error``. A failed step is terminal; nothing is retried.

Instances are processed concurrently and independently; an exception in one
is logged and never aborts the sweep.
"""

import asyncio
from dataclasses import asdict, dataclass
from datetime import datetime, timedelta
from enum import Enum
from typing import Any, Callable, Optional

import structlog
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from app.config import get_settings
from core.constants import InstanceStatus, StepType
from core.utils import utcnow_naive
from db.models import WorkflowInstance
from messaging.gateway import MessagingGateway
from services.workflow_store import WorkflowDefinitionService, WorkflowInstanceService

logger = structlog.get_logger(__name__)

WORKFLOW_DELETED_ERROR = "Workflow deleted"


class ProcessOutcome(str, Enum):
    """What one ``process_instance`` call did."""
    ADVANCED = "advanced"
    COMPLETED = "completed"
    ERROR = "error"
    NOT_CLAIMED = "not_claimed"
    DROPPED = "dropped"  # instance left ``active`` while its step ran


@dataclass
class SweepResult:
    due: int = 0
    advanced: int = 0
    completed: int = 0
    errored: int = 0
    not_claimed: int = 0
    dropped: int = 0
    failed: int = 0  # unexpected exceptions, retried after the lease expires

    def to_dict(self) -> dict:
        return asdict(self)


def step_delay_minutes(step: Any) -> float:
    """Delay carried by ``step``: ``delay_minutes`` or legacy ``delay``, >= 0."""
    if not isinstance(step, dict):
        return 0
    raw = step.get("delay_minutes", step.get("delay")) or 0
    try:
        minutes = float(raw)
    except (TypeError, ValueError):
        logger.warning("invalid_step_delay", delay=raw)
        return 0
    return max(minutes, 0)


def step_type(step: Any) -> Optional[str]:
    return step.get("type") if isinstance(step, dict) else None


def build_variables(instance: WorkflowInstance) -> dict[str, Any]:
    """Template variables for an instance: contact snapshot, then overrides."""
    variables = {
        "firstName": instance.contact_name,
        "name": instance.contact_name,
        "email": instance.contact_email,
        "phone": instance.contact_phone,
        "service": "Project",
    }
    variables.update(instance.variables or {})
    return variables


class WorkflowEngine:
    """Runs sweeps over due workflow instances."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        gateway: MessagingGateway,
        lease_seconds: Optional[int] = None,
        clock: Callable[[], datetime] = utcnow_naive,
    ):
        self.session_factory = session_factory
        self.gateway = gateway
        self.lease = timedelta(
            seconds=get_settings().CLAIM_LEASE_SECONDS if lease_seconds is None else lease_seconds
        )
        self.clock = clock

    # ── Sweep ──

    async def run_sweep(self, now: Optional[datetime] = None) -> SweepResult:
        """Process every due instance concurrently. Never raises on instance failures."""
        now = now or self.clock()
        async with self.session_factory() as session:
            due_ids = await WorkflowInstanceService(session).find_due(now)

        result = SweepResult(due=len(due_ids))
        if not due_ids:
            return result

        logger.info("sweep_started", due=len(due_ids), now=now.isoformat())
        outcomes = await asyncio.gather(
            *(self.process_instance(instance_id, now) for instance_id in due_ids),
            return_exceptions=True,
        )
        for instance_id, outcome in zip(due_ids, outcomes):
            if isinstance(outcome, BaseException):
                result.failed += 1
                logger.error(
                    "instance_processing_failed",
                    instance_id=instance_id,
                    error=str(outcome),
                    exc_info=outcome,
                )
            elif outcome == ProcessOutcome.ADVANCED:
                result.advanced += 1
            elif outcome == ProcessOutcome.COMPLETED:
                result.completed += 1
            elif outcome == ProcessOutcome.ERROR:
                result.errored += 1
            elif outcome == ProcessOutcome.NOT_CLAIMED:
                result.not_claimed += 1
            elif outcome == ProcessOutcome.DROPPED:
                result.dropped += 1

        logger.info("sweep_finished", **result.to_dict())
        return result

    # ── Instance ──

    async def process_instance(self, instance_id: str, now: Optional[datetime] = None) -> ProcessOutcome:
        """Advance one instance by exactly one step."""
        now = now or self.clock()
        log = logger.bind(instance_id=instance_id)

        async with self.session_factory() as session:
            instances = WorkflowInstanceService(session)

            claimed = await instances.claim(instance_id, now, now + self.lease)
            await session.commit()
            if not claimed:
                log.info("instance_not_claimed")
                return ProcessOutcome.NOT_CLAIMED

            instance = await instances.get_by_id(instance_id)
            if instance is None:
                log.info("instance_deleted")
                return ProcessOutcome.NOT_CLAIMED
            workflow = await WorkflowDefinitionService(session).get_by_id(instance.workflow_id)
            log = log.bind(workflow_id=instance.workflow_id, step_index=instance.current_step_index)

            if workflow is None:
                log.error("workflow_missing")
                return await self._finish(
                    instances,
                    instance_id,
                    {
                        "status": InstanceStatus.ERROR.value,
                        "error": WORKFLOW_DELETED_ERROR,
                        "next_execution_at": None,
                    },
                    ProcessOutcome.ERROR,
                )

            if workflow.version != instance.workflow_version:
                log.warning(
                    "workflow_version_changed",
                    enrolled_version=instance.workflow_version,
                    current_version=workflow.version,
                )

            steps = list(workflow.steps or [])
            index = instance.current_step_index
            if index >= len(steps):
                log.info("workflow_completed")
                return await self._finish(
                    instances, instance_id, self._completion(now, max(index, len(steps))), ProcessOutcome.COMPLETED
                )

            step = steps[index]
            # End the read transaction before talking to a provider.
            await session.commit()

            log.info("executing_step", step_type=step_type(step))
            result = await self.execute_step(step, instance)

            values: dict[str, Any] = {
                "history": list(instance.history or []) + [{
                    "stepIndex": index,
                    "stepType": step_type(step),
                    "executedAt": now.isoformat(),
                    "result": result,
                }],
            }

            if result.get("success"):
                next_index = index + 1
                if next_index < len(steps):
                    delay = step_delay_minutes(steps[next_index])
                    values.update(
                        current_step_index=next_index,
                        next_execution_at=now + timedelta(minutes=delay) if delay else now,
                    )
                    outcome = ProcessOutcome.ADVANCED
                else:
                    values.update(self._completion(now, next_index))
                    outcome = ProcessOutcome.COMPLETED
            else:
                log.error("step_failed", error=result.get("error"))
                values.update(
                    status=InstanceStatus.ERROR.value,
                    error=result.get("error") or "Step failed",
                    next_execution_at=None,
                )
                outcome = ProcessOutcome.ERROR

            outcome = await self._finish(instances, instance_id, values, outcome)
            log.info("step_processed", outcome=outcome.value)
            return outcome

    async def execute_step(self, step: Any, instance: WorkflowInstance) -> dict[str, Any]:
        """Dispatch one step by type and return its result dict."""
        kind = step_type(step)
        variables = build_variables(instance)

        if kind in (StepType.EMAIL.value, StepType.SMS.value):
            if kind == StepType.EMAIL.value:
                outcome = await self.gateway.send_email(
                    instance.contact_email,
                    template_id=step.get("templateId"),
                    variables=variables,
                    contact_id=instance.contact_id,
                    workflow_id=instance.workflow_id,
                )
            else:
                outcome = await self.gateway.send_sms(
                    instance.contact_phone,
                    template_id=step.get("templateId"),
                    variables=variables,
                    contact_id=instance.contact_id,
                    workflow_id=instance.workflow_id,
                )
            if outcome is None:
                return {"success": True, "skipped": True, "reason": "No recipient"}
            return outcome.to_dict()

        if kind == StepType.TASK.value:
            logger.info(
                "task_created",
                instance_id=instance.id,
                contact_id=instance.contact_id,
                description=step.get("description"),
            )
            return {"success": True, "message": "Task logged"}

        return {"success": True, "skipped": True}

    # ── Helpers ──

    @staticmethod
    def _completion(now: datetime, final_index: int) -> dict[str, Any]:
        return {
            "status": InstanceStatus.COMPLETED.value,
            "current_step_index": final_index,
            "completed_at": now,
            "next_execution_at": None,
        }

    async def _finish(
        self,
        instances: WorkflowInstanceService,
        instance_id: str,
        values: dict[str, Any],
        outcome: ProcessOutcome,
    ) -> ProcessOutcome:
        written = await instances.transition(instance_id, values)
        await instances.db.commit()
        if not written:
            logger.warning("instance_left_active_during_step", instance_id=instance_id)
            return ProcessOutcome.DROPPED
        return outcome
