"""Celery task that runs the workflow sweep.

Beat fires it every minute (``process-workflow-queue``). Sweeps are safe
to overlap: each instance is claimed before its step runs. A failed sweep
is logged and left to the next tick.
"""

import logging

from worker.celery_app import celery_app
from workflow.scheduler import run_sweep_sync

logger = logging.getLogger(__name__)


@celery_app.task(
    name="worker.tasks.workflow_queue.process_workflow_queue",
    queue="workflows",
)
def process_workflow_queue():
    """Advance every due workflow instance by one step."""
    try:
        result = run_sweep_sync()
    except Exception as exc:
        logger.error(f"[workflow-queue] Sweep failed: {exc}", exc_info=True)
        return {"due": 0, "error": str(exc)}

    if result.get("due", 0) > 0:
        logger.info(f"[workflow-queue] Done: {result}")
    return result
