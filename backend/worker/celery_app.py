"""Celery application configuration.

This module sets up the Celery app with:
- Redis as broker and result backend
- Serialization and timezone settings
- Beat schedule for the workflow sweep
"""

from celery import Celery
from celery.schedules import crontab

from app.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery(
    "outreach_engine",
    broker=settings.REDIS_URL,
    backend=settings.REDIS_URL,
)

# Configuration
celery_app.conf.update(
    # Serialization
    task_serializer="json",
    accept_content=["json"],
    result_serializer="json",

    # Timezone
    timezone="UTC",
    enable_utc=True,

    task_routes={
        "worker.tasks.workflow_queue.*": {"queue": "workflows"},
        "worker.tasks.*": {"queue": "default"},
    },
    task_default_queue="default",

    # Result expiration (24 hours)
    result_expires=86400,

    # Task execution limits
    task_soft_time_limit=120,
    task_time_limit=300,
    worker_prefetch_multiplier=1,

    # Beat schedule for periodic tasks
    beat_schedule={
        "process-workflow-queue": {
            "task": "worker.tasks.workflow_queue.process_workflow_queue",
            "schedule": crontab(minute="*/1"),  # Every minute
            "options": {"queue": "workflows"},
        },
    },

    include=[
        "worker.tasks.workflow_queue",
    ],
)
