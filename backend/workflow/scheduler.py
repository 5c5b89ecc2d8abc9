"""Timer side of the workflow engine.

``run_sweep_once`` runs one sweep on a throwaway engine so it can be
called from any event loop (Celery task, poller thread).
``start_sweep_thread`` runs it every ``SWEEP_INTERVAL_SECONDS`` inside the
API process when ``SCHEDULER_BACKEND=thread``.
"""

import asyncio
import logging
import threading
import time
from typing import Optional

from app.config import get_settings
from db.worker_session import worker_session_factory
from messaging.gateway import build_gateway
from messaging.providers import build_providers
from workflow.engine import WorkflowEngine

logger = logging.getLogger("workflow-sweep")


async def run_sweep_once(providers: Optional[tuple] = None) -> dict:
    """Run one sweep and return its counters."""
    settings = get_settings()
    providers = providers if providers is not None else build_providers(settings)

    async with worker_session_factory() as session_factory:
        gateway = build_gateway(settings, session_factory, providers)
        engine = WorkflowEngine(session_factory, gateway)
        result = await engine.run_sweep()
    return result.to_dict()


def run_sweep_sync(providers: Optional[tuple] = None) -> dict:
    """Run one sweep in a fresh event loop (for threads and Celery workers)."""
    loop = asyncio.new_event_loop()
    asyncio.set_event_loop(loop)
    try:
        return loop.run_until_complete(run_sweep_once(providers))
    finally:
        loop.close()


def start_sweep_thread(
    interval: Optional[int] = None,
    providers: Optional[tuple] = None,
    startup_delay: float = 5,
) -> threading.Event:
    """Launch a daemon thread that sweeps every ``interval`` seconds.

    Returns a threading.Event that can be set to stop the thread.
    """
    interval = interval or get_settings().SWEEP_INTERVAL_SECONDS
    stop_event = threading.Event()

    def _sweep_loop():
        logger.info("[workflow-sweep] Background thread started")
        # Wait a few seconds for app to fully start
        time.sleep(startup_delay)

        while not stop_event.is_set():
            try:
                result = run_sweep_sync(providers)
                if result.get("due", 0) > 0:
                    logger.info(f"[workflow-sweep] {result}")
            except Exception as e:
                logger.error(f"[workflow-sweep] Error: {e}", exc_info=True)

            # Interruptible wait
            stop_event.wait(timeout=interval)

        logger.info("[workflow-sweep] Background thread stopped")

    thread = threading.Thread(target=_sweep_loop, name="workflow-sweep", daemon=True)
    thread.start()
    return stop_event
