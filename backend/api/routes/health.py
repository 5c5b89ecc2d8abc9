"""Health check endpoints.

Provides:
- Basic liveness probe (/health)
- Dependency check (/health/ready)
"""

import logging
import time
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse
from sqlalchemy import text
from sqlalchemy.ext.asyncio import async_sessionmaker

from app.config import get_settings
from app.dependencies import get_gateway, get_session_factory
from messaging.gateway import MessagingGateway

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/health", tags=["health"])

_start_time = time.monotonic()
_start_datetime = datetime.now(timezone.utc).isoformat()


@router.get("", response_model=dict[str, Any])
async def health(gateway: MessagingGateway = Depends(get_gateway)) -> dict[str, Any]:
    """
    Liveness probe with version and messaging capability flags.
    """
    settings = get_settings()
    return {
        "app": settings.APP_NAME,
        "version": settings.APP_VERSION,
        "status": "ok",
        "environment": settings.ENVIRONMENT,
        "scheduler": settings.SCHEDULER_BACKEND,
        "email_configured": gateway.email_provider is not None,
        "sms_configured": gateway.sms_provider is not None,
        "started_at": _start_datetime,
        "uptime_seconds": round(time.monotonic() - _start_time, 1),
    }


@router.get("/ready", response_model=dict[str, Any])
async def readiness(
    session_factory: async_sessionmaker = Depends(get_session_factory),
):
    """
    Readiness probe. Returns 503 if the database is unreachable.
    """
    checks: dict[str, str] = {}
    try:
        async with session_factory() as session:
            await session.execute(text("SELECT 1"))
        checks["database"] = "ok"
    except Exception as e:
        logger.error("Database health check failed: %s", e)
        checks["database"] = "unavailable"

    healthy = all(v == "ok" for v in checks.values())
    return JSONResponse(
        status_code=200 if healthy else 503,
        content={"status": "ok" if healthy else "degraded", "checks": checks},
    )
