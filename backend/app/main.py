"""Lead Outreach Engine - FastAPI Application."""

from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from starlette.middleware.base import BaseHTTPMiddleware

from app.config import get_settings
from api.v1.router import api_v1_router
from api.routes import health
from core.logging_config import setup_logging
from core.middleware import (
    PathScopedCORSMiddleware,
    RequestTrackingMiddleware,
    setup_exception_handlers,
)
from db.database import AsyncSessionLocal, close_db, init_db
from messaging.gateway import MessagingGateway, build_gateway
from workflow.scheduler import start_sweep_thread


class SecurityHeadersMiddleware(BaseHTTPMiddleware):
    """Add security headers to all responses."""

    async def dispatch(self, request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Cache-Control"] = "no-store"

        if get_settings().is_production:
            response.headers["Strict-Transport-Security"] = "max-age=31536000; includeSubDomains"

        return response


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application startup and shutdown events."""
    settings = get_settings()
    setup_logging()

    await init_db()

    gateway: MessagingGateway = app.state.gateway
    print(
        f"[startup] Messaging: email={'on' if gateway.email_provider else 'off'}, "
        f"sms={'on' if gateway.sms_provider else 'off'}"
    )

    sweep_stop = None
    if settings.SCHEDULER_BACKEND == "thread":
        sweep_stop = start_sweep_thread(
            settings.SWEEP_INTERVAL_SECONDS,
            providers=(gateway.email_provider, gateway.sms_provider),
        )
        print(f"[startup] Workflow sweep thread started ({settings.SWEEP_INTERVAL_SECONDS}s interval)")
    else:
        print("[startup] Workflow sweep runs on Celery Beat (process-workflow-queue)")

    print(f"[startup] {settings.APP_NAME} v{settings.APP_VERSION} started ({settings.ENVIRONMENT})")
    yield
    # Shutdown
    if sweep_stop is not None:
        sweep_stop.set()
    await close_db()
    print("[shutdown] Application shutting down...")


def create_app(
    gateway: Optional[MessagingGateway] = None,
    session_factory=None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    ``gateway`` and ``session_factory`` default to the process-wide engine and
    providers built from settings.
    """
    settings = get_settings()

    app = FastAPI(
        title=settings.APP_NAME,
        version=settings.APP_VERSION,
        description="Lead capture and multi-step email/SMS outreach workflows.",
        docs_url="/docs" if settings.is_development else None,
        redoc_url="/redoc" if settings.is_development else None,
        lifespan=lifespan,
    )

    app.state.session_factory = session_factory or AsyncSessionLocal
    app.state.gateway = gateway or build_gateway(settings, app.state.session_factory)

    # Request tracking middleware
    app.add_middleware(RequestTrackingMiddleware)

    # Security headers middleware
    app.add_middleware(SecurityHeadersMiddleware)

    # CORS middleware (the booking webhook sets its own headers)
    app.add_middleware(
        PathScopedCORSMiddleware,
        skip_prefixes=(f"{settings.API_V1_PREFIX}/webhooks",),
        allow_origins=settings.cors_origins_list,
        allow_credentials=True,
        allow_methods=["GET", "POST", "PUT", "DELETE", "PATCH", "OPTIONS"],
        allow_headers=["Content-Type", "Authorization", "X-Request-ID"],
    )

    # Global exception handlers
    setup_exception_handlers(app)

    # Root health check (unversioned, for load balancers / k8s probes)
    app.include_router(health.router, prefix="/api", tags=["Health"])

    # Versioned API: all business endpoints under /api/v1
    app.include_router(api_v1_router, prefix=settings.API_V1_PREFIX)

    return app


app = create_app()
