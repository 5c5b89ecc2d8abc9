"""API v1 aggregated router.

All v1 endpoints are registered here and mounted under /api/v1 in main.py.
"""

from fastapi import APIRouter

from api.routes import (
    communications,
    health,
    instances,
    leads,
    templates,
    webhooks,
    workflows,
)

api_v1_router = APIRouter()

# Health
api_v1_router.include_router(
    health.router,
    tags=["Health"],
)

# Leads
api_v1_router.include_router(
    leads.router,
    prefix="/leads",
    tags=["Leads"],
)

# Workflow definitions
api_v1_router.include_router(
    workflows.router,
    prefix="/workflows",
    tags=["Workflows"],
)

# Workflow instances
api_v1_router.include_router(
    instances.router,
    prefix="/instances",
    tags=["Instances"],
)

# Email / SMS templates
api_v1_router.include_router(
    templates.router,
    prefix="/templates",
    tags=["Templates"],
)

# Communication log + manual sends
api_v1_router.include_router(
    communications.router,
    prefix="/communications",
    tags=["Communications"],
)

# Inbound webhooks
api_v1_router.include_router(
    webhooks.router,
    prefix="/webhooks",
    tags=["Webhooks"],
)
