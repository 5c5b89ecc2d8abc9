"""Lead service: capture and pipeline status updates."""

import logging
from typing import Any, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from core.constants import LeadSource, LeadStatus
from db.models import Lead
from services.base import BaseService

logger = logging.getLogger(__name__)


class LeadService(BaseService[Lead]):
    """Service for lead records."""

    def __init__(self, db: AsyncSession):
        super().__init__(Lead, db)

    async def create_lead(self, data: dict[str, Any]) -> Lead:
        data = dict(data)
        data.setdefault("source", LeadSource.FORM_SUBMIT.value)
        data.setdefault("status", LeadStatus.NEW.value)
        data.setdefault("notified", False)
        lead = await self.create(data)
        logger.info(f"Lead created: {lead.id}", extra={"source": lead.source})
        return lead

    async def update_lead(
        self,
        lead_id: str,
        status: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> tuple[Optional[Lead], Optional[str]]:
        """Update status/notes.

        Returns:
            Tuple of (lead, previous_status); lead is None if not found
        """
        lead = await self.get_by_id(lead_id)
        if not lead:
            return None, None
        previous_status = lead.status
        lead = await self.update(lead_id, {"status": status, "notes": notes})
        return lead, previous_status
