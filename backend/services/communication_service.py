"""Read access to the communication log."""

from typing import Optional, Sequence

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from db.models import CommunicationLog


class CommunicationService:
    """Queries over the append-only communication log."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def recent(
        self,
        limit: int = 50,
        contact_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
        channel: Optional[str] = None,
    ) -> Sequence[CommunicationLog]:
        """Newest entries first."""
        query = select(CommunicationLog)
        if contact_id:
            query = query.where(CommunicationLog.contact_id == contact_id)
        if workflow_id:
            query = query.where(CommunicationLog.workflow_id == workflow_id)
        if channel:
            query = query.where(CommunicationLog.type == channel)
        query = query.order_by(CommunicationLog.timestamp.desc()).limit(limit)
        result = await self.db.execute(query)
        return result.scalars().all()
