"""Base trigger classes for lead events."""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Callable, Optional

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.utils import utcnow_naive


class LeadEventType(str, Enum):
    """Lead changes that can enroll contacts into workflows."""

    CREATED = "lead_created"
    STATUS_CHANGED = "lead_status_changed"


@dataclass
class LeadEvent:
    """A lead change, passed from the API layer to a trigger handler.

    ``lead`` is a plain snapshot taken inside the request's transaction so
    the handler never touches request-scoped ORM objects.
    """

    lead_id: str
    event_type: LeadEventType
    lead: dict[str, Any] = field(default_factory=dict)
    previous_status: Optional[str] = None
    timestamp: datetime = field(default_factory=utcnow_naive)


@dataclass
class TriggerResult:
    """Result of handling one lead event."""

    success: bool
    message: str
    lead_id: str
    enrolled: list[str] = field(default_factory=list)
    cancelled: int = 0
    error: Optional[str] = None


class BaseTriggerHandler(ABC):
    """Abstract base class for lead event handlers.

    Handlers run after the request that produced the event has committed,
    so they open their own sessions from ``session_factory``.
    """

    event_type: LeadEventType

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow_naive,
    ):
        self.session_factory = session_factory
        self.clock = clock

    @abstractmethod
    async def handle(self, event: LeadEvent) -> TriggerResult:
        """Apply the event's workflow side effects."""
        ...
