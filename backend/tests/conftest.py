"""Shared pytest fixtures for the Lead Outreach Engine test suite.

Provides:
- A file-backed async SQLite database per test (tmp_path)
- Session factory / session fixtures
- Fake email and SMS providers wired into a real MessagingGateway
- FastAPI app + httpx.AsyncClient over ASGITransport
- Factories for workflows, templates, leads and instances
"""

import os
from datetime import datetime
from typing import AsyncGenerator, Optional

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine

# Override settings BEFORE any app imports
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("REDIS_URL", "redis://localhost:6379/0")
os.environ.setdefault("ENVIRONMENT", "testing")
os.environ.setdefault("LOG_FORMAT", "text")
os.environ["RESEND_API_KEY"] = ""
os.environ["PLIVO_AUTH_ID"] = ""
os.environ["PLIVO_AUTH_TOKEN"] = ""

from core.exceptions import ProviderError  # noqa: E402
from core.utils import utcnow_naive  # noqa: E402
from db.base import Base  # noqa: E402
from db.database import create_session_factory  # noqa: E402
from messaging.gateway import MessagingGateway  # noqa: E402
from messaging.providers import EmailProvider, ProviderReceipt, SmsProvider  # noqa: E402
from workflow.engine import WorkflowEngine  # noqa: E402


# ---------------------------------------------------------------------------
# Fake providers
# ---------------------------------------------------------------------------

class FakeEmailProvider(EmailProvider):
    """Records sends; raises ``fail_with`` when set."""

    name = "resend"

    def __init__(self):
        self.sent: list[dict] = []
        self.fail_with: Optional[Exception] = None

    async def send_email(self, sender, to, subject, html):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"from": sender, "to": to, "subject": subject, "html": html})
        return ProviderReceipt(id=f"email-{len(self.sent)}")


class FakeSmsProvider(SmsProvider):
    name = "plivo"

    def __init__(self):
        self.sent: list[dict] = []
        self.fail_with: Optional[Exception] = None

    async def send_sms(self, sender, to, text):
        if self.fail_with is not None:
            raise self.fail_with
        self.sent.append({"src": sender, "dst": to, "text": text})
        return ProviderReceipt(id=f"sms-{len(self.sent)}")


# ---------------------------------------------------------------------------
# Database fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def db_engine(tmp_path):
    """Async engine on a fresh SQLite file for each test."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False)
    # Import all models so Base.metadata knows about them
    import db.models  # noqa: F401

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(db_engine):
    return create_session_factory(db_engine)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """A session for arranging and asserting. Commit explicitly to share data."""
    async with session_factory() as session:
        yield session


# ---------------------------------------------------------------------------
# Messaging / engine fixtures
# ---------------------------------------------------------------------------

@pytest.fixture
def email_provider():
    return FakeEmailProvider()


@pytest.fixture
def sms_provider():
    return FakeSmsProvider()


@pytest.fixture
def gateway(session_factory, email_provider, sms_provider) -> MessagingGateway:
    return MessagingGateway(
        email_provider=email_provider,
        sms_provider=sms_provider,
        session_factory=session_factory,
        email_from="Test Co <noreply@example.com>",
        sms_from="15550000000",
        default_subject="Message from Test Co",
    )


@pytest.fixture
def workflow_engine(session_factory, gateway) -> WorkflowEngine:
    return WorkflowEngine(session_factory, gateway, lease_seconds=300)


@pytest.fixture
def provider_error():
    return ProviderError("resend returned 422: invalid from address", provider="resend")


# ---------------------------------------------------------------------------
# App / HTTP client fixtures
# ---------------------------------------------------------------------------

@pytest_asyncio.fixture
async def app(session_factory, gateway):
    """FastAPI app wired to the test database and fake providers."""
    from app.main import create_app

    return create_app(gateway=gateway, session_factory=session_factory)


@pytest_asyncio.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP test client."""
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test", follow_redirects=True) as ac:
        yield ac


# ---------------------------------------------------------------------------
# Test data factories
# ---------------------------------------------------------------------------

@pytest.fixture
def create_workflow(session_factory):
    """Factory: insert a workflow definition and return it."""
    from db.models import WorkflowDefinition

    async def _create(
        steps: list,
        trigger: str = "form_submit",
        enabled: bool = True,
        id: Optional[str] = None,
        **kwargs,
    ) -> WorkflowDefinition:
        async with session_factory() as session:
            wf = WorkflowDefinition(
                id=id or f"wf_{len(steps)}_{os.urandom(4).hex()}",
                name=kwargs.pop("name", "Test Workflow"),
                trigger=trigger,
                enabled=enabled,
                steps=steps,
                version=kwargs.pop("version", 1),
                **kwargs,
            )
            session.add(wf)
            await session.commit()
            return wf

    return _create


@pytest.fixture
def create_templates(session_factory):
    """Factory: insert email/SMS templates from ``{id: body}`` mappings."""
    from db.models import EmailTemplate, SmsTemplate

    async def _create(email: Optional[dict] = None, sms: Optional[dict] = None) -> None:
        async with session_factory() as session:
            for template_id, (subject, html) in (email or {}).items():
                session.add(EmailTemplate(id=template_id, name=template_id, subject=subject, html=html))
            for template_id, content in (sms or {}).items():
                session.add(SmsTemplate(id=template_id, name=template_id, content=content))
            await session.commit()

    return _create


@pytest.fixture
def create_instance(session_factory):
    """Factory: insert a workflow instance directly (bypassing enrollment)."""
    from db.models import WorkflowInstance

    async def _create(
        workflow_id: str,
        contact_email: Optional[str] = "pat@example.com",
        contact_phone: Optional[str] = "5125550100",
        status: str = "active",
        current_step_index: int = 0,
        next_execution_at: Optional[datetime] = None,
        **kwargs,
    ) -> WorkflowInstance:
        async with session_factory() as session:
            instance = WorkflowInstance(
                workflow_id=workflow_id,
                contact_id=kwargs.pop("contact_id", "lead-1"),
                contact_name=kwargs.pop("contact_name", "Pat"),
                contact_email=contact_email,
                contact_phone=contact_phone,
                status=status,
                current_step_index=current_step_index,
                next_execution_at=next_execution_at or utcnow_naive(),
                history=[],
                variables=kwargs.pop("variables", {}),
                **kwargs,
            )
            session.add(instance)
            await session.commit()
            return instance

    return _create


@pytest.fixture
def load_instance(session_factory):
    """Fetch an instance fresh from the database."""
    from db.models import WorkflowInstance

    async def _load(instance_id: str) -> WorkflowInstance:
        async with session_factory() as session:
            return await session.get(WorkflowInstance, instance_id)

    return _load


@pytest.fixture
def load_logs(session_factory):
    """All communication log rows, oldest first."""
    from sqlalchemy import select

    from db.models import CommunicationLog

    async def _load() -> list:
        async with session_factory() as session:
            result = await session.execute(select(CommunicationLog).order_by(CommunicationLog.timestamp))
            return list(result.scalars().all())

    return _load
