"""Messaging gateway: resolve, render, send and log one email or SMS.

The gateway is constructed with already-built provider clients and a
session factory. Every send with a non-empty recipient produces exactly one
``CommunicationLog`` row and returns a ``SendOutcome``; provider, content and
configuration failures come back as ``success=False`` instead of raising.
"""

from dataclasses import dataclass
from typing import Any, Mapping, Optional

import structlog
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from core.constants import LEGACY_EMAIL_TEMPLATES_KEY, Channel, CommunicationStatus
from core.exceptions import ConfigurationError, ContentResolutionError, OutreachError
from core.utils import normalize_phone
from db.models import AppSetting, CommunicationLog, EmailTemplate, SmsTemplate
from messaging.providers import EmailProvider, SmsProvider, build_providers
from messaging.renderer import render_template

logger = structlog.get_logger(__name__)


@dataclass
class SendOutcome:
    """Result of one send attempt, independent of logging."""
    success: bool
    id: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> dict:
        if self.success:
            return {"success": True, "id": self.id}
        return {"success": False, "error": self.error}


@dataclass
class _ResolvedEmail:
    subject: str
    html: str


class MessagingGateway:
    """Uniform email/SMS send contract over the configured providers."""

    def __init__(
        self,
        email_provider: Optional[EmailProvider],
        sms_provider: Optional[SmsProvider],
        session_factory: async_sessionmaker[AsyncSession],
        email_from: str,
        sms_from: str,
        default_subject: str,
    ):
        self.email_provider = email_provider
        self.sms_provider = sms_provider
        self.session_factory = session_factory
        self.email_from = email_from
        self.sms_from = sms_from
        self.default_subject = default_subject

    # ── Public API ──

    async def send(
        self,
        channel: Channel | str,
        to: Optional[str],
        template_id: Optional[str] = None,
        content: Optional[Mapping[str, Any]] = None,
        variables: Optional[Mapping[str, Any]] = None,
        contact_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
    ) -> Optional[SendOutcome]:
        """Send on ``channel``.

        ``content`` is inline content. Inline ``html`` takes precedence over
        ``template_id``; a found template's subject wins over an inline
        subject. Keys are ``{"subject", "html"}`` for email, ``{"text"}``
        for SMS.
        """
        content = content or {}
        if Channel(channel) == Channel.EMAIL:
            return await self.send_email(
                to,
                template_id=template_id,
                subject=content.get("subject"),
                html=content.get("html"),
                variables=variables,
                contact_id=contact_id,
                workflow_id=workflow_id,
            )
        return await self.send_sms(
            to,
            template_id=template_id,
            text=content.get("text"),
            variables=variables,
            contact_id=contact_id,
            workflow_id=workflow_id,
        )

    async def send_email(
        self,
        to: Optional[str],
        template_id: Optional[str] = None,
        subject: Optional[str] = None,
        html: Optional[str] = None,
        variables: Optional[Mapping[str, Any]] = None,
        contact_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
    ) -> Optional[SendOutcome]:
        """Send one email. Returns None without logging when ``to`` is empty."""
        if not to:
            logger.warning("send_email_no_recipient", template_id=template_id, contact_id=contact_id)
            return None

        variables = variables or {}
        snapshot: dict[str, Any] = {"templateId": template_id}
        log = logger.bind(channel=Channel.EMAIL.value, recipient=to, template_id=template_id)
        try:
            if self.email_provider is None:
                raise ConfigurationError("Email provider not configured")

            resolved = await self._resolve_email(template_id, subject, html)
            rendered_subject = render_template(resolved.subject, variables) or self.default_subject
            rendered_html = render_template(resolved.html, variables)
            snapshot["subject"] = rendered_subject

            receipt = await self.email_provider.send_email(
                self.email_from, to, rendered_subject, rendered_html
            )
        except Exception as e:
            error = e.message if isinstance(e, OutreachError) else str(e) or type(e).__name__
            if not isinstance(e, OutreachError):
                log.exception("send_email_unexpected_error")
            log.error("send_email_failed", error=error)
            await self._log(
                Channel.EMAIL, self._provider_name(self.email_provider, "resend"),
                to, snapshot, contact_id, workflow_id, error=error,
            )
            return SendOutcome(success=False, error=error)

        log.info("email_sent", provider_message_id=receipt.id)
        await self._log(
            Channel.EMAIL, self.email_provider.name, to, snapshot,
            contact_id, workflow_id, provider_message_id=receipt.id,
        )
        return SendOutcome(success=True, id=receipt.id)

    async def send_sms(
        self,
        to: Optional[str],
        template_id: Optional[str] = None,
        text: Optional[str] = None,
        variables: Optional[Mapping[str, Any]] = None,
        contact_id: Optional[str] = None,
        workflow_id: Optional[str] = None,
    ) -> Optional[SendOutcome]:
        """Send one SMS. Returns None without logging when ``to`` is empty."""
        if not to:
            logger.warning("send_sms_no_recipient", template_id=template_id, contact_id=contact_id)
            return None

        variables = variables or {}
        snapshot: dict[str, Any] = {"templateId": template_id}
        destination = normalize_phone(to)
        log = logger.bind(channel=Channel.SMS.value, recipient=destination, template_id=template_id)
        try:
            if self.sms_provider is None:
                raise ConfigurationError("SMS provider not configured")
            if not self.sms_from:
                raise ConfigurationError("SMS sender number not configured")

            body = render_template(await self._resolve_sms(template_id, text), variables)
            if not body:
                raise ContentResolutionError("No message text provided")
            snapshot["body"] = body

            receipt = await self.sms_provider.send_sms(self.sms_from, destination, body)
        except Exception as e:
            error = e.message if isinstance(e, OutreachError) else str(e) or type(e).__name__
            if not isinstance(e, OutreachError):
                log.exception("send_sms_unexpected_error")
            log.error("send_sms_failed", error=error)
            await self._log(
                Channel.SMS, self._provider_name(self.sms_provider, "plivo"),
                destination, snapshot, contact_id, workflow_id, error=error,
            )
            return SendOutcome(success=False, error=error)

        log.info("sms_sent", provider_message_id=receipt.id)
        await self._log(
            Channel.SMS, self.sms_provider.name, destination, snapshot,
            contact_id, workflow_id, provider_message_id=receipt.id,
        )
        return SendOutcome(success=True, id=receipt.id)

    # ── Content resolution ──

    async def _resolve_email(
        self, template_id: Optional[str], subject: Optional[str], html: Optional[str]
    ) -> _ResolvedEmail:
        if html:
            return _ResolvedEmail(subject=subject or "", html=html)
        if not template_id:
            raise ContentResolutionError("No email content or template provided")

        async with self.session_factory() as session:
            template = await session.get(EmailTemplate, template_id)
            if template is not None and not template.is_deleted:
                if not template.html:
                    raise ContentResolutionError(f"Email template '{template_id}' has no body")
                return _ResolvedEmail(subject=template.subject or subject or "", html=template.html)

            legacy = await session.get(AppSetting, LEGACY_EMAIL_TEMPLATES_KEY)
            legacy_templates = legacy.value if legacy is not None and isinstance(legacy.value, dict) else {}
            legacy_html = legacy_templates.get(template_id)
            if legacy_html:
                return _ResolvedEmail(subject=subject or "", html=legacy_html)

        raise ContentResolutionError(f"Email template '{template_id}' not found")

    async def _resolve_sms(self, template_id: Optional[str], text: Optional[str]) -> str:
        if text:
            return text
        if not template_id:
            raise ContentResolutionError("No message text provided")

        async with self.session_factory() as session:
            result = await session.execute(
                select(SmsTemplate).where(
                    SmsTemplate.id == template_id,
                    SmsTemplate.is_deleted == False,  # noqa: E712
                )
            )
            template = result.scalar_one_or_none()

        if template is None:
            raise ContentResolutionError(f"SMS template '{template_id}' not found")
        return template.body

    # ── Logging ──

    @staticmethod
    def _provider_name(provider, default: str) -> str:
        return getattr(provider, "name", None) or default

    async def _log(
        self,
        channel: Channel,
        provider: str,
        recipient: str,
        content: dict,
        contact_id: Optional[str],
        workflow_id: Optional[str],
        provider_message_id: Optional[str] = None,
        error: Optional[str] = None,
    ) -> None:
        """Append one communication log row. Write failures are logged only."""
        entry = CommunicationLog(
            type=channel.value,
            contact_id=contact_id,
            workflow_id=workflow_id,
            provider=provider,
            provider_message_id=provider_message_id,
            status=(CommunicationStatus.FAILED if error else CommunicationStatus.SENT).value,
            recipient=recipient,
            content=content,
            error=error,
        )
        try:
            async with self.session_factory() as session:
                session.add(entry)
                await session.commit()
        except Exception:
            logger.exception("communication_log_write_failed", channel=channel.value, recipient=recipient)


def build_gateway(settings, session_factory, providers=None) -> MessagingGateway:
    """Construct the gateway from settings.

    ``providers`` is an ``(email, sms)`` pair; when omitted the providers
    are built from ``settings``.
    """
    email_provider, sms_provider = providers if providers is not None else build_providers(settings)
    return MessagingGateway(
        email_provider=email_provider,
        sms_provider=sms_provider,
        session_factory=session_factory,
        email_from=settings.EMAIL_FROM,
        sms_from=settings.PLIVO_PHONE_NUMBER,
        default_subject=f"Message from {settings.COMPANY_NAME}",
    )
