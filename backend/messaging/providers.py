"""Messaging provider clients.

Each provider wraps one REST API over ``httpx`` and raises
``ProviderError`` on any transport or HTTP failure. Providers are built
once from settings by ``build_providers`` and handed to the gateway; a
provider whose credentials are missing is simply not built.
"""

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Optional

import httpx

from core.exceptions import ProviderError

logger = logging.getLogger(__name__)


@dataclass
class ProviderReceipt:
    """What a provider returned for an accepted message."""
    id: Optional[str]
    raw: dict[str, Any] = field(default_factory=dict)


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase
    if isinstance(body, dict):
        return str(body.get("message") or body.get("error") or body)
    return str(body)


# ─── Base Providers ────────────────────────────────────────────

class EmailProvider(ABC):
    """Abstract email send capability."""

    name: str

    @abstractmethod
    async def send_email(self, sender: str, to: str, subject: str, html: str) -> ProviderReceipt:
        ...


class SmsProvider(ABC):
    """Abstract SMS send capability."""

    name: str

    @abstractmethod
    async def send_sms(self, sender: str, to: str, text: str) -> ProviderReceipt:
        ...


class _HttpProvider:
    """Shared request handling for REST providers."""

    name = "http"

    def __init__(self, base_url: str, timeout: float = 15.0, transport: httpx.AsyncBaseTransport = None):
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._transport = transport

    def _client(self, **kwargs) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            base_url=self.base_url,
            timeout=self.timeout,
            transport=self._transport,
            **kwargs,
        )

    async def _post(self, path: str, payload: dict, **client_kwargs) -> dict:
        try:
            async with self._client(**client_kwargs) as client:
                response = await client.post(path, json=payload)
        except httpx.HTTPError as e:
            raise ProviderError(f"{self.name} request failed: {e}", provider=self.name) from e

        if response.status_code >= 400:
            raise ProviderError(
                f"{self.name} returned {response.status_code}: {_error_detail(response)}",
                provider=self.name,
            )
        try:
            return response.json()
        except ValueError:
            return {}


# ─── Resend (email) ────────────────────────────────────────────

class ResendEmailProvider(_HttpProvider, EmailProvider):
    """Send email through the Resend REST API."""

    name = "resend"

    def __init__(self, api_key: str, base_url: str = "https://api.resend.com", **kwargs):
        super().__init__(base_url, **kwargs)
        self.api_key = api_key

    async def send_email(self, sender: str, to: str, subject: str, html: str) -> ProviderReceipt:
        body = await self._post(
            "/emails",
            {"from": sender, "to": [to], "subject": subject, "html": html},
            headers={"Authorization": f"Bearer {self.api_key}"},
        )
        return ProviderReceipt(id=body.get("id"), raw=body)


# ─── Plivo (SMS) ───────────────────────────────────────────────

class PlivoSmsProvider(_HttpProvider, SmsProvider):
    """Send SMS through the Plivo REST API."""

    name = "plivo"

    def __init__(self, auth_id: str, auth_token: str, base_url: str = "https://api.plivo.com/v1", **kwargs):
        super().__init__(base_url, **kwargs)
        self.auth_id = auth_id
        self.auth_token = auth_token

    async def send_sms(self, sender: str, to: str, text: str) -> ProviderReceipt:
        body = await self._post(
            f"/Account/{self.auth_id}/Message/",
            {"src": sender, "dst": to, "text": text},
            auth=(self.auth_id, self.auth_token),
        )
        # Plivo returns a list of uuids, one per message part
        uuids = body.get("message_uuid") or []
        return ProviderReceipt(id=uuids[0] if uuids else None, raw=body)


def build_providers(settings) -> tuple[Optional[EmailProvider], Optional[SmsProvider]]:
    """Build the configured providers once at process start."""
    email_provider = None
    sms_provider = None

    if settings.email_configured:
        email_provider = ResendEmailProvider(
            settings.RESEND_API_KEY,
            base_url=settings.RESEND_API_URL,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
    else:
        logger.warning("RESEND_API_KEY not set, email sends will fail")

    if settings.sms_configured:
        sms_provider = PlivoSmsProvider(
            settings.PLIVO_AUTH_ID,
            settings.PLIVO_AUTH_TOKEN,
            base_url=settings.PLIVO_API_URL,
            timeout=settings.PROVIDER_TIMEOUT_SECONDS,
        )
    else:
        logger.warning("Plivo credentials not set, SMS sends will fail")

    return email_provider, sms_provider
