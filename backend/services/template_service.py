"""Email and SMS template management."""

from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from core.exceptions import ConflictError
from db.models import EmailTemplate, SmsTemplate
from services.base import BaseService, ModelType


class _TemplateService(BaseService[ModelType]):
    kind = "template"

    async def create_template(self, data: dict[str, Any]) -> ModelType:
        """Create a template under an operator-chosen id.

        Raises:
            ConflictError: if the id is already taken (including deleted templates)
        """
        if data.get("id") and await self.exists(data["id"], include_deleted=True):
            raise ConflictError(f"{self.kind} '{data['id']}' already exists")
        return await self.create(dict(data))


class EmailTemplateService(_TemplateService[EmailTemplate]):
    kind = "Email template"

    def __init__(self, db: AsyncSession):
        super().__init__(EmailTemplate, db)


class SmsTemplateService(_TemplateService[SmsTemplate]):
    kind = "SMS template"

    def __init__(self, db: AsyncSession):
        super().__init__(SmsTemplate, db)
