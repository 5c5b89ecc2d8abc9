"""Database models for the lead outreach engine.

This module imports all models to ensure they are registered
with SQLAlchemy's declarative base.
"""

from db.models.communication_log import CommunicationLog
from db.models.lead import Lead
from db.models.setting import AppSetting
from db.models.template import EmailTemplate, SmsTemplate
from db.models.workflow_definition import WorkflowDefinition
from db.models.workflow_instance import WorkflowInstance

__all__ = [
    "AppSetting",
    "CommunicationLog",
    "EmailTemplate",
    "Lead",
    "SmsTemplate",
    "WorkflowDefinition",
    "WorkflowInstance",
]
