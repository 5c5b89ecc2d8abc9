"""Workflow definition and instance schemas."""

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, model_validator
from datetime import datetime
from typing import Any, Dict, List, Optional

from core.constants import InstanceStatus, LeadStatus, StepType, WorkflowTrigger


class WorkflowStep(BaseModel):
    """One step of a workflow.

    ``delay`` is accepted as an alias of ``delay_minutes``. Extra keys are
    kept as-is in the stored step.
    """

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    type: str = Field(min_length=1, description="email, sms, task or delay")
    templateId: Optional[str] = Field(default=None, description="Template for email/sms steps")
    description: Optional[str] = Field(default=None, description="Task description")
    delay_minutes: float = Field(
        default=0,
        ge=0,
        validation_alias=AliasChoices("delay_minutes", "delay"),
        description="Minutes to wait before this step runs",
    )

    @model_validator(mode="after")
    def _template_required(self):
        if self.type in (StepType.EMAIL.value, StepType.SMS.value) and not self.templateId:
            raise ValueError(f"{self.type} steps require a templateId")
        return self


class WorkflowCreate(BaseModel):
    """Request to create a workflow definition."""

    id: Optional[str] = Field(default=None, min_length=1, max_length=100, description="Optional stable ID")
    name: str = Field(min_length=1, description="Workflow name")
    description: str = Field(default="", description="Workflow description")
    trigger: WorkflowTrigger = Field(description="Enrollment trigger")
    trigger_status: Optional[LeadStatus] = Field(default=None, description="Lead status for status_change")
    enabled: bool = Field(default=True)
    steps: List[WorkflowStep] = Field(default_factory=list)
    category: Optional[str] = None

    @model_validator(mode="after")
    def _status_for_status_change(self):
        if self.trigger == WorkflowTrigger.STATUS_CHANGE and self.trigger_status is None:
            raise ValueError("status_change workflows require trigger_status")
        return self


class WorkflowUpdate(BaseModel):
    """Request to update a workflow definition. Step changes bump the version."""

    name: Optional[str] = Field(default=None, min_length=1)
    description: Optional[str] = None
    trigger: Optional[WorkflowTrigger] = None
    trigger_status: Optional[LeadStatus] = None
    enabled: Optional[bool] = None
    steps: Optional[List[WorkflowStep]] = None
    category: Optional[str] = None


class WorkflowResponse(BaseModel):
    """Workflow definition response."""

    id: str
    name: str
    description: str
    trigger: str
    trigger_status: Optional[str]
    enabled: bool
    steps: List[Dict[str, Any]]
    category: Optional[str]
    version: int
    active_count: int = Field(default=0, description="Active instances of this workflow")
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class WorkflowListResponse(BaseModel):
    """Paginated list of workflows."""

    workflows: List[WorkflowResponse]
    total: int
    page: int
    per_page: int


class EnrollRequest(BaseModel):
    """Manually enroll a lead into a workflow."""

    lead_id: str = Field(min_length=1)
    variables: Dict[str, Any] = Field(default_factory=dict, description="Template variable overrides")


class InstanceResponse(BaseModel):
    """Workflow instance response."""

    id: str
    workflow_id: str
    workflow_version: int
    contact_id: str
    contact_name: str
    contact_email: Optional[str]
    contact_phone: Optional[str]
    status: InstanceStatus
    current_step_index: int
    next_execution_at: Optional[datetime]
    history: List[Dict[str, Any]]
    error: Optional[str]
    variables: Dict[str, Any]
    completed_at: Optional[datetime]
    cancelled_at: Optional[datetime]
    cancellation_reason: Optional[str]
    created_at: datetime
    updated_at: datetime

    class Config:
        from_attributes = True


class InstanceListResponse(BaseModel):
    """Paginated list of workflow instances."""

    instances: List[InstanceResponse]
    total: int
    page: int
    per_page: int
