from __future__ import annotations

from pydantic import BaseModel, Field

from loanflow.schemas.common import UTCDateTime
from loanflow.schemas.status import WORKFLOW_TERMINAL, Priority, WorkflowStatus


class WorkflowHistory(BaseModel):
    status: WorkflowStatus
    timestamp: UTCDateTime
    actor: str
    comment: str | None = None

    class Config:
        from_attributes = True
        frozen = True


class LoanWorkflow(BaseModel):
    id: str
    application_id: str

    current_status: WorkflowStatus = WorkflowStatus.SUBMITTED
    history: list[WorkflowHistory] = Field(default_factory=list)

    assigned_to: str | None = None
    priority: Priority = Priority.MEDIUM

    created_at: UTCDateTime
    updated_at: UTCDateTime

    @property
    def is_terminal(self) -> bool:
        return self.current_status in WORKFLOW_TERMINAL

    class Config:
        from_attributes = True


class WorkflowStatusUpdate(BaseModel):
    status: WorkflowStatus
    actor: str = Field(min_length=1)
    comment: str | None = None


class WorkflowAssign(BaseModel):
    assignee: str = Field(min_length=1)
    assigner: str = Field(min_length=1)


class WorkflowListResponse(BaseModel):
    items: list[LoanWorkflow] = Field(default_factory=list)
