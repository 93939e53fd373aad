"""Notification event types and their payloads.

Each event type has exactly one payload model; ``NOTIFICATION_PAYLOADS`` is
the registry the dispatcher checks against.
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel

from loanflow.schemas.common import UTCDateTime
from loanflow.schemas.status import (
    ApplicationStatus,
    DocumentStatus,
    DocumentType,
    RiskLevel,
    WorkflowStatus,
)


class NotificationType(str, Enum):
    LOAN_APPLICATION_CREATED = "loan_application_created"
    LOAN_APPLICATION_SUBMITTED = "loan_application_submitted"
    RISK_ASSESSMENT_COMPLETED = "risk_assessment_completed"
    LOAN_APPROVED = "loan_approved"
    LOAN_REJECTED = "loan_rejected"
    WORKFLOW_UPDATE = "workflow_update"
    WORKFLOW_ASSIGNED = "workflow_assigned"
    DOCUMENT_UPLOADED = "document_uploaded"
    DOCUMENT_VERIFIED = "document_verified"


class _Payload(BaseModel):
    class Config:
        frozen = True


class ApplicationCreatedPayload(_Payload):
    application_id: str
    product_id: str
    amount: float


class ApplicationSubmittedPayload(_Payload):
    application_id: str
    workflow_id: str
    submitted_at: UTCDateTime


class RiskAssessmentCompletedPayload(_Payload):
    application_id: str
    risk_level: RiskLevel
    credit_score: int


class LoanApprovedPayload(_Payload):
    application_id: str
    approved_amount: float
    approved_rate: float


class LoanRejectedPayload(_Payload):
    application_id: str
    rejection_reason: str | None = None


class WorkflowUpdatePayload(_Payload):
    # None only when a draft, which has no workflow yet, is cancelled.
    workflow_id: str | None
    application_id: str
    status: WorkflowStatus
    application_status: ApplicationStatus | None = None
    actor: str
    comment: str | None = None
    updated_at: UTCDateTime


class WorkflowAssignedPayload(_Payload):
    workflow_id: str
    application_id: str
    assigned_by: str
    status: WorkflowStatus


class DocumentUploadedPayload(_Payload):
    application_id: str
    document_id: str
    document_type: DocumentType


class DocumentVerifiedPayload(_Payload):
    application_id: str
    document_id: str
    document_type: DocumentType
    status: DocumentStatus


NOTIFICATION_PAYLOADS: dict[NotificationType, type[_Payload]] = {
    NotificationType.LOAN_APPLICATION_CREATED: ApplicationCreatedPayload,
    NotificationType.LOAN_APPLICATION_SUBMITTED: ApplicationSubmittedPayload,
    NotificationType.RISK_ASSESSMENT_COMPLETED: RiskAssessmentCompletedPayload,
    NotificationType.LOAN_APPROVED: LoanApprovedPayload,
    NotificationType.LOAN_REJECTED: LoanRejectedPayload,
    NotificationType.WORKFLOW_UPDATE: WorkflowUpdatePayload,
    NotificationType.WORKFLOW_ASSIGNED: WorkflowAssignedPayload,
    NotificationType.DOCUMENT_UPLOADED: DocumentUploadedPayload,
    NotificationType.DOCUMENT_VERIFIED: DocumentVerifiedPayload,
}


class NotificationRead(BaseModel):
    id: str
    recipient_id: str
    kind: NotificationType
    payload: dict
    status: str
    created_at: UTCDateTime

    class Config:
        from_attributes = True
