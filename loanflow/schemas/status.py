"""Status vocabularies and the workflow transition table.

``WORKFLOW_TRANSITIONS`` is the only place that decides whether a workflow
may move from one status to another. Application status is derived from the
workflow through ``project_application_status``.
"""

from __future__ import annotations

from enum import Enum


class ApplicationStatus(str, Enum):
    DRAFT = "draft"
    SUBMITTED = "submitted"
    CREDIT_CHECK = "credit_check"
    UNDERWRITING = "underwriting"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class WorkflowStatus(str, Enum):
    SUBMITTED = "submitted"
    DOCUMENT_VERIFICATION = "document_verification"
    CREDIT_CHECK = "credit_check"
    UNDERWRITING = "underwriting"
    APPROVED = "approved"
    REJECTED = "rejected"
    CANCELLED = "cancelled"


class DocumentType(str, Enum):
    ID_PROOF = "id_proof"
    INCOME_PROOF = "income_proof"
    ADDRESS_PROOF = "address_proof"
    BANK_STATEMENT = "bank_statement"
    EMPLOYMENT_PROOF = "employment_proof"
    OTHER = "other"


class DocumentStatus(str, Enum):
    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class Priority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class RiskLevel(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


APPLICATION_TERMINAL: frozenset[ApplicationStatus] = frozenset(
    {ApplicationStatus.APPROVED, ApplicationStatus.REJECTED, ApplicationStatus.CANCELLED}
)

WORKFLOW_TERMINAL: frozenset[WorkflowStatus] = frozenset(
    {WorkflowStatus.APPROVED, WorkflowStatus.REJECTED, WorkflowStatus.CANCELLED}
)

WORKFLOW_TRANSITIONS: dict[WorkflowStatus, frozenset[WorkflowStatus]] = {
    WorkflowStatus.SUBMITTED: frozenset({WorkflowStatus.DOCUMENT_VERIFICATION, WorkflowStatus.CANCELLED}),
    WorkflowStatus.DOCUMENT_VERIFICATION: frozenset({WorkflowStatus.CREDIT_CHECK, WorkflowStatus.CANCELLED}),
    WorkflowStatus.CREDIT_CHECK: frozenset({WorkflowStatus.UNDERWRITING, WorkflowStatus.CANCELLED}),
    WorkflowStatus.UNDERWRITING: frozenset(
        {WorkflowStatus.APPROVED, WorkflowStatus.REJECTED, WorkflowStatus.CANCELLED}
    ),
    WorkflowStatus.APPROVED: frozenset(),
    WorkflowStatus.REJECTED: frozenset(),
    WorkflowStatus.CANCELLED: frozenset(),
}


def can_transition(current: WorkflowStatus, target: WorkflowStatus) -> bool:
    return target in WORKFLOW_TRANSITIONS[current]


def project_application_status(status: WorkflowStatus) -> ApplicationStatus:
    # Document verification is a sub-phase of a submitted application.
    if status is WorkflowStatus.DOCUMENT_VERIFICATION:
        return ApplicationStatus.SUBMITTED
    return ApplicationStatus(status.value)
