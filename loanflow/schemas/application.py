from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from loanflow.schemas.common import UTCDateTime, generate_id, utcnow
from loanflow.schemas.status import (
    APPLICATION_TERMINAL,
    ApplicationStatus,
    DocumentStatus,
    DocumentType,
    RiskLevel,
)


class Document(BaseModel):
    id: str = Field(default_factory=lambda: generate_id("doc"))
    type: DocumentType
    url: str
    status: DocumentStatus = DocumentStatus.PENDING

    content_type: str | None = None
    size_bytes: int | None = None

    verified_by: str | None = None
    verified_at: UTCDateTime | None = None
    rejection_reason: str | None = None

    uploaded_at: UTCDateTime = Field(default_factory=utcnow)

    @property
    def is_final(self) -> bool:
        return self.status is not DocumentStatus.PENDING

    class Config:
        from_attributes = True


class RiskAssessment(BaseModel):
    """Result handed over by the external risk scorer. Never edited afterwards."""

    id: str = Field(default_factory=lambda: generate_id("risk"))
    application_id: str | None = None

    credit_score: int = Field(ge=0)
    risk_level: RiskLevel
    factors: list[str] = Field(default_factory=list)

    recommended_amount: float | None = Field(default=None, gt=0)
    recommended_rate: float | None = Field(default=None, gt=0)

    assessed_by: str | None = None
    assessed_at: UTCDateTime = Field(default_factory=utcnow)

    class Config:
        from_attributes = True
        frozen = True


class LoanApplication(BaseModel):
    id: str
    user_id: str
    product_id: str

    amount: float
    term_months: int
    purpose: str = ""

    status: ApplicationStatus = ApplicationStatus.DRAFT
    documents: list[Document] = Field(default_factory=list)
    workflow_id: str | None = None

    risk_assessment: RiskAssessment | None = None

    approved_amount: float | None = None
    approved_rate: float | None = None
    rejection_reason: str | None = None

    created_at: UTCDateTime
    updated_at: UTCDateTime
    submitted_at: UTCDateTime | None = None
    approved_at: UTCDateTime | None = None
    rejected_at: UTCDateTime | None = None

    @property
    def is_terminal(self) -> bool:
        return self.status in APPLICATION_TERMINAL

    def find_document(self, document_id: str) -> Document | None:
        for doc in self.documents:
            if doc.id == document_id:
                return doc
        return None

    class Config:
        from_attributes = True


# --- request bodies -------------------------------------------------------


class ApplicationCreate(BaseModel):
    user_id: str = Field(min_length=1)
    product_id: str = Field(min_length=1)
    # Positivity is checked by the service so callers get the typed error.
    amount: float
    term_months: int
    purpose: str = ""


class DocumentAttach(BaseModel):
    type: DocumentType
    url: str = Field(min_length=1)
    content_type: str | None = None
    size_bytes: int | None = None


class DocumentVerification(BaseModel):
    is_verified: bool
    verified_by: str = Field(min_length=1)
    rejection_reason: str | None = None


class DecisionCreate(BaseModel):
    is_approved: bool
    amount: float | None = None
    rate: float | None = None
    rejection_reason: str | None = None
    decided_by: str | None = None

    @model_validator(mode="after")
    def _validate_rejection(self) -> "DecisionCreate":
        if not self.is_approved and (self.amount is not None or self.rate is not None):
            raise ValueError("amount/rate only apply to approvals")
        return self


class CancelRequest(BaseModel):
    actor: str = Field(min_length=1)
    reason: str | None = None
