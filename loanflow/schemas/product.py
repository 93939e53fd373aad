from __future__ import annotations

from pydantic import BaseModel, Field, model_validator

from loanflow.schemas.status import DocumentType


class _ProductTerms(BaseModel):
    id: str = Field(min_length=1)
    name: str = Field(min_length=1)

    min_amount: float = Field(gt=0)
    max_amount: float = Field(gt=0)
    min_term_months: int = Field(gt=0)
    max_term_months: int = Field(gt=0)
    base_rate: float = Field(gt=0)

    @model_validator(mode="after")
    def _validate_bounds(self):
        if self.min_amount > self.max_amount:
            raise ValueError("min_amount must be <= max_amount")
        if self.min_term_months > self.max_term_months:
            raise ValueError("min_term_months must be <= max_term_months")
        return self


class LoanProduct(_ProductTerms):
    required_document_types: list[DocumentType]
    is_active: bool = True

    class Config:
        from_attributes = True


class ProductCreate(_ProductTerms):
    # None means the configured default set.
    required_document_types: list[DocumentType] | None = None
