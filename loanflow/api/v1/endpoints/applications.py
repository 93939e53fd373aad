from __future__ import annotations

from fastapi import APIRouter, Depends, Query, Request, status

from loanflow.api.deps import get_services
from loanflow.schemas.application import (
    ApplicationCreate,
    CancelRequest,
    DecisionCreate,
    Document,
    DocumentAttach,
    DocumentVerification,
    LoanApplication,
    RiskAssessment,
)
from loanflow.schemas.status import DocumentType
from loanflow.services import Services

router = APIRouter(prefix="/applications", tags=["applications"])


@router.post("", response_model=LoanApplication, status_code=status.HTTP_201_CREATED)
async def create_application_endpoint(
    payload: ApplicationCreate,
    services: Services = Depends(get_services),
) -> LoanApplication:
    return await services.applications.create_application(
        payload.user_id,
        payload.product_id,
        payload.amount,
        payload.term_months,
        payload.purpose,
    )


@router.get("/{application_id}", response_model=LoanApplication)
async def get_application_endpoint(
    application_id: str,
    services: Services = Depends(get_services),
) -> LoanApplication:
    return await services.applications.get_application(application_id)


@router.post("/{application_id}/documents", response_model=Document, status_code=status.HTTP_201_CREATED)
async def attach_document_endpoint(
    application_id: str,
    payload: DocumentAttach,
    services: Services = Depends(get_services),
) -> Document:
    return await services.documents.attach(
        application_id,
        payload.type,
        payload.url,
        content_type=payload.content_type,
        size_bytes=payload.size_bytes,
    )


@router.put(
    "/{application_id}/documents/upload",
    response_model=Document,
    status_code=status.HTTP_201_CREATED,
)
async def upload_document_endpoint(
    application_id: str,
    request: Request,
    document_type: DocumentType = Query(..., description="Type of the uploaded document"),
    services: Services = Depends(get_services),
) -> Document:
    """Upload the raw file as the request body; its Content-Type is the document's."""

    content = await request.body()
    content_type = request.headers.get("content-type", "").split(";")[0].strip()
    return await services.documents.upload_document(
        content,
        application_id=application_id,
        document_type=document_type,
        content_type=content_type,
    )


@router.post("/{application_id}/submit", response_model=LoanApplication)
async def submit_application_endpoint(
    application_id: str,
    services: Services = Depends(get_services),
) -> LoanApplication:
    return await services.applications.submit_application(application_id)


@router.post("/{application_id}/documents/{document_id}/verification", response_model=LoanApplication)
async def verify_document_endpoint(
    application_id: str,
    document_id: str,
    payload: DocumentVerification,
    services: Services = Depends(get_services),
) -> LoanApplication:
    return await services.applications.process_document_verification(
        application_id,
        document_id,
        payload.is_verified,
        payload.verified_by,
        payload.rejection_reason,
    )


@router.post("/{application_id}/risk-assessment", response_model=LoanApplication)
async def risk_assessment_endpoint(
    application_id: str,
    payload: RiskAssessment,
    services: Services = Depends(get_services),
) -> LoanApplication:
    return await services.applications.process_risk_assessment(application_id, payload)


@router.post("/{application_id}/decision", response_model=LoanApplication)
async def decision_endpoint(
    application_id: str,
    payload: DecisionCreate,
    services: Services = Depends(get_services),
) -> LoanApplication:
    return await services.applications.make_decision(
        application_id,
        payload.is_approved,
        amount=payload.amount,
        rate=payload.rate,
        rejection_reason=payload.rejection_reason,
        decided_by=payload.decided_by,
    )


@router.post("/{application_id}/cancel", response_model=LoanApplication)
async def cancel_application_endpoint(
    application_id: str,
    payload: CancelRequest,
    services: Services = Depends(get_services),
) -> LoanApplication:
    return await services.applications.cancel_application(application_id, payload.actor, payload.reason)
