from collections import Counter

import pytest

from loanflow.errors import InvalidDecision, InvalidStatusTransition
from loanflow.schemas.status import ApplicationStatus, DocumentStatus, RiskLevel, WorkflowStatus
from tests._flow import assessment, attach, draft, in_credit_check, in_underwriting, kinds_for, submitted

pytestmark = pytest.mark.anyio


async def test_create_application_starts_as_empty_draft(services):
    app = await draft(services)

    assert app.id.startswith("loan_")
    assert app.user_id == "user123"
    assert app.product_id == "product456"
    assert app.amount == 10000
    assert app.term_months == 12
    assert app.purpose == "Home renovation"
    assert app.status is ApplicationStatus.DRAFT
    assert app.documents == []
    assert app.workflow_id is None
    assert app.submitted_at is None

    stored = await services.applications.get_application(app.id)
    assert stored == app

    assert await kinds_for(services, "user123") == ["loan_application_created"]


async def test_home_renovation_loan_end_to_end(services):
    app = await draft(services)
    docs = await attach(services, app.id)

    app = await services.applications.submit_application(app.id)
    assert app.status is ApplicationStatus.SUBMITTED
    assert app.submitted_at is not None
    assert app.workflow_id is not None

    workflow = await services.workflows.get_workflow(app.workflow_id)
    assert workflow.application_id == app.id
    assert workflow.current_status is WorkflowStatus.DOCUMENT_VERIFICATION
    assert [(h.status, h.actor) for h in workflow.history] == [(WorkflowStatus.DOCUMENT_VERIFICATION, "system")]

    app = await services.applications.process_document_verification(app.id, docs[0].id, True, "officer1")
    assert app.status is ApplicationStatus.SUBMITTED
    assert app.documents[0].status is DocumentStatus.VERIFIED
    assert app.documents[0].verified_by == "officer1"
    assert app.documents[0].verified_at is not None

    app = await services.applications.process_document_verification(app.id, docs[1].id, True, "officer1")
    assert app.status is ApplicationStatus.CREDIT_CHECK

    app = await services.applications.process_risk_assessment(app.id, assessment())
    assert app.status is ApplicationStatus.UNDERWRITING
    assert app.risk_assessment.application_id == app.id
    assert app.risk_assessment.risk_level is RiskLevel.LOW

    app = await services.applications.make_decision(app.id, True, amount=9500, rate=6.5, decided_by="underwriter1")
    assert app.status is ApplicationStatus.APPROVED
    assert app.approved_amount == 9500
    assert app.approved_rate == 6.5
    assert app.approved_at is not None
    assert app.rejected_at is None
    assert app.rejection_reason is None

    assert await services.applications.get_application(app.id) == app

    history = await services.workflows.get_workflow_history(app.workflow_id)
    assert [h.status for h in history] == [
        WorkflowStatus.DOCUMENT_VERIFICATION,
        WorkflowStatus.CREDIT_CHECK,
        WorkflowStatus.UNDERWRITING,
        WorkflowStatus.APPROVED,
    ]
    assert history[-1].actor == "underwriter1"
    timestamps = [h.timestamp for h in history]
    assert timestamps == sorted(timestamps)

    assert Counter(await kinds_for(services, "user123")) == Counter(
        {
            "loan_application_created": 1,
            "loan_application_submitted": 1,
            "workflow_update": 1,
            "risk_assessment_completed": 1,
            "loan_approved": 1,
        }
    )


async def test_approval_falls_back_to_recommended_terms(services):
    app = await in_underwriting(services)

    app = await services.applications.make_decision(app.id, True)

    assert app.approved_amount == 9500
    assert app.approved_rate == 6.5


async def test_approval_without_terms_or_recommendation_is_rejected(services):
    risk = assessment(recommended_amount=None, recommended_rate=None)
    app = await in_underwriting(services, risk)

    with pytest.raises(InvalidDecision) as exc:
        await services.applications.make_decision(app.id, True, amount=9000)
    assert exc.value.operation == "make_decision"

    stored = await services.applications.get_application(app.id)
    assert stored.status is ApplicationStatus.UNDERWRITING
    assert stored.approved_amount is None


async def test_non_positive_approval_terms_are_rejected(services):
    app = await in_underwriting(services)

    with pytest.raises(InvalidDecision):
        await services.applications.make_decision(app.id, True, amount=9500, rate=0)


async def test_rejection_records_reason(services):
    app = await in_underwriting(services)

    app = await services.applications.make_decision(
        app.id, False, rejection_reason="Debt-to-income too high", decided_by="underwriter1"
    )

    assert app.status is ApplicationStatus.REJECTED
    assert app.rejection_reason == "Debt-to-income too high"
    assert app.rejected_at is not None
    assert app.approved_at is None
    assert app.approved_amount is None
    assert app.approved_rate is None

    workflow = await services.workflows.get_workflow(app.workflow_id)
    assert workflow.current_status is WorkflowStatus.REJECTED
    assert workflow.history[-1].comment == "Debt-to-income too high"

    assert "loan_rejected" in await kinds_for(services, "user123")


async def test_risk_assessment_requires_credit_check(services):
    app, _ = await submitted(services)

    with pytest.raises(InvalidStatusTransition):
        await services.applications.process_risk_assessment(app.id, assessment())


async def test_risk_assessment_is_recorded_once(services):
    app = await in_underwriting(services)

    with pytest.raises(InvalidStatusTransition):
        await services.applications.process_risk_assessment(app.id, assessment(credit_score=400))

    stored = await services.applications.get_application(app.id)
    assert stored.risk_assessment.credit_score == 720


async def test_risk_assessment_for_another_application_is_refused(services):
    app = await in_credit_check(services)

    with pytest.raises(InvalidDecision):
        await services.applications.process_risk_assessment(app.id, assessment(application_id="loan_other"))

    stored = await services.applications.get_application(app.id)
    assert stored.status is ApplicationStatus.CREDIT_CHECK
    assert stored.risk_assessment is None


async def test_decision_requires_underwriting(services):
    app = await in_credit_check(services)

    with pytest.raises(InvalidStatusTransition):
        await services.applications.make_decision(app.id, True, amount=9500, rate=6.5)


async def test_cancel_draft_without_workflow(services):
    app = await draft(services)

    app = await services.applications.cancel_application(app.id, "user123", "Changed my mind")

    assert app.status is ApplicationStatus.CANCELLED
    assert app.workflow_id is None

    await services.notifier.drain()
    updates = [
        n for n in await services.notifier.list_for_recipient("user123") if n.kind.value == "workflow_update"
    ]
    assert len(updates) == 1
    assert updates[0].payload["workflow_id"] is None
    assert updates[0].payload["application_status"] == "cancelled"
    assert updates[0].payload["comment"] == "Changed my mind"


async def test_cancel_moves_workflow_to_cancelled(services):
    app = await in_credit_check(services)

    app = await services.applications.cancel_application(app.id, "officer1", "Applicant withdrew")

    assert app.status is ApplicationStatus.CANCELLED
    workflow = await services.workflows.get_workflow(app.workflow_id)
    assert workflow.current_status is WorkflowStatus.CANCELLED
    assert workflow.history[-1].actor == "officer1"
    assert workflow.history[-1].comment == "Applicant withdrew"


async def test_scored_application_approved_on_recommended_terms(services):
    app, docs = await submitted(services)
    for doc in docs:
        app = await services.applications.process_document_verification(app.id, doc.id, True, "officer1")
    assert app.status is ApplicationStatus.CREDIT_CHECK

    risk = assessment(credit_score=750, risk_level=RiskLevel.LOW, recommended_amount=10000, recommended_rate=0.05)
    app = await services.applications.process_risk_assessment(app.id, risk)
    assert app.status is ApplicationStatus.UNDERWRITING
    assert app.risk_assessment.credit_score == 750

    app = await services.applications.make_decision(app.id, True, amount=10000, rate=0.05)

    assert app.status is ApplicationStatus.APPROVED
    assert app.approved_amount == 10000
    assert app.approved_rate == 0.05


async def test_documents_verified_before_submission_go_straight_to_credit_check(services):
    app = await draft(services)
    docs = await attach(services, app.id)
    for doc in docs:
        app = await services.applications.process_document_verification(app.id, doc.id, True, "officer1")
    assert app.status is ApplicationStatus.DRAFT

    app = await services.applications.submit_application(app.id)

    assert app.status is ApplicationStatus.CREDIT_CHECK
    assert app.submitted_at is not None
    history = await services.workflows.get_workflow_history(app.workflow_id)
    assert [(h.status, h.actor) for h in history] == [
        (WorkflowStatus.DOCUMENT_VERIFICATION, "system"),
        (WorkflowStatus.CREDIT_CHECK, "system"),
    ]
    assert Counter(await kinds_for(services, "user123"))["workflow_update"] == 1

    app = await services.applications.process_risk_assessment(app.id, assessment())
    assert app.status is ApplicationStatus.UNDERWRITING


async def test_partly_verified_draft_waits_for_remaining_documents(services):
    app = await draft(services)
    docs = await attach(services, app.id)
    await services.applications.process_document_verification(app.id, docs[0].id, True, "officer1")

    app = await services.applications.submit_application(app.id)
    assert app.status is ApplicationStatus.SUBMITTED

    app = await services.applications.process_document_verification(app.id, docs[1].id, True, "officer1")
    assert app.status is ApplicationStatus.CREDIT_CHECK
