from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from loanflow.config import Settings, settings as default_settings
from loanflow.errors import (
    ApplicationNotFound,
    ApplicationTerminal,
    InvalidAmount,
    InvalidDecision,
    InvalidStatusTransition,
    InvalidTerm,
    RequiredDocumentsMissing,
    WorkflowNotFound,
    operation,
)
from loanflow.schemas.application import LoanApplication, RiskAssessment
from loanflow.schemas.common import generate_id, utcnow
from loanflow.schemas.notification import (
    ApplicationCreatedPayload,
    ApplicationSubmittedPayload,
    LoanApprovedPayload,
    LoanRejectedPayload,
    NotificationType,
    RiskAssessmentCompletedPayload,
    WorkflowUpdatePayload,
)
from loanflow.schemas.status import ApplicationStatus, DocumentType, WorkflowStatus, project_application_status
from loanflow.schemas.workflow import LoanWorkflow
from loanflow.services.document_service import all_verified, missing_types, verify
from loanflow.services.locks import KeyedLock
from loanflow.services.notification_service import NotificationService, notify_quietly
from loanflow.services.product_service import ProductService
from loanflow.services.risk_service import RiskService
from loanflow.services.workflow_service import advance, new_workflow
from loanflow.store import ApplicationStore

logger = logging.getLogger(__name__)

SYSTEM_ACTOR = "system"
ALL_VERIFIED = "All documents verified"


class LoanApplicationService:
    """Drives a loan application from draft to decision.

    Every stage change goes through the application's workflow first; the
    application status is then projected from the workflow status and both
    records are saved in one transaction. Notifications go out only after
    the save, and a failed notification never undoes it.

    Locks are taken application first, workflow second.
    """

    def __init__(
        self,
        store: ApplicationStore,
        products: ProductService,
        risk: RiskService,
        notifier: NotificationService,
        *,
        application_locks: KeyedLock,
        workflow_locks: KeyedLock,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._products = products
        self._risk = risk
        self._notifier = notifier
        self._app_locks = application_locks
        self._wf_locks = workflow_locks
        self._settings = settings or default_settings

    # lookups

    @operation("get_application")
    async def get_application(self, application_id: str) -> LoanApplication:
        return await self._load(application_id)

    async def _load(self, application_id: str) -> LoanApplication:
        application = await self._store.get(application_id)
        if application is None:
            raise ApplicationNotFound(f"Application not found: {application_id}")
        return application

    async def _required_types(self, application: LoanApplication) -> list[DocumentType]:
        # The product may have been retired since the application was created.
        product = await self._products.get_product(application.product_id, include_inactive=True)
        return list(product.required_document_types)

    async def _ensure_active(self, application: LoanApplication) -> None:
        if application.is_terminal:
            raise ApplicationTerminal(f"Application {application.id} is {application.status.value}")
        if application.workflow_id is None:
            return
        workflow = await self._store.get_workflow(application.workflow_id)
        if workflow is not None and workflow.is_terminal:
            raise ApplicationTerminal(
                f"Application {application.id} has a {workflow.current_status.value} workflow"
            )

    @asynccontextmanager
    async def _workflow_for(self, application: LoanApplication) -> AsyncIterator[LoanWorkflow]:
        """Lock and reload the workflow linked to ``application``."""

        if application.workflow_id is None:
            raise WorkflowNotFound(f"Application {application.id} has no workflow")

        async with self._wf_locks.hold(application.workflow_id):
            workflow = await self._store.get_workflow(application.workflow_id)
            if workflow is None:
                raise WorkflowNotFound(f"Workflow not found: {application.workflow_id}")
            if workflow.is_terminal:
                raise ApplicationTerminal(
                    f"Application {application.id} has a {workflow.current_status.value} workflow"
                )
            yield workflow

    def _move(
        self,
        application: LoanApplication,
        workflow: LoanWorkflow,
        new_status: WorkflowStatus,
        *,
        actor: str,
        comment: str | None = None,
    ):
        entry = advance(workflow, new_status, actor=actor, comment=comment)
        application.status = project_application_status(workflow.current_status)
        application.updated_at = entry.timestamp
        return entry

    def _reach(
        self,
        application: LoanApplication,
        workflow: LoanWorkflow,
        target: WorkflowStatus,
        *,
        actor: str,
        comment: str | None = None,
    ):
        """Like ``_move``, but a workflow already at ``target`` counts as moved.

        Returns the new history entry, or None when nothing had to change.
        """

        if workflow.current_status is not target:
            return self._move(application, workflow, target, actor=actor, comment=comment)
        application.status = project_application_status(target)
        application.updated_at = max(utcnow(), workflow.updated_at)
        return None

    def _credit_check_requested(self, application: LoanApplication, workflow: LoanWorkflow, actor: str) -> None:
        self._risk.start_credit_check(application)
        notify_quietly(
            self._notifier,
            application.user_id,
            NotificationType.WORKFLOW_UPDATE,
            WorkflowUpdatePayload(
                workflow_id=workflow.id,
                application_id=application.id,
                status=workflow.current_status,
                application_status=application.status,
                actor=actor,
                comment=ALL_VERIFIED,
                updated_at=workflow.updated_at,
            ),
        )

    # operations

    @operation("create_application")
    async def create_application(
        self,
        user_id: str,
        product_id: str,
        amount: float,
        term_months: int,
        purpose: str = "",
    ) -> LoanApplication:
        if amount <= 0:
            raise InvalidAmount(f"Invalid loan amount: {amount}")
        if term_months <= 0:
            raise InvalidTerm(f"Invalid loan term: {term_months}")

        product = await self._products.get_product(product_id)
        self._products.validate_request(product, amount, term_months)

        now = utcnow()
        application = LoanApplication(
            id=generate_id("loan"),
            user_id=user_id,
            product_id=product_id,
            amount=amount,
            term_months=term_months,
            purpose=purpose,
            status=ApplicationStatus.DRAFT,
            documents=[],
            created_at=now,
            updated_at=now,
        )
        await self._store.save(application)

        logger.info(
            "application_created application_id=%s user_id=%s product_id=%s amount=%s",
            application.id,
            user_id,
            product_id,
            amount,
        )
        notify_quietly(
            self._notifier,
            user_id,
            NotificationType.LOAN_APPLICATION_CREATED,
            ApplicationCreatedPayload(application_id=application.id, product_id=product_id, amount=amount),
        )
        return application

    @operation("submit_application")
    async def submit_application(self, application_id: str) -> LoanApplication:
        async with self._app_locks.hold(application_id):
            application = await self._load(application_id)
            if application.is_terminal:
                raise ApplicationTerminal(f"Application {application_id} is {application.status.value}")
            if application.status is not ApplicationStatus.DRAFT:
                raise InvalidStatusTransition(
                    f"Only draft applications can be submitted (application {application_id} is "
                    f"{application.status.value})"
                )

            required = await self._required_types(application)
            missing = missing_types(application, required)
            if not application.documents or missing:
                raise RequiredDocumentsMissing([t.value for t in missing])

            existing = await self._store.get_workflow_for_application(application_id)
            workflow = existing or new_workflow(application_id)

            async with self._wf_locks.hold(workflow.id):
                if existing is not None:
                    # Reload under the lock; a direct update may have moved it.
                    workflow = await self._store.get_workflow(existing.id) or existing
                self._reach(
                    application,
                    workflow,
                    WorkflowStatus.DOCUMENT_VERIFICATION,
                    actor=SYSTEM_ACTOR,
                    comment="Application submitted",
                )
                application.workflow_id = workflow.id
                application.submitted_at = application.updated_at

                # Documents verified while still a draft leave nothing to wait for.
                verified = all_verified(application, required)
                if verified:
                    self._move(
                        application, workflow, WorkflowStatus.CREDIT_CHECK, actor=SYSTEM_ACTOR, comment=ALL_VERIFIED
                    )
                await self._store.save_all(application, workflow)

        logger.info("application_submitted application_id=%s workflow_id=%s", application_id, workflow.id)
        notify_quietly(
            self._notifier,
            application.user_id,
            NotificationType.LOAN_APPLICATION_SUBMITTED,
            ApplicationSubmittedPayload(
                application_id=application_id,
                workflow_id=workflow.id,
                submitted_at=application.submitted_at,
            ),
        )
        if verified:
            self._credit_check_requested(application, workflow, SYSTEM_ACTOR)
        return application

    @operation("process_document_verification")
    async def process_document_verification(
        self,
        application_id: str,
        document_id: str,
        is_verified: bool,
        verified_by: str,
        rejection_reason: str | None = None,
    ) -> LoanApplication:
        advanced: LoanWorkflow | None = None

        async with self._app_locks.hold(application_id):
            application = await self._load(application_id)
            await self._ensure_active(application)

            doc = verify(
                application,
                document_id,
                is_verified=is_verified,
                verified_by=verified_by,
                rejection_reason=rejection_reason,
            )
            application.updated_at = doc.verified_at

            required = await self._required_types(application)
            if application.status is ApplicationStatus.SUBMITTED and all_verified(application, required):
                async with self._workflow_for(application) as workflow:
                    entry = self._reach(
                        application, workflow, WorkflowStatus.CREDIT_CHECK, actor=verified_by, comment=ALL_VERIFIED
                    )
                    await self._store.save_all(application, workflow)
                    if entry is not None:
                        advanced = workflow
            else:
                await self._store.save(application)

        logger.info(
            "document_verified application_id=%s document_id=%s status=%s verified_by=%s",
            application_id,
            document_id,
            doc.status.value,
            verified_by,
        )
        if advanced is not None:
            self._credit_check_requested(application, advanced, verified_by)
        return application

    @operation("process_risk_assessment")
    async def process_risk_assessment(self, application_id: str, assessment: RiskAssessment) -> LoanApplication:
        async with self._app_locks.hold(application_id):
            application = await self._load(application_id)
            await self._ensure_active(application)
            if application.status is not ApplicationStatus.CREDIT_CHECK:
                raise InvalidStatusTransition(
                    f"Risk assessment requires credit_check (application {application_id} is "
                    f"{application.status.value})"
                )

            assessment = self._risk.accept(application, assessment)
            async with self._workflow_for(application) as workflow:
                application.risk_assessment = assessment
                self._move(
                    application,
                    workflow,
                    WorkflowStatus.UNDERWRITING,
                    actor=assessment.assessed_by or SYSTEM_ACTOR,
                    comment=f"Risk level {assessment.risk_level.value}",
                )
                await self._store.save_all(application, workflow)

        logger.info(
            "risk_assessment_recorded application_id=%s risk_level=%s credit_score=%s",
            application_id,
            assessment.risk_level.value,
            assessment.credit_score,
        )
        notify_quietly(
            self._notifier,
            application.user_id,
            NotificationType.RISK_ASSESSMENT_COMPLETED,
            RiskAssessmentCompletedPayload(
                application_id=application_id,
                risk_level=assessment.risk_level,
                credit_score=assessment.credit_score,
            ),
        )
        return application

    @operation("make_decision")
    async def make_decision(
        self,
        application_id: str,
        is_approved: bool,
        *,
        amount: float | None = None,
        rate: float | None = None,
        rejection_reason: str | None = None,
        decided_by: str | None = None,
    ) -> LoanApplication:
        actor = decided_by or SYSTEM_ACTOR

        async with self._app_locks.hold(application_id):
            application = await self._load(application_id)
            await self._ensure_active(application)
            if application.status is not ApplicationStatus.UNDERWRITING:
                raise InvalidStatusTransition(
                    f"Decisions require underwriting (application {application_id} is "
                    f"{application.status.value})"
                )

            if is_approved:
                amount, rate = self._approval_terms(application, amount, rate)

            async with self._workflow_for(application) as workflow:
                if is_approved:
                    entry = self._move(application, workflow, WorkflowStatus.APPROVED, actor=actor)
                    application.approved_amount = amount
                    application.approved_rate = rate
                    application.approved_at = entry.timestamp
                else:
                    entry = self._move(
                        application, workflow, WorkflowStatus.REJECTED, actor=actor, comment=rejection_reason
                    )
                    application.rejection_reason = rejection_reason
                    application.rejected_at = entry.timestamp
                await self._store.save_all(application, workflow)

        logger.info(
            "decision_made application_id=%s status=%s actor=%s",
            application_id,
            application.status.value,
            actor,
        )
        if is_approved:
            notify_quietly(
                self._notifier,
                application.user_id,
                NotificationType.LOAN_APPROVED,
                LoanApprovedPayload(application_id=application_id, approved_amount=amount, approved_rate=rate),
            )
        else:
            notify_quietly(
                self._notifier,
                application.user_id,
                NotificationType.LOAN_REJECTED,
                LoanRejectedPayload(application_id=application_id, rejection_reason=rejection_reason),
            )
        return application

    @staticmethod
    def _approval_terms(
        application: LoanApplication,
        amount: float | None,
        rate: float | None,
    ) -> tuple[float, float]:
        risk = application.risk_assessment
        if amount is None and risk is not None:
            amount = risk.recommended_amount
        if rate is None and risk is not None:
            rate = risk.recommended_rate

        if amount is None or rate is None:
            raise InvalidDecision("Approval needs an amount and a rate, and no recommendation is available")
        if amount <= 0 or rate <= 0:
            raise InvalidDecision(f"Approved amount and rate must be positive (amount={amount}, rate={rate})")
        return amount, rate

    @operation("cancel_application")
    async def cancel_application(
        self,
        application_id: str,
        actor: str,
        reason: str | None = None,
    ) -> LoanApplication:
        workflow: LoanWorkflow | None = None

        async with self._app_locks.hold(application_id):
            application = await self._load(application_id)
            await self._ensure_active(application)

            if application.workflow_id is None:
                application.status = ApplicationStatus.CANCELLED
                application.updated_at = utcnow()
                await self._store.save(application)
            else:
                async with self._workflow_for(application) as workflow:
                    self._move(application, workflow, WorkflowStatus.CANCELLED, actor=actor, comment=reason)
                    await self._store.save_all(application, workflow)

        logger.info("application_cancelled application_id=%s actor=%s", application_id, actor)
        notify_quietly(
            self._notifier,
            application.user_id,
            NotificationType.WORKFLOW_UPDATE,
            WorkflowUpdatePayload(
                workflow_id=workflow.id if workflow is not None else None,
                application_id=application_id,
                status=WorkflowStatus.CANCELLED,
                application_status=application.status,
                actor=actor,
                comment=reason,
                updated_at=application.updated_at,
            ),
        )
        return application
