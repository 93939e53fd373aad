from __future__ import annotations

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loanflow.errors import PersistenceError
from loanflow.models import DocumentRow, LoanApplicationRow, LoanWorkflowRow, WorkflowHistoryRow
from loanflow.schemas.application import LoanApplication
from loanflow.schemas.workflow import LoanWorkflow


class ApplicationStore:
    """Keyed persistence for the application and workflow aggregates.

    Every ``save*`` call runs in its own transaction: either all rows of the
    call are committed or none are. Reads return fresh, detached pydantic
    copies, so callers can mutate them freely before saving.

    Workflow history is append-only here as well: saving a workflow whose
    history is shorter than the stored one raises ``PersistenceError``.
    """

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    # applications

    async def get(self, application_id: str) -> LoanApplication | None:
        async with self._session_factory() as session:
            row = await session.get(LoanApplicationRow, application_id)
            if row is None:
                return None
            return LoanApplication.model_validate(row)

    async def save(self, application: LoanApplication) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await self._put_application(session, application)

    # workflows

    async def get_workflow(self, workflow_id: str) -> LoanWorkflow | None:
        async with self._session_factory() as session:
            row = await session.get(LoanWorkflowRow, workflow_id)
            if row is None:
                return None
            return LoanWorkflow.model_validate(row)

    async def get_workflow_for_application(self, application_id: str) -> LoanWorkflow | None:
        async with self._session_factory() as session:
            res = await session.execute(
                select(LoanWorkflowRow).where(LoanWorkflowRow.application_id == application_id)
            )
            row = res.scalar_one_or_none()
            if row is None:
                return None
            return LoanWorkflow.model_validate(row)

    async def get_all_workflows(self) -> list[LoanWorkflow]:
        async with self._session_factory() as session:
            res = await session.execute(select(LoanWorkflowRow).order_by(LoanWorkflowRow.created_at))
            return [LoanWorkflow.model_validate(r) for r in res.scalars().all()]

    async def save_workflow(self, workflow: LoanWorkflow) -> None:
        async with self._session_factory() as session:
            async with session.begin():
                await self._put_workflow(session, workflow)

    async def save_all(self, application: LoanApplication, workflow: LoanWorkflow) -> None:
        """Persist an application and its workflow in one transaction."""

        async with self._session_factory() as session:
            async with session.begin():
                await self._put_application(session, application)
                await self._put_workflow(session, workflow)

    # row mapping

    async def _put_application(self, session: AsyncSession, application: LoanApplication) -> None:
        row = await session.get(LoanApplicationRow, application.id)
        if row is None:
            row = LoanApplicationRow(id=application.id, documents=[])
            session.add(row)

        row.user_id = application.user_id
        row.product_id = application.product_id
        row.amount = application.amount
        row.term_months = application.term_months
        row.purpose = application.purpose
        row.status = application.status.value
        row.workflow_id = application.workflow_id
        row.risk_assessment = (
            application.risk_assessment.model_dump(mode="json") if application.risk_assessment else None
        )
        row.approved_amount = application.approved_amount
        row.approved_rate = application.approved_rate
        row.rejection_reason = application.rejection_reason
        row.submitted_at = application.submitted_at
        row.approved_at = application.approved_at
        row.rejected_at = application.rejected_at
        row.created_at = application.created_at
        row.updated_at = application.updated_at

        existing = {d.id: d for d in row.documents}
        for position, doc in enumerate(application.documents):
            doc_row = existing.get(doc.id)
            if doc_row is None:
                doc_row = DocumentRow(id=doc.id, application_id=application.id)
                row.documents.append(doc_row)
            doc_row.position = position
            doc_row.type = doc.type.value
            doc_row.url = doc.url
            doc_row.content_type = doc.content_type
            doc_row.size_bytes = doc.size_bytes
            doc_row.status = doc.status.value
            doc_row.verified_by = doc.verified_by
            doc_row.verified_at = doc.verified_at
            doc_row.rejection_reason = doc.rejection_reason
            doc_row.uploaded_at = doc.uploaded_at

        await session.flush()

    async def _put_workflow(self, session: AsyncSession, workflow: LoanWorkflow) -> None:
        row = await session.get(LoanWorkflowRow, workflow.id)
        if row is None:
            row = LoanWorkflowRow(id=workflow.id, history=[])
            session.add(row)

        stored = len(row.history)
        if len(workflow.history) < stored:
            raise PersistenceError(
                f"refusing to truncate history of workflow {workflow.id} "
                f"({stored} stored, {len(workflow.history)} given)"
            )

        row.application_id = workflow.application_id
        row.current_status = workflow.current_status.value
        row.assigned_to = workflow.assigned_to
        row.priority = workflow.priority.value
        row.created_at = workflow.created_at
        row.updated_at = workflow.updated_at

        for seq, entry in enumerate(workflow.history[stored:], start=stored):
            row.history.append(
                WorkflowHistoryRow(
                    workflow_id=workflow.id,
                    seq=seq,
                    status=entry.status.value,
                    timestamp=entry.timestamp,
                    actor=entry.actor,
                    comment=entry.comment,
                )
            )

        await session.flush()
