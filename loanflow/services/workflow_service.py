from __future__ import annotations

import logging

from loanflow.config import Settings, settings as default_settings
from loanflow.errors import InvalidStatusTransition, WorkflowExists, WorkflowNotFound, operation
from loanflow.schemas.common import generate_id, utcnow
from loanflow.schemas.notification import NotificationType, WorkflowAssignedPayload, WorkflowUpdatePayload
from loanflow.schemas.status import (
    WORKFLOW_TERMINAL,
    Priority,
    WorkflowStatus,
    can_transition,
    project_application_status,
)
from loanflow.schemas.workflow import LoanWorkflow, WorkflowHistory
from loanflow.services.locks import KeyedLock
from loanflow.services.notification_service import NotificationService, notify_quietly
from loanflow.store import ApplicationStore

logger = logging.getLogger(__name__)


def new_workflow(application_id: str, *, priority: Priority = Priority.MEDIUM) -> LoanWorkflow:
    now = utcnow()
    return LoanWorkflow(
        id=generate_id("wf"),
        application_id=application_id,
        current_status=WorkflowStatus.SUBMITTED,
        history=[],
        priority=priority,
        created_at=now,
        updated_at=now,
    )


def _tick(workflow: LoanWorkflow):
    # Never let updated_at run backwards within one workflow.
    return max(utcnow(), workflow.updated_at)


def advance(
    workflow: LoanWorkflow,
    new_status: WorkflowStatus,
    *,
    actor: str,
    comment: str | None = None,
) -> WorkflowHistory:
    """Move ``workflow`` to ``new_status`` in memory, or raise without touching it."""

    current = workflow.current_status
    if not can_transition(current, new_status):
        raise InvalidStatusTransition(
            f"Invalid status transition: {current.value} -> {new_status.value} (workflow {workflow.id})"
        )

    now = _tick(workflow)
    entry = WorkflowHistory(status=new_status, timestamp=now, actor=actor, comment=comment)
    workflow.history.append(entry)
    workflow.current_status = new_status
    workflow.updated_at = now
    return entry


class WorkflowService:
    """State machine over ``LoanWorkflow``: transitions, assignment, audit trail.

    A direct status update also re-projects the status of the application the
    workflow is linked to, so both records stay in step.
    """

    def __init__(
        self,
        store: ApplicationStore,
        notifier: NotificationService,
        *,
        application_locks: KeyedLock,
        workflow_locks: KeyedLock,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._app_locks = application_locks
        self._locks = workflow_locks
        self._settings = settings or default_settings

    @operation("create_workflow")
    async def create_workflow(
        self,
        application_id: str,
        *,
        priority: Priority = Priority.MEDIUM,
    ) -> LoanWorkflow:
        async with self._app_locks.hold(application_id):
            existing = await self._store.get_workflow_for_application(application_id)
            if existing is not None:
                raise WorkflowExists(f"Application {application_id} already has workflow {existing.id}")
            workflow = new_workflow(application_id, priority=priority)
            await self._store.save_workflow(workflow)

        logger.info("workflow_created workflow_id=%s application_id=%s", workflow.id, application_id)
        return workflow

    @operation("get_workflow")
    async def get_workflow(self, workflow_id: str) -> LoanWorkflow:
        return await self._load(workflow_id)

    async def _load(self, workflow_id: str) -> LoanWorkflow:
        workflow = await self._store.get_workflow(workflow_id)
        if workflow is None:
            raise WorkflowNotFound(f"Workflow not found: {workflow_id}")
        return workflow

    @operation("update_status")
    async def update_status(
        self,
        workflow_id: str,
        new_status: WorkflowStatus,
        actor: str,
        comment: str | None = None,
    ) -> LoanWorkflow:
        # application_id never changes, so it can be read before locking.
        application_id = (await self._load(workflow_id)).application_id

        async with self._app_locks.hold(application_id), self._locks.hold(workflow_id):
            workflow = await self._load(workflow_id)
            previous = workflow.current_status
            advance(workflow, new_status, actor=actor, comment=comment)

            application = await self._store.get(application_id)
            if application is not None and application.workflow_id == workflow.id:
                application.status = project_application_status(workflow.current_status)
                application.updated_at = workflow.updated_at
                await self._store.save_all(application, workflow)
            else:
                application = None
                await self._store.save_workflow(workflow)

        logger.info(
            "workflow_status_updated workflow_id=%s from=%s to=%s actor=%s",
            workflow.id,
            previous.value,
            new_status.value,
            actor,
        )
        notify_quietly(
            self._notifier,
            workflow.assigned_to or self._settings.system_recipient,
            NotificationType.WORKFLOW_UPDATE,
            WorkflowUpdatePayload(
                workflow_id=workflow.id,
                application_id=workflow.application_id,
                status=workflow.current_status,
                application_status=application.status if application is not None else None,
                actor=actor,
                comment=comment,
                updated_at=workflow.updated_at,
            ),
        )
        return workflow

    @operation("assign_workflow")
    async def assign_workflow(self, workflow_id: str, assignee: str, assigner: str) -> LoanWorkflow:
        async with self._locks.hold(workflow_id):
            workflow = await self._load(workflow_id)
            if workflow.is_terminal:
                raise InvalidStatusTransition(
                    f"Workflow {workflow_id} is {workflow.current_status.value} and can no longer be assigned"
                )

            now = _tick(workflow)
            workflow.assigned_to = assignee
            workflow.updated_at = now
            workflow.history.append(
                WorkflowHistory(
                    status=workflow.current_status,
                    timestamp=now,
                    actor=assigner,
                    comment=f"Assigned to {assignee}",
                )
            )
            await self._store.save_workflow(workflow)

        logger.info("workflow_assigned workflow_id=%s assignee=%s assigner=%s", workflow.id, assignee, assigner)
        notify_quietly(
            self._notifier,
            assignee,
            NotificationType.WORKFLOW_ASSIGNED,
            WorkflowAssignedPayload(
                workflow_id=workflow.id,
                application_id=workflow.application_id,
                assigned_by=assigner,
                status=workflow.current_status,
            ),
        )
        return workflow

    @operation("get_pending_workflows")
    async def get_pending_workflows(self, assignee: str | None = None) -> list[LoanWorkflow]:
        workflows = await self._store.get_all_workflows()
        return [
            wf
            for wf in workflows
            if wf.current_status not in WORKFLOW_TERMINAL and (assignee is None or wf.assigned_to == assignee)
        ]

    @operation("get_workflow_history")
    async def get_workflow_history(self, workflow_id: str) -> list[WorkflowHistory]:
        workflow = await self._load(workflow_id)
        return list(workflow.history)

