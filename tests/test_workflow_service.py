import pytest

from loanflow.errors import ErrorKind, InvalidStatusTransition, WorkflowExists, WorkflowNotFound
from loanflow.schemas.status import ApplicationStatus, Priority, WorkflowStatus
from loanflow.services.workflow_service import advance
from tests._flow import assessment, kinds_for, submitted

pytestmark = pytest.mark.anyio


async def test_create_workflow_defaults(services):
    wf = await services.workflows.create_workflow("loan_1")

    assert wf.id.startswith("wf_")
    assert wf.application_id == "loan_1"
    assert wf.current_status is WorkflowStatus.SUBMITTED
    assert wf.history == []
    assert wf.priority is Priority.MEDIUM
    assert wf.assigned_to is None

    assert await services.workflows.get_workflow(wf.id) == wf


async def test_update_status_appends_history(services):
    wf = await services.workflows.create_workflow("loan_1", priority=Priority.HIGH)

    wf = await services.workflows.update_status(wf.id, WorkflowStatus.DOCUMENT_VERIFICATION, "officer1", "Docs in")
    wf = await services.workflows.update_status(wf.id, WorkflowStatus.CREDIT_CHECK, "officer2")

    assert wf.current_status is WorkflowStatus.CREDIT_CHECK
    assert wf.priority is Priority.HIGH
    history = await services.workflows.get_workflow_history(wf.id)
    assert [(h.status, h.actor, h.comment) for h in history] == [
        (WorkflowStatus.DOCUMENT_VERIFICATION, "officer1", "Docs in"),
        (WorkflowStatus.CREDIT_CHECK, "officer2", None),
    ]
    assert history[-1].status is wf.current_status
    assert history[0].timestamp <= history[1].timestamp
    assert wf.updated_at == history[-1].timestamp


async def test_illegal_transition_leaves_workflow_untouched(services):
    wf = await services.workflows.create_workflow("loan_1")

    with pytest.raises(InvalidStatusTransition) as exc:
        await services.workflows.update_status(wf.id, WorkflowStatus.UNDERWRITING, "officer1")
    assert exc.value.operation == "update_status"

    assert await services.workflows.get_workflow(wf.id) == wf


async def test_unknown_workflow(services):
    with pytest.raises(WorkflowNotFound) as exc:
        await services.workflows.get_workflow("wf_missing")
    assert str(exc.value) == "get_workflow: Workflow not found: wf_missing"

    with pytest.raises(WorkflowNotFound):
        await services.workflows.update_status("wf_missing", WorkflowStatus.CANCELLED, "officer1")


async def test_assign_keeps_status_and_records_entry(services):
    wf = await services.workflows.create_workflow("loan_1")

    wf = await services.workflows.assign_workflow(wf.id, "reviewer1", "lead1")

    assert wf.assigned_to == "reviewer1"
    assert wf.current_status is WorkflowStatus.SUBMITTED
    assert len(wf.history) == 1
    entry = wf.history[0]
    assert entry.status is WorkflowStatus.SUBMITTED
    assert entry.actor == "lead1"
    assert entry.comment == "Assigned to reviewer1"

    assert await kinds_for(services, "reviewer1") == ["workflow_assigned"]


async def test_status_updates_notify_assignee_or_system(services):
    wf = await services.workflows.create_workflow("loan_1")
    await services.workflows.update_status(wf.id, WorkflowStatus.DOCUMENT_VERIFICATION, "officer1")
    await services.workflows.assign_workflow(wf.id, "reviewer1", "lead1")
    await services.workflows.update_status(wf.id, WorkflowStatus.CREDIT_CHECK, "reviewer1")

    assert await kinds_for(services, "SYSTEM") == ["workflow_update"]
    assert sorted(await kinds_for(services, "reviewer1")) == ["workflow_assigned", "workflow_update"]

    updates = [n for n in await services.notifier.list_for_recipient("reviewer1") if n.kind.value == "workflow_update"]
    assert updates[0].payload["status"] == "credit_check"
    assert updates[0].payload["workflow_id"] == wf.id


async def test_pending_workflows_exclude_terminal_and_filter_by_assignee(services):
    open_wf = await services.workflows.create_workflow("loan_1")
    mine = await services.workflows.create_workflow("loan_2")
    done = await services.workflows.create_workflow("loan_3")
    await services.workflows.assign_workflow(mine.id, "reviewer1", "lead1")
    await services.workflows.update_status(done.id, WorkflowStatus.CANCELLED, "officer1")

    pending = await services.workflows.get_pending_workflows()
    assert {wf.id for wf in pending} == {open_wf.id, mine.id}

    assigned = await services.workflows.get_pending_workflows("reviewer1")
    assert [wf.id for wf in assigned] == [mine.id]


async def test_cancelled_workflow_is_final(services):
    wf = await services.workflows.create_workflow("loan_1")
    await services.workflows.update_status(wf.id, WorkflowStatus.CANCELLED, "officer1")

    for target in WorkflowStatus:
        with pytest.raises(InvalidStatusTransition):
            await services.workflows.update_status(wf.id, target, "officer1")

    assert len(await services.workflows.get_workflow_history(wf.id)) == 1


async def test_second_workflow_for_application_is_a_conflict(services):
    app, _ = await submitted(services)

    with pytest.raises(WorkflowExists) as exc:
        await services.workflows.create_workflow(app.id)
    assert exc.value.kind is ErrorKind.CONFLICT
    assert exc.value.operation == "create_workflow"

    assert len(await services.store.get_all_workflows()) == 1


async def test_direct_update_moves_linked_application(services):
    app, docs = await submitted(services)

    wf = await services.workflows.update_status(app.workflow_id, WorkflowStatus.CREDIT_CHECK, "reviewer1")

    stored = await services.applications.get_application(app.id)
    assert stored.status is ApplicationStatus.CREDIT_CHECK
    assert stored.updated_at == wf.updated_at

    await services.notifier.drain()
    updates = [n for n in await services.notifier.list_for_recipient("SYSTEM") if n.kind.value == "workflow_update"]
    assert updates[0].payload["application_status"] == "credit_check"

    for doc in docs:
        stored = await services.applications.process_document_verification(app.id, doc.id, True, "officer1")
    assert all(d.is_final for d in stored.documents)
    assert stored.status is ApplicationStatus.CREDIT_CHECK

    stored = await services.applications.process_risk_assessment(app.id, assessment())
    assert stored.status is ApplicationStatus.UNDERWRITING
    history = await services.workflows.get_workflow_history(app.workflow_id)
    assert [h.status for h in history] == [
        WorkflowStatus.DOCUMENT_VERIFICATION,
        WorkflowStatus.CREDIT_CHECK,
        WorkflowStatus.UNDERWRITING,
    ]


async def test_verification_accepts_workflow_already_in_credit_check(services):
    app, docs = await submitted(services)
    # Workflow moved on without the application being re-projected.
    wf = await services.store.get_workflow(app.workflow_id)
    advance(wf, WorkflowStatus.CREDIT_CHECK, actor="reviewer1")
    await services.store.save_workflow(wf)

    for doc in docs:
        stored = await services.applications.process_document_verification(app.id, doc.id, True, "officer1")

    assert stored.status is ApplicationStatus.CREDIT_CHECK
    assert all(d.is_final for d in stored.documents)
    history = await services.workflows.get_workflow_history(app.workflow_id)
    assert [h.status for h in history] == [WorkflowStatus.DOCUMENT_VERIFICATION, WorkflowStatus.CREDIT_CHECK]
    assert "workflow_update" not in await kinds_for(services, "user123")
