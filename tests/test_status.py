import pytest

from loanflow.schemas.status import (
    WORKFLOW_TERMINAL,
    WORKFLOW_TRANSITIONS,
    ApplicationStatus,
    WorkflowStatus,
    can_transition,
    project_application_status,
)

W = WorkflowStatus

LEGAL = {
    (W.SUBMITTED, W.DOCUMENT_VERIFICATION),
    (W.SUBMITTED, W.CANCELLED),
    (W.DOCUMENT_VERIFICATION, W.CREDIT_CHECK),
    (W.DOCUMENT_VERIFICATION, W.CANCELLED),
    (W.CREDIT_CHECK, W.UNDERWRITING),
    (W.CREDIT_CHECK, W.CANCELLED),
    (W.UNDERWRITING, W.APPROVED),
    (W.UNDERWRITING, W.REJECTED),
    (W.UNDERWRITING, W.CANCELLED),
}


@pytest.mark.parametrize("current", list(W))
@pytest.mark.parametrize("target", list(W))
def test_transition_table(current, target):
    assert can_transition(current, target) is ((current, target) in LEGAL)


def test_terminal_states_have_no_exits():
    assert WORKFLOW_TERMINAL == {W.APPROVED, W.REJECTED, W.CANCELLED}
    for status in WORKFLOW_TERMINAL:
        assert WORKFLOW_TRANSITIONS[status] == frozenset()


@pytest.mark.parametrize(
    "workflow_status, expected",
    [
        (W.SUBMITTED, ApplicationStatus.SUBMITTED),
        (W.DOCUMENT_VERIFICATION, ApplicationStatus.SUBMITTED),
        (W.CREDIT_CHECK, ApplicationStatus.CREDIT_CHECK),
        (W.UNDERWRITING, ApplicationStatus.UNDERWRITING),
        (W.APPROVED, ApplicationStatus.APPROVED),
        (W.REJECTED, ApplicationStatus.REJECTED),
        (W.CANCELLED, ApplicationStatus.CANCELLED),
    ],
)
def test_application_status_projection(workflow_status, expected):
    assert project_application_status(workflow_status) is expected
