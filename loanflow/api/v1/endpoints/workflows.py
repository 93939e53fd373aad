from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from loanflow.api.deps import get_services
from loanflow.schemas.status import Priority
from loanflow.schemas.workflow import (
    LoanWorkflow,
    WorkflowAssign,
    WorkflowHistory,
    WorkflowListResponse,
    WorkflowStatusUpdate,
)
from loanflow.services import Services

router = APIRouter(prefix="/workflows", tags=["workflows"])


@router.get("/pending", response_model=WorkflowListResponse)
async def pending_workflows_endpoint(
    assignee: str | None = Query(None, description="Only workflows assigned to this reviewer"),
    services: Services = Depends(get_services),
) -> WorkflowListResponse:
    items = await services.workflows.get_pending_workflows(assignee)
    return WorkflowListResponse(items=items)


@router.post("", response_model=LoanWorkflow, status_code=status.HTTP_201_CREATED)
async def create_workflow_endpoint(
    application_id: str = Query(..., min_length=1),
    priority: Priority = Query(Priority.MEDIUM),
    services: Services = Depends(get_services),
) -> LoanWorkflow:
    return await services.workflows.create_workflow(application_id, priority=priority)


@router.get("/{workflow_id}", response_model=LoanWorkflow)
async def get_workflow_endpoint(
    workflow_id: str,
    services: Services = Depends(get_services),
) -> LoanWorkflow:
    return await services.workflows.get_workflow(workflow_id)


@router.get("/{workflow_id}/history", response_model=list[WorkflowHistory])
async def workflow_history_endpoint(
    workflow_id: str,
    services: Services = Depends(get_services),
) -> list[WorkflowHistory]:
    return await services.workflows.get_workflow_history(workflow_id)


@router.post("/{workflow_id}/status", response_model=LoanWorkflow)
async def update_status_endpoint(
    workflow_id: str,
    payload: WorkflowStatusUpdate,
    services: Services = Depends(get_services),
) -> LoanWorkflow:
    return await services.workflows.update_status(workflow_id, payload.status, payload.actor, payload.comment)


@router.post("/{workflow_id}/assign", response_model=LoanWorkflow)
async def assign_workflow_endpoint(
    workflow_id: str,
    payload: WorkflowAssign,
    services: Services = Depends(get_services),
) -> LoanWorkflow:
    return await services.workflows.assign_workflow(workflow_id, payload.assignee, payload.assigner)
