from __future__ import annotations

from fastapi import APIRouter, Depends

from loanflow.api.deps import get_services
from loanflow.schemas.notification import NotificationRead
from loanflow.services import Services

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/{recipient_id}", response_model=list[NotificationRead])
async def list_notifications_endpoint(
    recipient_id: str,
    services: Services = Depends(get_services),
) -> list[NotificationRead]:
    return await services.notifier.list_for_recipient(recipient_id)
