from fastapi import APIRouter

from loanflow.api.v1.endpoints.applications import router as applications_router
from loanflow.api.v1.endpoints.notifications import router as notifications_router
from loanflow.api.v1.endpoints.products import router as products_router
from loanflow.api.v1.endpoints.workflows import router as workflows_router

router = APIRouter()


@router.get("/ping")
async def ping():
    return {"ping": "pong"}


router.include_router(applications_router)
router.include_router(workflows_router)
router.include_router(products_router)
router.include_router(notifications_router)
