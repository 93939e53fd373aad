from __future__ import annotations

from dataclasses import dataclass

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from loanflow.config import Settings
from loanflow.services.application_service import LoanApplicationService
from loanflow.services.document_service import DocumentService, DocumentStorage
from loanflow.services.locks import KeyedLock
from loanflow.services.notification_service import NotificationService
from loanflow.services.product_service import ProductService
from loanflow.services.risk_service import RiskService
from loanflow.services.storage_service import LocalDocumentStorage
from loanflow.services.workflow_service import WorkflowService
from loanflow.store import ApplicationStore


@dataclass(frozen=True)
class Services:
    store: ApplicationStore
    notifier: NotificationService
    products: ProductService
    documents: DocumentService
    workflows: WorkflowService
    applications: LoanApplicationService


def build_services(
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    *,
    storage: DocumentStorage | None = None,
) -> Services:
    """Wire the engine. Services touching the same aggregate share one lock table."""

    store = ApplicationStore(session_factory)
    notifier = NotificationService(session_factory, settings=settings)
    products = ProductService(session_factory, settings=settings)

    application_locks = KeyedLock()
    workflow_locks = KeyedLock()

    documents = DocumentService(
        store,
        storage or LocalDocumentStorage(settings.storage_dir),
        notifier,
        application_locks=application_locks,
        settings=settings,
    )
    workflows = WorkflowService(
        store,
        notifier,
        application_locks=application_locks,
        workflow_locks=workflow_locks,
        settings=settings,
    )
    applications = LoanApplicationService(
        store,
        products,
        RiskService(settings=settings),
        notifier,
        application_locks=application_locks,
        workflow_locks=workflow_locks,
        settings=settings,
    )
    return Services(
        store=store,
        notifier=notifier,
        products=products,
        documents=documents,
        workflows=workflows,
        applications=applications,
    )


__all__ = ["Services", "build_services"]
