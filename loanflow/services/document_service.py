from __future__ import annotations

import logging
from collections.abc import Iterable
from typing import Protocol

from loanflow.config import Settings, settings as default_settings
from loanflow.errors import (
    ApplicationNotFound,
    ApplicationTerminal,
    DocumentAlreadyFinalized,
    DocumentNotFound,
    InvalidDocument,
    InvalidStatusTransition,
    LoanflowError,
    StorageError,
    operation,
)
from loanflow.schemas.application import Document, LoanApplication
from loanflow.schemas.common import generate_id, utcnow
from loanflow.schemas.notification import DocumentUploadedPayload, NotificationType
from loanflow.schemas.status import ApplicationStatus, DocumentStatus, DocumentType
from loanflow.services.locks import KeyedLock
from loanflow.services.notification_service import NotificationService, notify_quietly
from loanflow.store import ApplicationStore

logger = logging.getLogger(__name__)

ATTACHABLE = frozenset({ApplicationStatus.DRAFT, ApplicationStatus.SUBMITTED})


class DocumentStorage(Protocol):
    async def upload_file(self, content: bytes, *, path: str, content_type: str) -> str: ...


# completeness rules


def _superseded(documents: list[Document], index: int) -> bool:
    doc = documents[index]
    return any(later.type == doc.type for later in documents[index + 1 :])


def missing_types(application: LoanApplication, required_types: Iterable[DocumentType]) -> list[DocumentType]:
    """Required types without a single non-rejected document."""

    present = {d.type for d in application.documents if d.status is not DocumentStatus.REJECTED}
    return [t for t in required_types if t not in present]


def is_complete(application: LoanApplication, required_types: Iterable[DocumentType]) -> bool:
    return not missing_types(application, required_types)


def all_verified(application: LoanApplication, required_types: Iterable[DocumentType]) -> bool:
    """True once verification is finished and nothing blocks the credit check.

    Every document must be verified, except rejected ones that a later upload
    of the same type replaced; every required type needs a verified document.
    """

    docs = application.documents
    if not docs:
        return False

    for i, doc in enumerate(docs):
        if doc.status is DocumentStatus.VERIFIED:
            continue
        if doc.status is DocumentStatus.REJECTED and _superseded(docs, i):
            continue
        return False

    verified = {d.type for d in docs if d.status is DocumentStatus.VERIFIED}
    return all(t in verified for t in required_types)


def verify(
    application: LoanApplication,
    document_id: str,
    *,
    is_verified: bool,
    verified_by: str,
    rejection_reason: str | None = None,
) -> Document:
    """Record the verification outcome on one document of ``application``."""

    doc = application.find_document(document_id)
    if doc is None:
        raise DocumentNotFound(f"Document not found: {document_id}")
    if doc.is_final:
        raise DocumentAlreadyFinalized(
            f"Document {document_id} is already {doc.status.value}; attach a replacement instead"
        )

    doc.status = DocumentStatus.VERIFIED if is_verified else DocumentStatus.REJECTED
    doc.verified_by = verified_by
    doc.verified_at = utcnow()
    doc.rejection_reason = None if is_verified else rejection_reason
    return doc


class DocumentService:
    """Attaches documents to applications and validates uploads."""

    def __init__(
        self,
        store: ApplicationStore,
        storage: DocumentStorage,
        notifier: NotificationService,
        *,
        application_locks: KeyedLock,
        settings: Settings | None = None,
    ) -> None:
        self._store = store
        self._storage = storage
        self._notifier = notifier
        self._locks = application_locks
        self._settings = settings or default_settings

    @operation("attach_document")
    async def attach(
        self,
        application_id: str,
        document_type: DocumentType,
        url: str,
        *,
        content_type: str | None = None,
        size_bytes: int | None = None,
        document_id: str | None = None,
    ) -> Document:
        async with self._locks.hold(application_id):
            application = await self._store.get(application_id)
            if application is None:
                raise ApplicationNotFound(f"Application not found: {application_id}")
            self._check_attachable(application)

            doc = Document(
                id=document_id or generate_id("doc"),
                type=document_type,
                url=url,
                content_type=content_type,
                size_bytes=size_bytes,
            )
            application.documents.append(doc)
            application.updated_at = utcnow()
            await self._store.save(application)

        logger.info(
            "document_attached application_id=%s document_id=%s type=%s",
            application_id,
            doc.id,
            doc.type.value,
        )
        return doc

    @operation("upload_document")
    async def upload_document(
        self,
        content: bytes,
        *,
        application_id: str,
        document_type: DocumentType,
        content_type: str,
    ) -> Document:
        self._validate_file(content, content_type)

        application = await self._store.get(application_id)
        if application is None:
            raise ApplicationNotFound(f"Application not found: {application_id}")
        self._check_attachable(application)

        document_id = generate_id("doc")
        path = f"documents/{application.user_id}/{application_id}/{document_id}"
        try:
            url = await self._storage.upload_file(content, path=path, content_type=content_type)
        except Exception as e:
            raise StorageError(f"Document upload failed: {e}") from e

        try:
            doc = await self.attach(
                application_id,
                document_type,
                url,
                content_type=content_type,
                size_bytes=len(content),
                document_id=document_id,
            )
        except LoanflowError as e:
            logger.warning(
                "document_orphaned application_id=%s path=%s url=%s code=%s", application_id, path, url, e.code
            )
            raise

        notify_quietly(
            self._notifier,
            application.user_id,
            NotificationType.DOCUMENT_UPLOADED,
            DocumentUploadedPayload(application_id=application_id, document_id=doc.id, document_type=doc.type),
        )

        return doc

    def _validate_file(self, content: bytes, content_type: str) -> None:
        if not content:
            raise InvalidDocument("File is empty")
        if len(content) > self._settings.max_upload_bytes:
            raise InvalidDocument(
                f"File size exceeds maximum allowed size ({len(content)} > {self._settings.max_upload_bytes} bytes)"
            )
        if content_type not in self._settings.allowed_content_types:
            raise InvalidDocument(f"Invalid file type: {content_type}")

    @staticmethod
    def _check_attachable(application: LoanApplication) -> None:
        if application.is_terminal:
            raise ApplicationTerminal(
                f"Application {application.id} is {application.status.value}; documents can no longer be attached"
            )
        if application.status not in ATTACHABLE:
            raise InvalidStatusTransition(
                f"Documents cannot be attached while application is {application.status.value}"
            )
