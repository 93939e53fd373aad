"""Typed errors raised by the workflow engine.

Every error carries a machine-readable ``kind`` and ``code`` so callers can
branch without parsing messages. ``operation`` is filled in by the
``operation`` decorator with the name of the public call that failed.
"""

from __future__ import annotations

import functools
import logging
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError

logger = logging.getLogger(__name__)


class ErrorKind(str, Enum):
    VALIDATION = "validation"
    NOT_FOUND = "not_found"
    CONFLICT = "conflict"
    COLLABORATOR = "collaborator"


class LoanflowError(Exception):
    kind: ErrorKind = ErrorKind.VALIDATION
    code: str = "loanflow_error"

    def __init__(self, message: str, *, operation: str | None = None) -> None:
        super().__init__(message)
        self.message = message
        self.operation = operation

    def __str__(self) -> str:
        if self.operation:
            return f"{self.operation}: {self.message}"
        return self.message

    def to_dict(self) -> dict:
        return {
            "detail": self.message,
            "code": self.code,
            "kind": self.kind.value,
            "operation": self.operation,
        }


# validation


class InvalidAmount(LoanflowError):
    code = "invalid_amount"


class InvalidTerm(LoanflowError):
    code = "invalid_term"


class InvalidStatusTransition(LoanflowError):
    code = "invalid_status_transition"


class RequiredDocumentsMissing(LoanflowError):
    code = "required_documents_missing"

    def __init__(self, missing: list[str], *, operation: str | None = None) -> None:
        self.missing = missing
        detail = ", ".join(missing) if missing else "no documents attached"
        super().__init__(f"Required documents missing: {detail}", operation=operation)


class InvalidDecision(LoanflowError):
    code = "invalid_decision"


class InvalidDocument(LoanflowError):
    code = "invalid_document"


# not found


class ApplicationNotFound(LoanflowError):
    kind = ErrorKind.NOT_FOUND
    code = "application_not_found"


class WorkflowNotFound(LoanflowError):
    kind = ErrorKind.NOT_FOUND
    code = "workflow_not_found"


class DocumentNotFound(LoanflowError):
    kind = ErrorKind.NOT_FOUND
    code = "document_not_found"


class ProductNotFound(LoanflowError):
    kind = ErrorKind.NOT_FOUND
    code = "product_not_found"


# conflict


class DocumentAlreadyFinalized(LoanflowError):
    kind = ErrorKind.CONFLICT
    code = "document_already_finalized"


class ApplicationTerminal(LoanflowError):
    kind = ErrorKind.CONFLICT
    code = "application_terminal"


class WorkflowExists(LoanflowError):
    kind = ErrorKind.CONFLICT
    code = "workflow_exists"


# collaborator


class PersistenceError(LoanflowError):
    kind = ErrorKind.COLLABORATOR
    code = "persistence_error"


class StorageError(LoanflowError):
    kind = ErrorKind.COLLABORATOR
    code = "storage_error"


def operation(name: str):
    """Tag errors escaping an async service method with the operation name.

    Engine errors are re-raised unchanged apart from ``operation``; database
    errors become ``PersistenceError`` with the original kept as the cause.
    """

    def decorator(fn):
        @functools.wraps(fn)
        async def wrapper(*args, **kwargs):
            try:
                return await fn(*args, **kwargs)
            except LoanflowError as e:
                # Outermost operation wins when service calls nest.
                e.operation = name
                raise
            except SQLAlchemyError as e:
                logger.warning("persistence_failed operation=%s error=%s", name, e)
                raise PersistenceError(str(e), operation=name) from e

        return wrapper

    return decorator
