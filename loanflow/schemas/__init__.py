from .application import Document, LoanApplication, RiskAssessment
from .notification import NOTIFICATION_PAYLOADS, NotificationType
from .product import LoanProduct
from .status import ApplicationStatus, DocumentStatus, DocumentType, WorkflowStatus
from .workflow import LoanWorkflow, WorkflowHistory

__all__ = [
    "ApplicationStatus",
    "Document",
    "DocumentStatus",
    "DocumentType",
    "LoanApplication",
    "LoanProduct",
    "LoanWorkflow",
    "NOTIFICATION_PAYLOADS",
    "NotificationType",
    "RiskAssessment",
    "WorkflowHistory",
    "WorkflowStatus",
]
