# Import models here so Base.metadata sees every table
from .base import Base  # noqa: F401
from .product import LoanProductRow  # noqa: F401
from .application import DocumentRow, LoanApplicationRow  # noqa: F401
from .workflow import LoanWorkflowRow, WorkflowHistoryRow  # noqa: F401
from .notification import NotificationRow  # noqa: F401
