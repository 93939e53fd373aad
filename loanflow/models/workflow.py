from __future__ import annotations

from sqlalchemy import DateTime, ForeignKey, Integer, String, Text, func
from sqlalchemy.orm import Mapped, mapped_column, relationship

from .base import Base


class LoanWorkflowRow(Base):
    __tablename__ = "loan_workflows"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    application_id: Mapped[str] = mapped_column(String(64), nullable=False, unique=True)

    current_status: Mapped[str] = mapped_column(String(30), nullable=False, server_default="submitted", index=True)
    assigned_to: Mapped[str | None] = mapped_column(String(100), nullable=True, index=True)
    priority: Mapped[str] = mapped_column(String(10), nullable=False, server_default="medium")

    created_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())
    updated_at: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False, server_default=func.now())

    history: Mapped[list["WorkflowHistoryRow"]] = relationship(
        order_by="WorkflowHistoryRow.seq",
        lazy="selectin",
    )


class WorkflowHistoryRow(Base):
    """One audit entry; (workflow_id, seq) preserves append order."""

    __tablename__ = "workflow_history"

    workflow_id: Mapped[str] = mapped_column(
        String(64), ForeignKey("loan_workflows.id", ondelete="CASCADE"), primary_key=True
    )
    seq: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=False)

    status: Mapped[str] = mapped_column(String(30), nullable=False)
    timestamp: Mapped[object] = mapped_column(DateTime(timezone=True), nullable=False)
    actor: Mapped[str] = mapped_column(String(100), nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
