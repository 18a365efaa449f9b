"""
Approval workflow database models.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    Integer,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from vendorspend.db.base import Base, TimestampMixin, UUIDMixin


class ApprovalStatus(str, enum.Enum):
    """Approval request status."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    ESCALATED = "Escalated"
    DISPUTED = "Disputed"


TERMINAL_APPROVAL_STATUSES = frozenset({ApprovalStatus.APPROVED, ApprovalStatus.REJECTED})


class ApprovalDecision(str, enum.Enum):
    """Decisions an approver can record."""

    APPROVE = "Approve"
    REJECT = "Reject"
    ESCALATE = "Escalate"
    DISPUTE = "Dispute"


class ApprovalLevel(Base, UUIDMixin, TimestampMixin):
    """Amount band mapped to a required approver role."""

    __tablename__ = "approval_levels"

    level_name = Column(String(100), nullable=False)
    level_sequence = Column(Integer, nullable=False, unique=True)
    min_amount = Column(Numeric(15, 2), nullable=False, default=0)
    max_amount = Column(Numeric(15, 2), nullable=True)
    required_role = Column(String(100), nullable=False)
    escalation_days = Column(Integer, default=3, nullable=False)
    is_active = Column(Boolean, default=True, nullable=False)

    def __repr__(self):
        return f"<ApprovalLevel(seq={self.level_sequence}, min={self.min_amount}, max={self.max_amount})>"


class InvoiceApprovalRequest(Base, UUIDMixin, TimestampMixin):
    """Approval request raised for an invoice with material exceptions."""

    __tablename__ = "invoice_approval_requests"

    invoice_id = Column(UUID(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True)
    validation_id = Column(UUID(as_uuid=True), ForeignKey("invoice_validations.id"), nullable=True)
    current_level_id = Column(UUID(as_uuid=True), ForeignKey("approval_levels.id"), nullable=False)
    current_status = Column(Enum(ApprovalStatus), default=ApprovalStatus.PENDING, nullable=False, index=True)

    # Assignment
    assigned_to_user_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    assigned_to_role = Column(String(100), nullable=True)
    assigned_date = Column(DateTime(timezone=True), nullable=True)
    required_by_date = Column(DateTime(timezone=True), nullable=True)

    # Decision
    decision = Column(Enum(ApprovalDecision), nullable=True)
    decision_by = Column(UUID(as_uuid=True), nullable=True)
    decision_date = Column(DateTime(timezone=True), nullable=True)
    approved_amount = Column(Numeric(15, 2), nullable=True)
    rejection_reason = Column(Text, nullable=True)
    comments = Column(Text, nullable=True)
    escalation_count = Column(Integer, default=0, nullable=False)

    __table_args__ = (
        Index("idx_approval_status_due", "current_status", "required_by_date"),
    )

    invoice = relationship("Invoice", back_populates="approval_requests")
    validation = relationship("InvoiceValidation")
    current_level = relationship("ApprovalLevel")
    history = relationship(
        "InvoiceApprovalHistory",
        back_populates="approval_request",
        cascade="all, delete-orphan",
        order_by="InvoiceApprovalHistory.changed_at",
    )

    def __repr__(self):
        return f"<InvoiceApprovalRequest(id={self.id}, status={self.current_status})>"


class InvoiceApprovalHistory(Base, UUIDMixin, TimestampMixin):
    """Append-only record of an approval status transition."""

    __tablename__ = "invoice_approval_history"

    approval_request_id = Column(
        UUID(as_uuid=True), ForeignKey("invoice_approval_requests.id"), nullable=False, index=True
    )
    approval_level_id = Column(UUID(as_uuid=True), ForeignKey("approval_levels.id"), nullable=True)
    status_from = Column(Enum(ApprovalStatus), nullable=True)
    status_to = Column(Enum(ApprovalStatus), nullable=False)
    changed_by = Column(UUID(as_uuid=True), nullable=True)
    amount_change = Column(Numeric(15, 2), nullable=True)
    comments = Column(Text, nullable=True)
    changed_at = Column(DateTime(timezone=True), nullable=False)

    approval_request = relationship("InvoiceApprovalRequest", back_populates="history")

    def __repr__(self):
        return f"<InvoiceApprovalHistory({self.status_from} -> {self.status_to})>"
