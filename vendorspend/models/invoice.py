"""
Invoice-related database models.
"""

import enum

from sqlalchemy import (
    Column,
    Date,
    Enum,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from vendorspend.db.base import Base, ProvenanceMixin, TimestampMixin, UUIDMixin


class InvoiceStatus(str, enum.Enum):
    """Invoice payment lifecycle status."""

    PENDING = "Pending"
    APPROVED = "Approved"
    REJECTED = "Rejected"
    PAID = "Paid"


class InvoiceValidationState(str, enum.Enum):
    """Outcome of the most recent validation run, as mirrored on the invoice."""

    NOT_VALIDATED = "Not Validated"
    PASSED = "Passed"
    FAILED = "Failed"
    WARNING = "Warning"
    ERROR = "Error"


class Invoice(Base, UUIDMixin, TimestampMixin, ProvenanceMixin):
    """Vendor invoice normalized from an extracted document."""

    __tablename__ = "invoices"

    invoice_number = Column(String(100), nullable=False, index=True)
    invoice_date = Column(Date, nullable=True)
    due_date = Column(Date, nullable=True)
    service_period_start = Column(Date, nullable=True)
    service_period_end = Column(Date, nullable=True)

    vendor_party_id = Column(UUID(as_uuid=True), ForeignKey("parties.id"), nullable=False, index=True)
    customer_party_id = Column(UUID(as_uuid=True), ForeignKey("parties.id"), nullable=True)
    contract_id = Column(UUID(as_uuid=True), ForeignKey("contracts.id"), nullable=True, index=True)

    # Amounts
    net_service_amount = Column(Numeric(15, 2), nullable=True)
    tax_amount = Column(Numeric(15, 2), nullable=True)
    shipping_amount = Column(Numeric(15, 2), nullable=True)
    fuel_surcharge = Column(Numeric(15, 2), nullable=True)
    misc_charges = Column(Numeric(15, 2), nullable=True)
    gross_amount = Column(Numeric(15, 2), nullable=False, default=0)
    currency = Column(String(3), default="USD", nullable=False)

    status = Column(Enum(InvoiceStatus), default=InvoiceStatus.PENDING, nullable=False, index=True)
    validation_status = Column(
        Enum(InvoiceValidationState),
        default=InvoiceValidationState.NOT_VALIDATED,
        nullable=False,
    )

    source_document_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    po_number = Column(String(100), nullable=True)
    organization_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    external_ids = Column(JSON, nullable=True)

    __table_args__ = (
        Index("idx_invoice_vendor_number", "vendor_party_id", "invoice_number"),
    )

    vendor = relationship("Party", foreign_keys=[vendor_party_id])
    customer = relationship("Party", foreign_keys=[customer_party_id])
    contract = relationship("Contract", back_populates="invoices")
    line_items = relationship(
        "InvoiceLineItem",
        back_populates="invoice",
        cascade="all, delete-orphan",
        order_by="InvoiceLineItem.line_number",
    )
    validations = relationship("InvoiceValidation", back_populates="invoice", cascade="all, delete-orphan")
    exceptions = relationship("ValidationException", back_populates="invoice", cascade="all, delete-orphan")
    approval_requests = relationship(
        "InvoiceApprovalRequest", back_populates="invoice", cascade="all, delete-orphan"
    )
    extraction_records = relationship("DocumentExtractionData", back_populates="invoice")

    def __repr__(self):
        return f"<Invoice(id={self.id}, number={self.invoice_number}, gross={self.gross_amount})>"


class InvoiceLineItem(Base, UUIDMixin, TimestampMixin):
    """One billed line of an invoice."""

    __tablename__ = "invoice_line_items"

    invoice_id = Column(UUID(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True)
    line_number = Column(Integer, nullable=False)
    description = Column(Text, nullable=True)

    quantity = Column(Numeric(15, 4), nullable=True)
    uom = Column(String(50), nullable=True)
    unit_price = Column(Numeric(15, 4), nullable=True)
    extended_amount = Column(Numeric(15, 2), nullable=True)

    service_period_start = Column(Date, nullable=True)
    service_period_end = Column(Date, nullable=True)

    billable_item_id = Column(UUID(as_uuid=True), ForeignKey("billable_items.id"), nullable=True)
    service_category_id = Column(UUID(as_uuid=True), ForeignKey("service_categories.id"), nullable=True)

    # Coding
    gl_account = Column(String(50), nullable=True)
    department = Column(String(100), nullable=True)
    project = Column(String(100), nullable=True)
    cost_center = Column(String(100), nullable=True)

    __table_args__ = (
        UniqueConstraint("invoice_id", "line_number", name="uq_invoice_line_number"),
    )

    invoice = relationship("Invoice", back_populates="line_items")
    billable_item = relationship("BillableItem")
    service_category = relationship("ServiceCategory")

    def __repr__(self):
        return f"<InvoiceLineItem(invoice_id={self.invoice_id}, line={self.line_number}, price={self.unit_price})>"
