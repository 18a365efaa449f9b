"""
Validation run and exception database models.
"""

import enum

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Enum,
    Float,
    ForeignKey,
    Index,
    Integer,
    JSON,
    Numeric,
    String,
    Text,
)
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from vendorspend.db.base import Base, TimestampMixin, UUIDMixin


class ValidationStatus(str, enum.Enum):
    """Overall outcome of a validation run."""

    PASSED = "Passed"
    FAILED = "Failed"
    WARNING = "Warning"


class ValidationMethod(str, enum.Enum):
    """How a validation run was produced."""

    DETERMINISTIC = "deterministic"
    ASSISTED = "assisted"


class ExceptionSeverity(str, enum.Enum):
    """Exception severity, ordered High > Medium > Low."""

    HIGH = "High"
    MEDIUM = "Medium"
    LOW = "Low"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    ExceptionSeverity.HIGH: 0,
    ExceptionSeverity.MEDIUM: 1,
    ExceptionSeverity.LOW: 2,
}


class ExceptionType(str, enum.Enum):
    """Kinds of validation exception."""

    VENDOR_MISMATCH = "Vendor Mismatch"
    CURRENCY_MISMATCH = "Currency Mismatch"
    DATE_RANGE_INVALID = "Date Range Invalid"
    LOCATION_NOT_AUTHORIZED = "Location Not Authorized"
    CONTRACT_NOT_MATCHED = "Contract Not Matched"
    PRICE_VARIANCE = "Price Variance"
    ITEM_NOT_MATCHED = "Item Not Matched"
    INVALID_QUANTITY = "Invalid Quantity"
    UOM_MISMATCH = "UOM Mismatch"
    DUPLICATE_INVOICE = "Duplicate Invoice"
    ASSISTED_FINDING = "Assisted Finding"


class InvoiceValidation(Base, UUIDMixin, TimestampMixin):
    """One validation run against an invoice. Runs are append-only."""

    __tablename__ = "invoice_validations"

    invoice_id = Column(UUID(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True)
    validation_date = Column(DateTime(timezone=True), nullable=False, index=True)
    overall_status = Column(Enum(ValidationStatus), nullable=False)
    rules_applied_count = Column(Integer, default=0, nullable=False)
    potential_savings = Column(Numeric(15, 2), default=0, nullable=False)
    auto_approved = Column(Boolean, default=False, nullable=False)
    validation_method = Column(
        Enum(ValidationMethod), default=ValidationMethod.DETERMINISTIC, nullable=False
    )
    validated_by = Column(UUID(as_uuid=True), nullable=True)
    confidence_score = Column(Float, nullable=True)
    expected_net_amount = Column(Numeric(15, 2), nullable=True)
    actual_net_amount = Column(Numeric(15, 2), nullable=True)
    assisted_summary = Column(JSON, nullable=True)

    invoice = relationship("Invoice", back_populates="validations")
    exceptions = relationship(
        "ValidationException",
        back_populates="validation",
        cascade="all, delete-orphan",
        order_by="ValidationException.line_number",
    )

    def __repr__(self):
        return f"<InvoiceValidation(id={self.id}, invoice_id={self.invoice_id}, status={self.overall_status})>"


class ValidationException(Base, UUIDMixin, TimestampMixin):
    """Persisted record of one rule failure."""

    __tablename__ = "validation_exceptions"

    validation_id = Column(UUID(as_uuid=True), ForeignKey("invoice_validations.id"), nullable=False, index=True)
    invoice_id = Column(UUID(as_uuid=True), ForeignKey("invoices.id"), nullable=False, index=True)
    line_item_id = Column(UUID(as_uuid=True), ForeignKey("invoice_line_items.id"), nullable=True)

    exception_type = Column(Enum(ExceptionType), nullable=False)
    exception_category = Column(String(100), nullable=False)
    severity = Column(Enum(ExceptionSeverity), nullable=False, index=True)

    field_name = Column(String(100), nullable=True)
    line_number = Column(Integer, nullable=True)
    message = Column(Text, nullable=False)
    recommendation = Column(Text, nullable=True)
    root_cause = Column(Text, nullable=True)
    expected_value = Column(String(255), nullable=True)
    actual_value = Column(String(255), nullable=True)
    variance_amount = Column(Numeric(15, 2), nullable=True)

    # Resolution
    is_resolved = Column(Boolean, default=False, nullable=False, index=True)
    resolved_by = Column(UUID(as_uuid=True), nullable=True)
    resolved_date = Column(DateTime(timezone=True), nullable=True)
    resolution_notes = Column(Text, nullable=True)

    # Evidence
    contract_extraction_id = Column(UUID(as_uuid=True), ForeignKey("document_extraction_data.id"), nullable=True)
    invoice_extraction_id = Column(UUID(as_uuid=True), ForeignKey("document_extraction_data.id"), nullable=True)

    __table_args__ = (
        Index("idx_exception_resolved_severity", "is_resolved", "severity"),
    )

    validation = relationship("InvoiceValidation", back_populates="exceptions")
    invoice = relationship("Invoice", back_populates="exceptions")

    def __repr__(self):
        return f"<ValidationException(id={self.id}, type={self.exception_type}, severity={self.severity})>"
