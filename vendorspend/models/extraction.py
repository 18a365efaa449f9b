"""
Per-field extraction records.
"""

from sqlalchemy import Boolean, Column, Float, ForeignKey, Index, JSON, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from vendorspend.db.base import Base, TimestampMixin, UUIDMixin

UNMAPPED_ENTITY_TYPE = "unmapped"


class DocumentExtractionData(Base, UUIDMixin, TimestampMixin):
    """One field extracted from a source document."""

    __tablename__ = "document_extraction_data"

    document_id = Column(UUID(as_uuid=True), nullable=False, index=True)
    entity_type = Column(String(50), nullable=False)
    field_name = Column(String(255), nullable=False)
    extracted_value = Column(JSON, nullable=True)
    confidence_score = Column(Float, nullable=True)
    extraction_method = Column(String(50), nullable=True)
    requires_human_review = Column(Boolean, default=False, nullable=False)

    contract_id = Column(UUID(as_uuid=True), ForeignKey("contracts.id"), nullable=True)
    invoice_id = Column(UUID(as_uuid=True), ForeignKey("invoices.id"), nullable=True)

    __table_args__ = (
        Index("idx_extraction_document_entity", "document_id", "entity_type"),
    )

    invoice = relationship("Invoice", back_populates="extraction_records")
    contract = relationship("Contract")

    def __repr__(self):
        return f"<DocumentExtractionData(document_id={self.document_id}, field={self.field_name})>"
