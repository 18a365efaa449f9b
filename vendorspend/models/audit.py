"""
Audit log model.
"""

from sqlalchemy import Column, Index, JSON, String, Text
from sqlalchemy.dialects.postgresql import UUID

from vendorspend.db.base import Base, TimestampMixin, UUIDMixin


class AuditLog(Base, UUIDMixin, TimestampMixin):
    """Audit trail entry for changes and operational errors."""

    __tablename__ = "audit_logs"

    table_name = Column(String(100), nullable=False)
    record_id = Column(String(100), nullable=True)
    action = Column(String(50), nullable=False)
    changed_by = Column(UUID(as_uuid=True), nullable=True)
    reason = Column(Text, nullable=True)
    payload = Column(JSON, nullable=True)
    organization_id = Column(UUID(as_uuid=True), nullable=True)

    __table_args__ = (
        Index("idx_audit_table_record", "table_name", "record_id"),
        Index("idx_audit_action", "action"),
    )

    def __repr__(self):
        return f"<AuditLog(table={self.table_name}, record={self.record_id}, action={self.action})>"
