"""
Party (vendor / customer) database models.
"""

import enum

from sqlalchemy import Column, Enum, Index, JSON, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import relationship

from vendorspend.db.base import Base, ProvenanceMixin, TimestampMixin, UUIDMixin


class PartyType(str, enum.Enum):
    """Role a party plays across the platform."""

    VENDOR = "Vendor"
    CUSTOMER = "Customer"
    OTHER = "Other"


class PartyStatus(str, enum.Enum):
    """Party lifecycle status."""

    ACTIVE = "Active"
    INACTIVE = "Inactive"


class Party(Base, UUIDMixin, TimestampMixin, ProvenanceMixin):
    """A legal entity that appears on contracts and invoices."""

    __tablename__ = "parties"

    legal_name = Column(String(255), nullable=False, index=True)
    trading_name = Column(String(255), nullable=True)

    # Registry identifiers
    tax_id = Column(String(50), nullable=True, index=True)
    duns_number = Column(String(20), nullable=True, index=True)
    npi_number = Column(String(20), nullable=True)
    cage_code = Column(String(20), nullable=True)
    external_ids = Column(JSON, nullable=True)

    # Contact
    email = Column(String(255), nullable=True)
    phone = Column(String(50), nullable=True)

    party_type = Column(Enum(PartyType), default=PartyType.VENDOR, nullable=False)
    status = Column(Enum(PartyStatus), default=PartyStatus.ACTIVE, nullable=False)
    organization_id = Column(UUID(as_uuid=True), nullable=True, index=True)

    __table_args__ = (
        Index("idx_party_type_status", "party_type", "status"),
    )

    contract_links = relationship("ContractParty", back_populates="party")

    def __repr__(self):
        return f"<Party(id={self.id}, legal_name={self.legal_name}, type={self.party_type})>"
