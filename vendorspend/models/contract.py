"""
Contract, pricing and catalog database models.
"""

import enum

from sqlalchemy import (
    Boolean,
    CheckConstraint,
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


class ContractStatus(str, enum.Enum):
    """Contract lifecycle status."""

    DRAFT = "Draft"
    ACTIVE = "Active"
    EXPIRED = "Expired"
    TERMINATED = "Terminated"


class ContractPartyRole(str, enum.Enum):
    """Role of a party on a contract."""

    VENDOR = "Vendor"
    CUSTOMER = "Customer"
    GUARANTOR = "Guarantor"


class VarianceType(str, enum.Enum):
    """How a billable item's allowed price variance is expressed."""

    PERCENTAGE = "percentage"
    ABSOLUTE = "absolute"


class PricingModelType(str, enum.Enum):
    """Pricing model kinds."""

    FLAT = "flat"
    TIERED = "tiered"
    FORMULA = "formula"


class Contract(Base, UUIDMixin, TimestampMixin, ProvenanceMixin):
    """Agreement between a healthcare organization and a vendor."""

    __tablename__ = "contracts"

    contract_number = Column(String(100), nullable=True, index=True)
    contract_title = Column(String(255), nullable=False)
    contract_type = Column(String(100), nullable=True)

    # Term
    effective_date = Column(Date, nullable=True)
    expiration_date = Column(Date, nullable=True)
    auto_renewal = Column(Boolean, default=False, nullable=False)
    renewal_period_months = Column(Integer, nullable=True)
    notice_period_days = Column(Integer, nullable=True)

    currency = Column(String(3), default="USD", nullable=False)
    status = Column(Enum(ContractStatus), default=ContractStatus.DRAFT, nullable=False, index=True)

    # Amendments point at the contract they amend
    parent_contract_id = Column(UUID(as_uuid=True), ForeignKey("contracts.id"), nullable=True)

    legal_terms = Column(JSON, nullable=True)
    external_ids = Column(JSON, nullable=True)
    source_document_id = Column(UUID(as_uuid=True), nullable=True, index=True)
    organization_id = Column(UUID(as_uuid=True), nullable=True, index=True)

    __table_args__ = (
        CheckConstraint(
            "expiration_date IS NULL OR effective_date IS NULL OR expiration_date >= effective_date",
            name="check_contract_term",
        ),
        Index("idx_contract_status_dates", "status", "effective_date", "expiration_date"),
    )

    parent = relationship("Contract", remote_side="Contract.id", back_populates="children")
    children = relationship("Contract", back_populates="parent")
    parties = relationship("ContractParty", back_populates="contract", cascade="all, delete-orphan")
    locations = relationship("ContractLocation", back_populates="contract", cascade="all, delete-orphan")
    billable_items = relationship("BillableItem", back_populates="contract", cascade="all, delete-orphan")
    pricing_models = relationship("PricingModel", back_populates="contract", cascade="all, delete-orphan")
    invoices = relationship("Invoice", back_populates="contract")

    def vendor_parties(self):
        """Parties linked to this contract in the Vendor role."""
        return [link.party for link in self.parties if link.role == ContractPartyRole.VENDOR.value]

    def __repr__(self):
        return f"<Contract(id={self.id}, number={self.contract_number}, status={self.status})>"


class ContractParty(Base, UUIDMixin, TimestampMixin):
    """Role-tagged link between a contract and a party."""

    __tablename__ = "contract_parties"

    contract_id = Column(UUID(as_uuid=True), ForeignKey("contracts.id"), nullable=False, index=True)
    party_id = Column(UUID(as_uuid=True), ForeignKey("parties.id"), nullable=False, index=True)
    role = Column(String(50), nullable=False)

    __table_args__ = (
        UniqueConstraint("contract_id", "party_id", "role", name="uq_contract_party_role"),
    )

    contract = relationship("Contract", back_populates="parties")
    party = relationship("Party", back_populates="contract_links")

    def __repr__(self):
        return f"<ContractParty(contract_id={self.contract_id}, party_id={self.party_id}, role={self.role})>"


class Location(Base, UUIDMixin, TimestampMixin):
    """Facility where contracted services are delivered."""

    __tablename__ = "locations"

    location_code = Column(String(50), nullable=True, index=True)
    location_name = Column(String(255), nullable=False)
    location_type = Column(String(100), nullable=True)
    address_line = Column(String(255), nullable=True)
    city = Column(String(100), nullable=True)
    state = Column(String(50), nullable=True)
    postal_code = Column(String(20), nullable=True)
    country = Column(String(2), nullable=True)
    organization_id = Column(UUID(as_uuid=True), nullable=True)

    contract_links = relationship("ContractLocation", back_populates="location")

    def __repr__(self):
        return f"<Location(id={self.id}, name={self.location_name})>"


class ContractLocation(Base, UUIDMixin, TimestampMixin):
    """Link between a contract and a covered location."""

    __tablename__ = "contract_locations"

    contract_id = Column(UUID(as_uuid=True), ForeignKey("contracts.id"), nullable=False, index=True)
    location_id = Column(UUID(as_uuid=True), ForeignKey("locations.id"), nullable=False)

    __table_args__ = (
        UniqueConstraint("contract_id", "location_id", name="uq_contract_location"),
    )

    contract = relationship("Contract", back_populates="locations")
    location = relationship("Location", back_populates="contract_links")


class ServiceCategory(Base, UUIDMixin, TimestampMixin):
    """Classification for billable items and invoice lines."""

    __tablename__ = "service_categories"

    category_name = Column(String(255), nullable=False, unique=True)
    description = Column(Text, nullable=True)
    gl_code = Column(String(50), nullable=True)

    def __repr__(self):
        return f"<ServiceCategory(id={self.id}, name={self.category_name})>"


class PricingModel(Base, UUIDMixin, TimestampMixin):
    """How a billable item's rate is computed."""

    __tablename__ = "pricing_models"

    contract_id = Column(UUID(as_uuid=True), ForeignKey("contracts.id"), nullable=True, index=True)
    model_name = Column(String(255), nullable=False)
    model_type = Column(Enum(PricingModelType), default=PricingModelType.FLAT, nullable=False)
    base_rate = Column(Numeric(15, 4), nullable=True)
    currency = Column(String(3), default="USD", nullable=False)
    formula = Column(Text, nullable=True)

    contract = relationship("Contract", back_populates="pricing_models")
    tiers = relationship(
        "PricingTier",
        back_populates="pricing_model",
        cascade="all, delete-orphan",
        order_by="PricingTier.tier_sequence",
    )
    billable_items = relationship("BillableItem", back_populates="pricing_model")

    def __repr__(self):
        return f"<PricingModel(id={self.id}, name={self.model_name}, type={self.model_type})>"


class PricingTier(Base, UUIDMixin, TimestampMixin):
    """One quantity band of a tiered pricing model."""

    __tablename__ = "pricing_tiers"

    pricing_model_id = Column(UUID(as_uuid=True), ForeignKey("pricing_models.id"), nullable=False, index=True)
    tier_sequence = Column(Integer, nullable=False)
    min_value = Column(Numeric(15, 4), nullable=False)
    max_value = Column(Numeric(15, 4), nullable=True)
    rate = Column(Numeric(15, 4), nullable=False)
    is_cumulative = Column(Boolean, default=False, nullable=False)

    __table_args__ = (
        UniqueConstraint("pricing_model_id", "tier_sequence", name="uq_pricing_tier_sequence"),
    )

    pricing_model = relationship("PricingModel", back_populates="tiers")

    def __repr__(self):
        return f"<PricingTier(seq={self.tier_sequence}, min={self.min_value}, max={self.max_value}, rate={self.rate})>"


class BillableItem(Base, UUIDMixin, TimestampMixin):
    """Contract-scoped priced catalog entry invoices are matched against."""

    __tablename__ = "billable_items"

    contract_id = Column(UUID(as_uuid=True), ForeignKey("contracts.id"), nullable=False, index=True)
    pricing_model_id = Column(UUID(as_uuid=True), ForeignKey("pricing_models.id"), nullable=True)
    service_category_id = Column(UUID(as_uuid=True), ForeignKey("service_categories.id"), nullable=True)

    item_name = Column(String(255), nullable=False)
    item_code = Column(String(100), nullable=True, index=True)
    description = Column(Text, nullable=True)

    # Pricing
    list_price = Column(Numeric(15, 4), nullable=True)
    contract_price = Column(Numeric(15, 4), nullable=True)
    price_floor = Column(Numeric(15, 4), nullable=True)
    price_ceiling = Column(Numeric(15, 4), nullable=True)
    allowed_variance_type = Column(Enum(VarianceType), default=VarianceType.ABSOLUTE, nullable=False)
    allowed_variance_value = Column(Numeric(15, 4), default=0, nullable=False)
    currency = Column(String(3), default="USD", nullable=False)

    # Units of measure
    primary_uom = Column(String(50), nullable=True)
    allowed_uoms = Column(JSON, nullable=True)
    uom_conversion_rules = Column(JSON, nullable=True)

    __table_args__ = (
        UniqueConstraint("contract_id", "item_name", name="uq_billable_item_contract_name"),
    )

    contract = relationship("Contract", back_populates="billable_items")
    pricing_model = relationship("PricingModel", back_populates="billable_items")
    service_category = relationship("ServiceCategory")

    def __repr__(self):
        return f"<BillableItem(id={self.id}, name={self.item_name}, price={self.contract_price})>"
