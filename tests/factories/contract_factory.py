"""
Factories for contracts, their parties and their priced catalog.
"""

import uuid
from datetime import date
from decimal import Decimal

import factory
from faker import Faker

from vendorspend.models.contract import (
    BillableItem,
    Contract,
    ContractParty,
    ContractPartyRole,
    ContractStatus,
    PricingModel,
    PricingModelType,
    PricingTier,
    VarianceType,
)

fake = Faker()


class ContractFactory(factory.Factory):
    """Factory for generating active contracts."""

    class Meta:
        model = Contract

    id = factory.LazyFunction(uuid.uuid4)
    contract_number = factory.LazyAttribute(lambda _: f"CTR-{fake.random_int(10000, 99999)}")
    contract_title = factory.LazyAttribute(lambda _: f"{fake.bs().title()} Services Agreement")
    effective_date = date(2024, 1, 1)
    expiration_date = date(2026, 12, 31)
    auto_renewal = False
    currency = "USD"
    status = ContractStatus.ACTIVE
    parties = factory.LazyFunction(list)
    locations = factory.LazyFunction(list)


class ContractPartyFactory(factory.Factory):
    """Role link between a contract and a party."""

    class Meta:
        model = ContractParty

    id = factory.LazyFunction(uuid.uuid4)
    role = ContractPartyRole.VENDOR.value
    contract_id = factory.LazyAttribute(lambda obj: obj.contract.id if obj.contract is not None else None)
    party_id = factory.LazyAttribute(lambda obj: obj.party.id)
    contract = None
    party = None


class BillableItemFactory(factory.Factory):
    """Contract-priced catalog entry."""

    class Meta:
        model = BillableItem

    id = factory.LazyFunction(uuid.uuid4)
    item_name = factory.Sequence(lambda n: f"Sterile Surgical Gloves, Box {n}")
    item_code = factory.Sequence(lambda n: f"SKU-{1000 + n}")
    contract_price = Decimal("100.00")
    list_price = Decimal("120.00")
    allowed_variance_type = VarianceType.ABSOLUTE
    allowed_variance_value = Decimal("0")
    currency = "USD"
    primary_uom = "EA"
    allowed_uoms = None
    uom_conversion_rules = None
    pricing_model = None


class PricingModelFactory(factory.Factory):
    class Meta:
        model = PricingModel

    id = factory.LazyFunction(uuid.uuid4)
    model_name = factory.Sequence(lambda n: f"Volume Tiers {n}")
    model_type = PricingModelType.TIERED
    currency = "USD"
    tiers = factory.LazyFunction(list)


class PricingTierFactory(factory.Factory):
    class Meta:
        model = PricingTier

    id = factory.LazyFunction(uuid.uuid4)
    tier_sequence = factory.Sequence(lambda n: n + 1)
    min_value = Decimal("0")
    max_value = None
    rate = Decimal("10")
    is_cumulative = False
