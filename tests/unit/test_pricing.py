"""
Tests for tiered pricing and price band checks.
"""

from decimal import Decimal

import pytest

from vendorspend.models.contract import PricingModelType
from vendorspend.services.pricing import (
    calculate_tiered_price,
    check_price_band,
    contract_unit_price,
    expected_unit_price,
)
from tests.factories import BillableItemFactory, PricingModelFactory, PricingTierFactory


@pytest.fixture
def volume_tiers():
    return [
        PricingTierFactory(tier_sequence=1, min_value=Decimal("0"), max_value=Decimal("99"), rate=Decimal("10")),
        PricingTierFactory(tier_sequence=2, min_value=Decimal("100"), max_value=Decimal("499"), rate=Decimal("8")),
        PricingTierFactory(tier_sequence=3, min_value=Decimal("500"), max_value=None, rate=Decimal("5")),
    ]


@pytest.fixture
def tiered_model(volume_tiers):
    return PricingModelFactory(model_type=PricingModelType.TIERED, tiers=volume_tiers)


class TestCalculateTieredPrice:

    @pytest.mark.parametrize(
        "quantity, rate",
        [
            (Decimal("1"), Decimal("10")),
            (Decimal("99"), Decimal("10")),
            (Decimal("100"), Decimal("8")),
            (Decimal("499"), Decimal("8")),
            (Decimal("750"), Decimal("5")),
        ],
    )
    def test_rate_for_quantity(self, tiered_model, volume_tiers, quantity, rate):
        assert calculate_tiered_price(quantity, tiered_model, volume_tiers) == rate

    def test_rate_never_increases_with_volume(self, tiered_model, volume_tiers):
        rates = [
            calculate_tiered_price(Decimal(q), tiered_model, volume_tiers)
            for q in (1, 50, 99, 100, 250, 499, 500, 10000)
        ]
        assert rates == sorted(rates, reverse=True)

    def test_tier_order_does_not_matter(self, tiered_model, volume_tiers):
        shuffled = [volume_tiers[2], volume_tiers[0], volume_tiers[1]]
        assert calculate_tiered_price(Decimal("150"), tiered_model, shuffled) == Decimal("8")

    def test_quantity_in_gap_resolves_to_top_tier(self, tiered_model):
        gapped = [
            PricingTierFactory(min_value=Decimal("0"), max_value=Decimal("10"), rate=Decimal("12")),
            PricingTierFactory(min_value=Decimal("20"), max_value=Decimal("30"), rate=Decimal("9")),
        ]
        assert calculate_tiered_price(Decimal("15"), tiered_model, gapped) == Decimal("9")

    def test_quantity_above_bounded_tiers_resolves_to_top_tier(self, tiered_model):
        bounded = [
            PricingTierFactory(min_value=Decimal("0"), max_value=Decimal("10"), rate=Decimal("12")),
            PricingTierFactory(min_value=Decimal("11"), max_value=Decimal("20"), rate=Decimal("9")),
        ]
        assert calculate_tiered_price(Decimal("500"), tiered_model, bounded) == Decimal("9")

    def test_without_tiers_uses_base_rate(self):
        model = PricingModelFactory(base_rate=Decimal("42.50"))
        assert calculate_tiered_price(Decimal("3"), model, []) == Decimal("42.50")

    def test_without_tiers_or_base_rate_is_zero(self):
        model = PricingModelFactory(base_rate=None)
        assert calculate_tiered_price(Decimal("3"), model, []) == Decimal("0")


class TestExpectedUnitPrice:

    def test_tiered_item_uses_tier_rate(self, tiered_model):
        item = BillableItemFactory(contract_price=Decimal("10.00"), pricing_model=tiered_model)
        assert expected_unit_price(item, Decimal("750")) == Decimal("5")

    def test_flat_model_uses_contract_price(self, volume_tiers):
        model = PricingModelFactory(model_type=PricingModelType.FLAT, tiers=volume_tiers)
        item = BillableItemFactory(contract_price=Decimal("11.00"), pricing_model=model)
        assert expected_unit_price(item, Decimal("750")) == Decimal("11.00")

    def test_no_model_uses_contract_price(self):
        item = BillableItemFactory(contract_price=Decimal("100.00"))
        assert expected_unit_price(item, Decimal("5")) == Decimal("100.00")


class TestContractUnitPrice:

    def test_ignores_tier_rate(self, tiered_model):
        item = BillableItemFactory(contract_price=Decimal("10.00"), pricing_model=tiered_model)
        assert contract_unit_price(item) == Decimal("10.00")

    def test_falls_back_to_list_price(self):
        item = BillableItemFactory(contract_price=None, list_price=Decimal("120.00"))
        assert contract_unit_price(item) == Decimal("120.00")


class TestCheckPriceBand:

    def test_price_inside_band(self):
        item = BillableItemFactory(
            contract_price=Decimal("100"), price_floor=Decimal("90"), price_ceiling=Decimal("110")
        )
        assert check_price_band(item) is None

    def test_price_below_floor(self):
        item = BillableItemFactory(contract_price=Decimal("80"), price_floor=Decimal("90"))
        assert "below price floor" in check_price_band(item)

    def test_price_above_ceiling(self):
        item = BillableItemFactory(contract_price=Decimal("120"), price_ceiling=Decimal("110"))
        assert "above price ceiling" in check_price_band(item)

    def test_inverted_band(self):
        item = BillableItemFactory(
            contract_price=None, price_floor=Decimal("120"), price_ceiling=Decimal("110")
        )
        assert "above price ceiling" in check_price_band(item)

    def test_item_without_band(self):
        assert check_price_band(BillableItemFactory()) is None
