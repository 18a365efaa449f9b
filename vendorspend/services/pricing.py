"""
Pricing calculations for billable items.
"""

from decimal import Decimal
from typing import Any, Optional, Sequence

from vendorspend.models.contract import PricingModelType


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    return value if isinstance(value, Decimal) else Decimal(str(value))


def calculate_tiered_price(quantity: Decimal, pricing_model: Any, tiers: Sequence[Any]) -> Decimal:
    """
    Rate for ``quantity`` under a tiered pricing model.

    Without tiers the model's flat base rate applies (0 when unset). With
    tiers, the highest tier whose band contains the quantity wins; a quantity
    outside every band resolves to the top tier's rate.
    """
    if not tiers:
        base_rate = _to_decimal(pricing_model.base_rate) if pricing_model is not None else None
        return base_rate if base_rate is not None else Decimal("0")

    quantity = _to_decimal(quantity)
    sorted_tiers = sorted(tiers, key=lambda tier: _to_decimal(tier.min_value))

    for tier in reversed(sorted_tiers):
        max_value = _to_decimal(tier.max_value)
        if quantity >= _to_decimal(tier.min_value) and (max_value is None or quantity <= max_value):
            return _to_decimal(tier.rate)

    return _to_decimal(sorted_tiers[-1].rate)


def expected_unit_price(billable_item: Any, quantity: Optional[Decimal] = None) -> Optional[Decimal]:
    """
    Unit price the contract expects for a billable item at a given quantity.

    Tiered rates feed the expected net projection only; the Price rule
    compares against ``contract_unit_price``.
    """
    pricing_model = billable_item.pricing_model
    if (
        pricing_model is not None
        and pricing_model.model_type == PricingModelType.TIERED
        and pricing_model.tiers
    ):
        return calculate_tiered_price(quantity or Decimal("1"), pricing_model, pricing_model.tiers)

    return contract_unit_price(billable_item)


def contract_unit_price(billable_item: Any) -> Optional[Decimal]:
    """Negotiated price, falling back to list price."""
    contract_price = _to_decimal(billable_item.contract_price)
    if contract_price is not None:
        return contract_price
    return _to_decimal(billable_item.list_price)


def check_price_band(billable_item: Any) -> Optional[str]:
    """Return a message if the contract price falls outside its floor/ceiling, else None."""
    contract_price = _to_decimal(billable_item.contract_price)
    floor = _to_decimal(billable_item.price_floor)
    ceiling = _to_decimal(billable_item.price_ceiling)

    if floor is not None and ceiling is not None and floor > ceiling:
        return f"Price floor {floor} is above price ceiling {ceiling}"
    if contract_price is None:
        return None
    if floor is not None and contract_price < floor:
        return f"Contract price {contract_price} is below price floor {floor}"
    if ceiling is not None and contract_price > ceiling:
        return f"Contract price {contract_price} is above price ceiling {ceiling}"
    return None
