"""
Contract compliance rules evaluated against invoices and their line items.

Each rule takes a ValidationContext and returns a RuleResult. Rules read
only what is already loaded on the context, never touch the database and
can run in any order.
"""

from dataclasses import dataclass, field
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import Any, List, Optional, Tuple

from vendorspend.models.contract import ContractPartyRole, VarianceType
from vendorspend.services.pricing import contract_unit_price


class RuleType(str, Enum):
    """Rules known to the validation engine."""

    PRICE = "price"
    QUANTITY = "quantity"
    UOM = "uom"
    DATE_RANGE = "date_range"
    VENDOR = "vendor"
    CURRENCY = "currency"
    LOCATION = "location"
    DUPLICATE = "duplicate"


@dataclass
class ValidationContext:
    """Everything a rule may look at."""
    invoice: Any
    contract: Any = None
    line_item: Any = None
    billable_item: Any = None
    duplicate_invoice_ids: List[Any] = field(default_factory=list)


@dataclass
class RuleResult:
    """Outcome of one rule evaluation."""
    passed: bool
    message: str
    variance: Optional[Decimal] = None
    expected_value: Optional[str] = None
    actual_value: Optional[str] = None


def _to_decimal(value: Any) -> Optional[Decimal]:
    if value is None:
        return None
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def _enum_value(value: Any) -> Any:
    return value.value if isinstance(value, Enum) else value


def validate_price(context: ValidationContext) -> RuleResult:
    """Invoice unit price must be within the billable item's allowed variance."""
    line_item, billable_item = context.line_item, context.billable_item
    if billable_item is None:
        return RuleResult(passed=False, message="No matching billable item found for line item")

    invoice_price = _to_decimal(line_item.unit_price) or Decimal("0")
    contract_price = contract_unit_price(billable_item)
    if contract_price is None:
        return RuleResult(
            passed=False,
            message="Billable item has no contract or list price",
            actual_value=str(invoice_price),
        )

    allowed_variance = _to_decimal(billable_item.allowed_variance_value) or Decimal("0")
    variance_type = _enum_value(billable_item.allowed_variance_type) or VarianceType.ABSOLUTE.value

    variance = invoice_price - contract_price
    if variance_type == VarianceType.PERCENTAGE.value:
        if contract_price == 0:
            within_tolerance = variance == 0
        else:
            percentage_variance = variance / contract_price * Decimal("100")
            within_tolerance = abs(percentage_variance) <= allowed_variance
    else:
        within_tolerance = abs(variance) <= allowed_variance

    return RuleResult(
        passed=within_tolerance,
        message=(
            "Price is within allowed tolerance"
            if within_tolerance
            else f"Price variance exceeds tolerance: ${variance}"
        ),
        variance=variance,
        expected_value=str(contract_price),
        actual_value=str(invoice_price),
    )


def validate_quantity(context: ValidationContext) -> RuleResult:
    """Quantity, when present, must be positive."""
    quantity = _to_decimal(context.line_item.quantity) if context.line_item is not None else None
    if quantity is None:
        return RuleResult(passed=True, message="No quantity specified, skipping quantity validation")

    if quantity <= 0:
        return RuleResult(
            passed=False,
            message="Invoice quantity must be greater than zero",
            actual_value=str(quantity),
        )

    return RuleResult(passed=True, message="Quantity is valid")


def validate_uom(context: ValidationContext) -> RuleResult:
    """Invoice UOM must match the contract UOM or be an allowed UOM with a conversion factor."""
    line_item, billable_item = context.line_item, context.billable_item
    if billable_item is None:
        return RuleResult(passed=False, message="No matching billable item found for UOM validation")

    invoice_uom = (line_item.uom or "").strip().lower()
    contract_uom = (billable_item.primary_uom or "").strip().lower()

    if not invoice_uom or not contract_uom:
        return RuleResult(
            passed=False,
            message="UOM missing in invoice or contract",
            expected_value=contract_uom or "N/A",
            actual_value=invoice_uom or "N/A",
        )

    if invoice_uom == contract_uom:
        return RuleResult(passed=True, message="UOM matches contract")

    allowed_uoms = [str(uom).lower() for uom in (billable_item.allowed_uoms or [])]
    conversion_rules = {
        str(uom).lower(): factor for uom, factor in (billable_item.uom_conversion_rules or {}).items()
    }
    if invoice_uom in allowed_uoms and conversion_rules.get(invoice_uom):
        return RuleResult(passed=True, message="UOM is allowed with conversion")

    return RuleResult(
        passed=False,
        message=f"UOM mismatch: invoice uses {invoice_uom}, contract requires {contract_uom}",
        expected_value=contract_uom,
        actual_value=invoice_uom,
    )


def service_period_for(context: ValidationContext) -> Tuple[Optional[date], Optional[date]]:
    """Line service period, falling back to the invoice date."""
    invoice, line_item = context.invoice, context.line_item
    start = line_item.service_period_start if line_item is not None else None
    end = line_item.service_period_end if line_item is not None else None
    return start or invoice.invoice_date, end or invoice.invoice_date


def validate_date_range(context: ValidationContext) -> RuleResult:
    """Service period must lie within the contract term."""
    contract = context.contract
    if contract is None:
        return RuleResult(passed=False, message="No contract found for date validation")

    service_start, service_end = service_period_for(context)
    if service_start is None or service_end is None:
        return RuleResult(passed=False, message="Invoice has no service period or invoice date")

    contract_start, contract_end = contract.effective_date, contract.expiration_date
    starts_too_early = contract_start is not None and service_start < contract_start
    ends_too_late = contract_end is not None and service_end > contract_end

    if starts_too_early or ends_too_late:
        contract_range = f"{contract_start or 'open'} to {contract_end or 'open'}"
        service_range = f"{service_start} to {service_end}"
        return RuleResult(
            passed=False,
            message=f"Service period ({service_range}) is outside contract period ({contract_range})",
            expected_value=contract_range,
            actual_value=service_range,
        )

    return RuleResult(passed=True, message="Service period is within contract dates")


def validate_vendor(context: ValidationContext) -> RuleResult:
    """Invoice vendor must be the contract's single Vendor party."""
    invoice, contract = context.invoice, context.contract
    if contract is None:
        return RuleResult(passed=False, message="No contract found for vendor validation")

    vendor_links = [
        link for link in contract.parties if link.role == ContractPartyRole.VENDOR.value
    ]
    if not vendor_links:
        return RuleResult(passed=False, message="No vendor found in contract")
    if len(vendor_links) > 1:
        return RuleResult(
            passed=False,
            message=f"Contract has {len(vendor_links)} vendor parties; expected exactly one",
        )

    contract_vendor = vendor_links[0].party
    if contract_vendor.id != invoice.vendor_party_id:
        return RuleResult(
            passed=False,
            message=(
                f"Vendor mismatch: invoice vendor ({invoice.vendor_party_id}) does not match "
                f"contract vendor ({contract_vendor.id})"
            ),
            expected_value=contract_vendor.legal_name,
            actual_value=invoice.vendor.legal_name if invoice.vendor is not None else str(invoice.vendor_party_id),
        )

    return RuleResult(passed=True, message="Vendor matches contract")


def validate_currency(context: ValidationContext) -> RuleResult:
    """Invoice currency must equal the contract currency."""
    invoice, contract = context.invoice, context.contract
    if contract is None:
        return RuleResult(passed=False, message="No contract found for currency validation")

    if (invoice.currency or "").upper() != (contract.currency or "").upper():
        return RuleResult(
            passed=False,
            message=f"Currency mismatch: invoice uses {invoice.currency}, contract uses {contract.currency}",
            expected_value=contract.currency,
            actual_value=invoice.currency,
        )

    return RuleResult(passed=True, message="Currency matches contract")


def validate_location(context: ValidationContext) -> RuleResult:
    """
    Location coverage check.

    Invoices carry no service location yet, so any contract passes once its
    location links are loaded.
    """
    contract = context.contract
    if contract is None:
        return RuleResult(passed=False, message="No contract found for location validation")

    if not contract.locations:
        return RuleResult(passed=True, message="Contract has no location restrictions")

    return RuleResult(passed=True, message="Location validation passed (simplified)")


def validate_duplicate(context: ValidationContext) -> RuleResult:
    """No other invoice may share this vendor and invoice number."""
    if context.duplicate_invoice_ids:
        duplicates = ", ".join(str(i) for i in context.duplicate_invoice_ids)
        return RuleResult(
            passed=False,
            message=(
                f"Duplicate invoice: {context.invoice.invoice_number} from this vendor "
                f"already exists ({duplicates})"
            ),
            expected_value="unique invoice number",
            actual_value=context.invoice.invoice_number,
        )
    return RuleResult(passed=True, message="No duplicate invoice found")


RULES = {
    RuleType.PRICE: validate_price,
    RuleType.QUANTITY: validate_quantity,
    RuleType.UOM: validate_uom,
    RuleType.DATE_RANGE: validate_date_range,
    RuleType.VENDOR: validate_vendor,
    RuleType.CURRENCY: validate_currency,
    RuleType.LOCATION: validate_location,
    RuleType.DUPLICATE: validate_duplicate,
}

INVOICE_LEVEL_RULES = [RuleType.VENDOR, RuleType.CURRENCY, RuleType.LOCATION, RuleType.DUPLICATE]
