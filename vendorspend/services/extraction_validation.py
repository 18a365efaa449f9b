"""
Deterministic sanity checks for OCR/AI-extracted invoice fields.

Each check returns an ExtractionValidationResult whose ``confidence_penalty``
(0..1) is applied by the caller to lower the stored extraction confidence.
The checks catch the usual OCR false positives, such as boilerplate text
("Your previous balance") picked up as the vendor name or a page number read
as the invoice number.
"""

import re
from dataclasses import dataclass, field
from datetime import date, datetime
from decimal import Decimal, InvalidOperation
from typing import Any, Dict, List, Optional

INVALID_VENDOR_PATTERNS = [
    re.compile(r"^your\s+(previous|current|total|due|balance|account)", re.IGNORECASE),
    re.compile(r"^(the|a|an)\s+", re.IGNORECASE),
    re.compile(r"^(previous|current|total|due|balance|account|amount|invoice|bill)", re.IGNORECASE),
    re.compile(r"^(please|thank|dear|sir|madam)", re.IGNORECASE),
    re.compile(r"^(detach|send|payment|remit)", re.IGNORECASE),
    re.compile(r"^[0-9]+$"),
    re.compile(r"^[^a-z]{1,3}$", re.IGNORECASE),
]

COMPANY_INDICATOR_PATTERNS = [
    re.compile(r"(inc|llc|corp|ltd|llp|company|services|group|associates|enterprises)", re.IGNORECASE),
    re.compile(r"[a-z]{4,}", re.IGNORECASE),
]

VENDOR_FALSE_POSITIVE_WORDS = [
    "previous", "current", "total", "due", "balance", "account",
    "invoice", "bill", "statement", "payment", "remit", "detach",
    "please", "thank", "dear", "sir", "madam", "your", "the", "a", "an",
]

INVOICE_NUMBER_FALSE_POSITIVES = ["invoice", "bill", "statement", "document", "page"]

MIN_VENDOR_NAME_LENGTH = 3
MAX_VENDOR_NAME_LENGTH = 200

MIN_REASONABLE_AMOUNT = Decimal("0.01")
MAX_REASONABLE_AMOUNT = Decimal("1000000000")
SMALL_TOTAL_AMOUNT = Decimal("10")

MIN_REASONABLE_YEAR = 2020
MAX_REASONABLE_YEAR = 2030
MAX_FUTURE_DAYS = 30
MAX_PAST_DAYS = 1825

# Header weights
VENDOR_WEIGHT = Decimal("0.3")
INVOICE_NUMBER_WEIGHT = Decimal("0.2")
DATE_WEIGHT = Decimal("0.2")
TOTAL_AMOUNT_WEIGHT = Decimal("0.3")
CROSS_CHECK_PENALTY = Decimal("0.2")

DATE_FORMATS = [
    "%Y-%m-%d",
    "%Y/%m/%d",
    "%m-%d-%Y",
    "%m/%d/%Y",
    "%d-%m-%Y",
    "%d/%m/%Y",
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%dT%H:%M:%S",
    "%B %d, %Y",
    "%b %d, %Y",
]


@dataclass
class ExtractionValidationResult:
    """Outcome of an extraction sanity check."""
    is_valid: bool
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    confidence_penalty: Decimal = Decimal("0")

    def to_dict(self) -> Dict[str, Any]:
        return {
            "is_valid": self.is_valid,
            "errors": list(self.errors),
            "warnings": list(self.warnings),
            "confidence_penalty": float(self.confidence_penalty),
        }


def _result(errors: List[str], warnings: List[str], penalty: Decimal) -> ExtractionValidationResult:
    return ExtractionValidationResult(
        is_valid=not errors,
        errors=errors,
        warnings=warnings,
        confidence_penalty=min(penalty, Decimal("1.0")),
    )


def _failed(message: str) -> ExtractionValidationResult:
    return ExtractionValidationResult(
        is_valid=False, errors=[message], warnings=[], confidence_penalty=Decimal("1.0")
    )


def parse_date(value: Any) -> Optional[date]:
    """Parse an extracted date string, trying the formats seen on invoices."""
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    text = str(value).strip()
    if not text:
        return None

    try:
        return datetime.fromisoformat(text.replace("Z", "+00:00")).date()
    except ValueError:
        pass

    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(text, fmt).date()
        except ValueError:
            continue

    return None


def parse_decimal(value: Any) -> Optional[Decimal]:
    """Parse an extracted amount, tolerating currency symbols and thousands separators."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        return value if value.is_finite() else None
    if isinstance(value, (int, float)):
        value = str(value)

    text = str(value).strip().replace(",", "").replace("$", "")
    if not text:
        return None
    try:
        parsed = Decimal(text)
    except InvalidOperation:
        return None
    return parsed if parsed.is_finite() else None


def validate_vendor_name(vendor_name: Optional[str]) -> ExtractionValidationResult:
    """Validate an extracted vendor name."""
    if vendor_name is None or not str(vendor_name).strip():
        return _failed("Vendor name is required")

    trimmed = str(vendor_name).strip()
    errors: List[str] = []
    warnings: List[str] = []
    penalty = Decimal("0")

    if len(trimmed) < MIN_VENDOR_NAME_LENGTH:
        errors.append(f'Vendor name too short: "{trimmed}"')
        penalty += Decimal("0.5")

    if len(trimmed) > MAX_VENDOR_NAME_LENGTH:
        errors.append(f"Vendor name too long: {len(trimmed)} characters")
        penalty += Decimal("0.3")

    for pattern in INVALID_VENDOR_PATTERNS:
        if pattern.search(trimmed):
            errors.append(f'Vendor name matches invalid pattern: "{trimmed}"')
            penalty += Decimal("0.8")

    has_company_indicator = any(p.search(trimmed) for p in COMPANY_INDICATOR_PATTERNS)
    if not has_company_indicator and len(trimmed) < 10:
        warnings.append(f'Vendor name may be incomplete: "{trimmed}"')
        penalty += Decimal("0.2")

    lowered = trimmed.lower()
    for word in VENDOR_FALSE_POSITIVE_WORDS:
        if lowered == word or lowered.startswith(word + " "):
            errors.append(f'Vendor name is a common false positive: "{trimmed}"')
            penalty += Decimal("0.9")

    return _result(errors, warnings, penalty)


def validate_amount(amount: Any, field_name: str = "amount") -> ExtractionValidationResult:
    """Validate an extracted monetary amount."""
    if amount is None:
        return _failed(f"{field_name} is required")

    value = parse_decimal(amount)
    if value is None:
        return _failed(f"{field_name} is not a valid number: {amount}")

    errors: List[str] = []
    warnings: List[str] = []
    penalty = Decimal("0")

    if value < MIN_REASONABLE_AMOUNT:
        errors.append(f"{field_name} is too small: ${value:.2f}")
        penalty += Decimal("0.7")

    if value > MAX_REASONABLE_AMOUNT:
        errors.append(f"{field_name} is too large: ${value:.2f}")
        penalty += Decimal("0.7")

    if value == 0:
        warnings.append(f"{field_name} is zero")
        penalty += Decimal("0.3")

    # Line totals are sometimes picked up as the invoice total
    if field_name == "total_amount" and value < SMALL_TOTAL_AMOUNT:
        warnings.append(f"Total amount seems very small: ${value:.2f}")
        penalty += Decimal("0.4")

    return _result(errors, warnings, penalty)


def validate_date(
    value: Any,
    field_name: str = "date",
    today: Optional[date] = None,
) -> ExtractionValidationResult:
    """Validate an extracted date."""
    if value is None or not str(value).strip():
        return _failed(f"{field_name} is required")

    parsed = parse_date(value)
    if parsed is None:
        return _failed(f"{field_name} is not a valid date: {value}")

    errors: List[str] = []
    warnings: List[str] = []
    penalty = Decimal("0")

    if parsed.year < MIN_REASONABLE_YEAR or parsed.year > MAX_REASONABLE_YEAR:
        errors.append(f"{field_name} year is out of reasonable range: {parsed.year}")
        penalty += Decimal("0.8")

    today = today or date.today()
    days_diff = (parsed - today).days
    if days_diff > MAX_FUTURE_DAYS:
        warnings.append(f"{field_name} is more than 30 days in the future: {value}")
        penalty += Decimal("0.3")

    if days_diff < -MAX_PAST_DAYS:
        warnings.append(f"{field_name} is more than 5 years in the past: {value}")
        penalty += Decimal("0.2")

    return _result(errors, warnings, penalty)


def validate_invoice_number(invoice_number: Optional[str]) -> ExtractionValidationResult:
    """Validate an extracted invoice number."""
    if invoice_number is None or not str(invoice_number).strip():
        return _failed("Invoice number is required")

    trimmed = str(invoice_number).strip()
    errors: List[str] = []
    warnings: List[str] = []
    penalty = Decimal("0")

    if trimmed.lower() in INVOICE_NUMBER_FALSE_POSITIVES:
        errors.append(f'Invoice number is a common false positive: "{trimmed}"')
        penalty += Decimal("0.9")

    if len(trimmed) < 3:
        warnings.append(f'Invoice number seems too short: "{trimmed}"')
        penalty += Decimal("0.3")

    return _result(errors, warnings, penalty)


def validate_invoice_header(
    header: Dict[str, Any],
    today: Optional[date] = None,
) -> ExtractionValidationResult:
    """
    Validate an extracted invoice header as a whole.

    Expects the keys ``vendor_party_id``, ``invoice_id``, ``invoice_date``,
    ``total_amount`` and optionally ``gross_amount`` / ``net_amount``. Field
    penalties are weighted (vendor 0.3, invoice number 0.2, date 0.2, total
    0.3); a total below the gross or net amount adds a flat 0.2 each.
    """
    errors: List[str] = []
    warnings: List[str] = []
    penalty = Decimal("0")

    weighted_checks = [
        (validate_vendor_name(header.get("vendor_party_id")), VENDOR_WEIGHT),
        (validate_invoice_number(header.get("invoice_id")), INVOICE_NUMBER_WEIGHT),
        (validate_date(header.get("invoice_date"), "invoice_date", today=today), DATE_WEIGHT),
        (validate_amount(header.get("total_amount"), "total_amount"), TOTAL_AMOUNT_WEIGHT),
    ]
    for check, weight in weighted_checks:
        errors.extend(check.errors)
        warnings.extend(check.warnings)
        penalty += check.confidence_penalty * weight

    total = parse_decimal(header.get("total_amount"))
    gross = parse_decimal(header.get("gross_amount"))
    net = parse_decimal(header.get("net_amount"))

    if total and gross and total < gross:
        warnings.append("Total amount is less than gross amount - may be incorrect")
        penalty += CROSS_CHECK_PENALTY

    if total and net and total < net:
        warnings.append("Total amount is less than net amount - may be incorrect")
        penalty += CROSS_CHECK_PENALTY

    return _result(errors, warnings, penalty)


def apply_confidence_penalty(confidence: float, penalty: Decimal) -> float:
    """Lower an extraction confidence by a header penalty."""
    adjusted = Decimal(str(confidence)) * (Decimal("1") - penalty)
    return float(max(adjusted, Decimal("0")))
