"""
Tests for the extracted invoice field sanity checks.
"""

from datetime import date
from decimal import Decimal

import pytest

from vendorspend.services.extraction_validation import (
    apply_confidence_penalty,
    parse_date,
    parse_decimal,
    validate_amount,
    validate_date,
    validate_invoice_header,
    validate_invoice_number,
    validate_vendor_name,
)

TODAY = date(2025, 3, 20)


class TestVendorName:

    def test_real_company_name_is_clean(self):
        result = validate_vendor_name("Cardinal Medical Supply LLC")

        assert result.is_valid is True
        assert result.errors == []
        assert result.confidence_penalty == Decimal("0")

    def test_boilerplate_phrase_is_rejected(self):
        result = validate_vendor_name("Your previous balance")

        assert result.is_valid is False
        assert result.confidence_penalty == Decimal("1.0")

    def test_article_prefix_hits_pattern_and_false_positive_word(self):
        result = validate_vendor_name("The Previous Balance")

        assert result.is_valid is False
        assert len(result.errors) == 2
        assert result.confidence_penalty == Decimal("1.0")

    def test_short_unknown_name_warns(self):
        result = validate_vendor_name("Zyx")

        assert result.is_valid is True
        assert any("may be incomplete" in w for w in result.warnings)

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_missing_name_fails_with_full_penalty(self, value):
        result = validate_vendor_name(value)

        assert result.is_valid is False
        assert result.errors == ["Vendor name is required"]
        assert result.confidence_penalty == Decimal("1.0")


class TestAmountAndNumber:

    def test_small_total_warns(self):
        result = validate_amount("5.00", "total_amount")

        assert result.is_valid is True
        assert result.warnings == ["Total amount seems very small: $5.00"]
        assert result.confidence_penalty == Decimal("0.4")

    def test_zero_amount_is_an_error(self):
        result = validate_amount("0", "net_amount")

        assert result.is_valid is False
        assert "net_amount is zero" in result.warnings

    def test_unparseable_amount(self):
        result = validate_amount("twelve", "total_amount")

        assert result.is_valid is False
        assert result.confidence_penalty == Decimal("1.0")

    def test_invoice_number_false_positive(self):
        result = validate_invoice_number("Invoice")

        assert result.is_valid is False
        assert result.confidence_penalty == Decimal("0.9")

    def test_short_invoice_number_warns(self):
        result = validate_invoice_number("12")

        assert result.is_valid is True
        assert result.confidence_penalty == Decimal("0.3")


class TestDates:

    @pytest.mark.parametrize(
        "value",
        ["2025-03-15", "03/15/2025", "March 15, 2025", "Mar 15, 2025", "2025-03-15T10:30:00"],
    )
    def test_parse_date_formats(self, value):
        assert parse_date(value) == date(2025, 3, 15)

    def test_parse_date_rejects_garbage(self):
        assert parse_date("soon") is None

    def test_year_out_of_range(self):
        result = validate_date("2015-06-01", "invoice_date", today=TODAY)

        assert result.is_valid is False
        assert "out of reasonable range" in result.errors[0]

    def test_far_future_date_warns(self):
        result = validate_date("2025-06-01", "invoice_date", today=TODAY)

        assert result.is_valid is True
        assert result.confidence_penalty == Decimal("0.3")


class TestParseDecimal:

    @pytest.mark.parametrize(
        "value, expected",
        [("$1,234.50", Decimal("1234.50")), (12, Decimal("12")), ("", None), (None, None), ("n/a", None)],
    )
    def test_parse_decimal(self, value, expected):
        assert parse_decimal(value) == expected


class TestInvoiceHeader:

    def test_clean_header(self):
        header = {
            "vendor_party_id": "Cardinal Medical Supply LLC",
            "invoice_id": "INV-20250315",
            "invoice_date": "2025-03-15",
            "total_amount": "1,000.00",
            "net_amount": "1000.00",
        }
        result = validate_invoice_header(header, today=TODAY)

        assert result.is_valid is True
        assert result.confidence_penalty == Decimal("0")

    def test_boilerplate_vendor_and_tiny_total(self):
        header = {
            "vendor_party_id": "The Previous Balance",
            "invoice_id": "INV-20250315",
            "invoice_date": "2025-03-15",
            "total_amount": "5.00",
        }
        result = validate_invoice_header(header, today=TODAY)

        assert result.is_valid is False
        assert len(result.errors) >= 2
        assert "Total amount seems very small: $5.00" in result.warnings
        assert result.confidence_penalty == Decimal("0.42")
        assert result.confidence_penalty <= Decimal("1")

    def test_total_below_net_adds_cross_check_penalty(self):
        header = {
            "vendor_party_id": "Cardinal Medical Supply LLC",
            "invoice_id": "INV-20250315",
            "invoice_date": "2025-03-15",
            "total_amount": "900.00",
            "net_amount": "1000.00",
        }
        result = validate_invoice_header(header, today=TODAY)

        assert result.is_valid is True
        assert result.confidence_penalty == Decimal("0.2")

    def test_penalty_is_capped(self):
        result = validate_invoice_header({}, today=TODAY)

        assert result.is_valid is False
        assert result.confidence_penalty == Decimal("1.0")

    def test_to_dict(self):
        data = validate_invoice_header({"vendor_party_id": "The Previous Balance"}, today=TODAY).to_dict()

        assert set(data) == {"is_valid", "errors", "warnings", "confidence_penalty"}
        assert isinstance(data["confidence_penalty"], float)


class TestApplyConfidencePenalty:

    def test_penalty_scales_confidence(self):
        assert apply_confidence_penalty(0.9, Decimal("0.5")) == pytest.approx(0.45)

    def test_full_penalty_zeroes_confidence(self):
        assert apply_confidence_penalty(0.9, Decimal("1.0")) == 0.0
