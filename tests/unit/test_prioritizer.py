"""
Tests for the operator exception priority queue.
"""

from datetime import datetime, timedelta, timezone
from decimal import Decimal

import pytest

from vendorspend.models.validation import ExceptionSeverity
from vendorspend.services.exception_service import prioritize_exceptions
from tests.factories import InvoiceValidationFactory, ValidationExceptionFactory

NOW = datetime(2025, 3, 20, 12, 0, tzinfo=timezone.utc)


def exception_at(detected_at, severity=ExceptionSeverity.MEDIUM, variance=Decimal("100.00"), **fields):
    validation = InvoiceValidationFactory(validation_date=detected_at)
    return ValidationExceptionFactory(validation=validation, severity=severity, variance_amount=variance, **fields)


class TestPrioritizeExceptions:

    def test_orders_by_severity_then_absolute_variance(self):
        low = exception_at(NOW, ExceptionSeverity.LOW, Decimal("5000.00"))
        medium_small = exception_at(NOW, ExceptionSeverity.MEDIUM, Decimal("50.00"))
        medium_large_credit = exception_at(NOW, ExceptionSeverity.MEDIUM, Decimal("-800.00"))
        high = exception_at(NOW, ExceptionSeverity.HIGH, None)

        queue = prioritize_exceptions([low, medium_small, high, medium_large_credit], now=NOW)

        assert [item.exception_id for item in queue] == [
            high.id,
            medium_large_credit.id,
            medium_small.id,
            low.id,
        ]
        assert [item.priority for item in queue] == ["high", "medium", "medium", "low"]

    def test_resolved_exceptions_are_excluded(self):
        open_exc = exception_at(NOW)
        resolved = exception_at(NOW, is_resolved=True)

        queue = prioritize_exceptions([open_exc, resolved], now=NOW)

        assert [item.exception_id for item in queue] == [open_exc.id]

    def test_due_date_follows_sla(self):
        detected = NOW - timedelta(days=3)
        queue = prioritize_exceptions([exception_at(detected)], now=NOW, sla_days=7)

        item = queue[0]
        assert item.detected_at == detected
        assert item.due_date == detected + timedelta(days=7)
        assert item.days_until_due == 4
        assert item.is_urgent is False

    @pytest.mark.parametrize(
        "age, urgent",
        [
            (timedelta(days=4), False),
            (timedelta(days=5), True),
            (timedelta(days=6, hours=12), True),
            (timedelta(days=9), True),
        ],
    )
    def test_urgent_within_window(self, age, urgent):
        queue = prioritize_exceptions(
            [exception_at(NOW - age)], now=NOW, sla_days=7, urgent_window_days=2
        )
        assert queue[0].is_urgent is urgent

    def test_overdue_items_have_negative_days_until_due(self):
        queue = prioritize_exceptions([exception_at(NOW - timedelta(days=10))], now=NOW, sla_days=7)
        assert queue[0].days_until_due == -3

    def test_naive_validation_dates_are_treated_as_utc(self):
        naive = (NOW - timedelta(days=1)).replace(tzinfo=None)
        queue = prioritize_exceptions([exception_at(naive)], now=NOW, sla_days=7)

        assert queue[0].detected_at.tzinfo is not None
        assert queue[0].days_until_due == 6

    def test_limit_caps_queue(self):
        exceptions = [exception_at(NOW) for _ in range(5)]
        assert len(prioritize_exceptions(exceptions, now=NOW, limit=3)) == 3

    def test_item_carries_vendor_and_invoice(self):
        exc = exception_at(NOW)
        item = prioritize_exceptions([exc], now=NOW)[0]

        assert item.vendor_name == exc.invoice.vendor.legal_name
        assert item.vendor_party_id == exc.invoice.vendor.id
        assert item.invoice_number == exc.invoice.invoice_number
        assert item.impact == Decimal("100.00")
        assert item.issue == exc.message
