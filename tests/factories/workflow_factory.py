"""
Factories for validation runs, exceptions and approval levels.
"""

import uuid
from datetime import datetime, timezone
from decimal import Decimal

import factory

from vendorspend.models.approval import ApprovalLevel
from vendorspend.models.validation import (
    ExceptionSeverity,
    ExceptionType,
    InvoiceValidation,
    ValidationException,
    ValidationMethod,
    ValidationStatus,
)

from .invoice_factory import InvoiceFactory


class ApprovalLevelFactory(factory.Factory):
    """Amount band mapped to an approver role."""

    class Meta:
        model = ApprovalLevel

    id = factory.LazyFunction(uuid.uuid4)
    level_name = factory.Sequence(lambda n: f"Level {n + 1}")
    level_sequence = factory.Sequence(lambda n: n + 1)
    min_amount = Decimal("0")
    max_amount = None
    required_role = "AP Manager"
    escalation_days = 3
    is_active = True


class InvoiceValidationFactory(factory.Factory):
    class Meta:
        model = InvoiceValidation

    id = factory.LazyFunction(uuid.uuid4)
    invoice = factory.SubFactory(InvoiceFactory)
    invoice_id = factory.SelfAttribute("invoice.id")
    validation_date = factory.LazyFunction(lambda: datetime.now(timezone.utc))
    overall_status = ValidationStatus.FAILED
    rules_applied_count = 4
    potential_savings = Decimal("0")
    auto_approved = False
    validation_method = ValidationMethod.DETERMINISTIC
    confidence_score = 1.0


class ValidationExceptionFactory(factory.Factory):
    """Unresolved exception attached to a validation run."""

    class Meta:
        model = ValidationException

    id = factory.LazyFunction(uuid.uuid4)
    validation = factory.SubFactory(InvoiceValidationFactory)
    validation_id = factory.SelfAttribute("validation.id")
    invoice = factory.SelfAttribute("validation.invoice")
    invoice_id = factory.SelfAttribute("validation.invoice_id")
    exception_type = ExceptionType.PRICE_VARIANCE
    exception_category = "Pricing Validation"
    severity = ExceptionSeverity.MEDIUM
    field_name = "unit_price"
    line_number = 1
    message = "Price variance exceeds tolerance: $10.00"
    variance_amount = Decimal("100.00")
    is_resolved = False
