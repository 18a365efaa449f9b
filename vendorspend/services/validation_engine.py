"""
Invoice validation orchestrator.

A run loads the invoice with its governing contract and catalog, evaluates
the contract compliance rules, and records one InvoiceValidation row plus one
ValidationException per failed rule. Failed runs with material financial
impact open an approval request. Runs are append-only: validating the same
invoice again inserts a new row and leaves earlier runs untouched.
"""

import logging
import uuid
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Sequence

from sqlalchemy import and_, or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vendorspend.api.schemas.validation import AssistedException, AssistedValidationPayload
from vendorspend.core.clock import utcnow
from vendorspend.core.config import settings
from vendorspend.core.exceptions import NotFoundError, WorkflowError
from vendorspend.core.metrics import VALIDATION_EXCEPTIONS, VALIDATION_RUNS
from vendorspend.models.contract import BillableItem, Contract, ContractParty, PricingModel
from vendorspend.models.extraction import UNMAPPED_ENTITY_TYPE, DocumentExtractionData
from vendorspend.models.invoice import Invoice, InvoiceLineItem, InvoiceValidationState
from vendorspend.models.validation import (
    ExceptionSeverity,
    ExceptionType,
    InvoiceValidation,
    ValidationException,
    ValidationMethod,
    ValidationStatus,
)
from vendorspend.services.approval_service import ApprovalService, lowest_band_ceiling
from vendorspend.services.audit_service import AuditService
from vendorspend.services.pricing import expected_unit_price
from vendorspend.services.validation_rules import (
    INVOICE_LEVEL_RULES,
    RULES,
    RuleResult,
    RuleType,
    ValidationContext,
)

logger = logging.getLogger(__name__)

CENT = Decimal("0.01")


@dataclass(frozen=True)
class RuleProfile:
    """How a failed rule is reported."""
    exception_type: ExceptionType
    category: str
    field_name: str
    recommendation: str
    root_cause: str


RULE_PROFILES: Dict[RuleType, RuleProfile] = {
    RuleType.PRICE: RuleProfile(
        ExceptionType.PRICE_VARIANCE,
        "Pricing Validation",
        "unit_price",
        "Review pricing and request credit if applicable",
        "Invoice unit price differs from the contracted price",
    ),
    RuleType.QUANTITY: RuleProfile(
        ExceptionType.INVALID_QUANTITY,
        "Quantity Validation",
        "quantity",
        "Confirm the billed quantity with the vendor",
        "Invoice quantity is not a positive number",
    ),
    RuleType.UOM: RuleProfile(
        ExceptionType.UOM_MISMATCH,
        "Unit of Measure Validation",
        "uom",
        "Confirm the unit of measure with the vendor and apply the contract conversion",
        "Invoice unit of measure is not allowed by the contract",
    ),
    RuleType.DATE_RANGE: RuleProfile(
        ExceptionType.DATE_RANGE_INVALID,
        "Contract Compliance",
        "service_period",
        "Verify the service was delivered under an active contract term",
        "Service period falls outside the contract term",
    ),
    RuleType.VENDOR: RuleProfile(
        ExceptionType.VENDOR_MISMATCH,
        "Contract Compliance",
        "vendor_party_id",
        "Verify the invoicing vendor against the contract parties",
        "Invoice vendor is not the contracted vendor",
    ),
    RuleType.CURRENCY: RuleProfile(
        ExceptionType.CURRENCY_MISMATCH,
        "Contract Compliance",
        "currency",
        "Request a corrected invoice in the contract currency",
        "Invoice currency differs from the contract currency",
    ),
    RuleType.LOCATION: RuleProfile(
        ExceptionType.LOCATION_NOT_AUTHORIZED,
        "Contract Compliance",
        "location",
        "Confirm the service location is covered by the contract",
        "Service location is not covered by the contract",
    ),
    RuleType.DUPLICATE: RuleProfile(
        ExceptionType.DUPLICATE_INVOICE,
        "Duplicate Detection",
        "invoice_number",
        "Hold payment and confirm with the vendor whether this invoice was already billed",
        "Another invoice from this vendor has the same invoice number",
    ),
}

HARD_MISMATCH_RULES = {RuleType.VENDOR, RuleType.CURRENCY, RuleType.DUPLICATE}
MEDIUM_SEVERITY_RULES = {RuleType.UOM, RuleType.DATE_RANGE, RuleType.LOCATION}


@dataclass
class CandidateException:
    """A failed check before it is persisted."""
    exception_type: ExceptionType
    category: str
    severity: ExceptionSeverity
    message: str
    field_name: Optional[str] = None
    line_item: Any = None
    line_number: Optional[int] = None
    expected_value: Optional[str] = None
    actual_value: Optional[str] = None
    variance_amount: Optional[Decimal] = None
    recommendation: Optional[str] = None
    root_cause: Optional[str] = None


@dataclass
class EvaluationOutcome:
    """Everything a run produces before it is written."""
    rules_applied: int = 0
    exceptions: List[CandidateException] = field(default_factory=list)
    potential_savings: Decimal = Decimal("0")
    expected_net_amount: Optional[Decimal] = None

    @property
    def total_impact(self) -> Decimal:
        return sum((abs(e.variance_amount) for e in self.exceptions if e.variance_amount is not None), Decimal("0"))


def price_severity(
    impact: Decimal,
    high_threshold: Optional[Decimal] = None,
    low_threshold: Optional[Decimal] = None,
) -> ExceptionSeverity:
    """Severity of a price variance by the absolute size of its financial impact."""
    high_threshold = settings.HIGH_SEVERITY_VARIANCE_THRESHOLD if high_threshold is None else high_threshold
    low_threshold = settings.LOW_SEVERITY_VARIANCE_THRESHOLD if low_threshold is None else low_threshold
    impact = abs(impact)
    if impact > high_threshold:
        return ExceptionSeverity.HIGH
    if impact >= low_threshold:
        return ExceptionSeverity.MEDIUM
    return ExceptionSeverity.LOW


def rule_severity(rule_type: RuleType, impact: Optional[Decimal] = None) -> ExceptionSeverity:
    """Severity policy for a failed rule."""
    if rule_type in HARD_MISMATCH_RULES:
        return ExceptionSeverity.HIGH
    if rule_type == RuleType.PRICE:
        return price_severity(impact or Decimal("0"))
    if rule_type in MEDIUM_SEVERITY_RULES:
        return ExceptionSeverity.MEDIUM
    return ExceptionSeverity.LOW


def overall_status(exceptions: Iterable[Any]) -> ValidationStatus:
    """Failed on any High or Medium exception, Warning on Low only, else Passed."""
    severities = {e.severity for e in exceptions}
    if ExceptionSeverity.HIGH in severities or ExceptionSeverity.MEDIUM in severities:
        return ValidationStatus.FAILED
    if ExceptionSeverity.LOW in severities:
        return ValidationStatus.WARNING
    return ValidationStatus.PASSED


def _quantity(line_item: Any) -> Decimal:
    quantity = line_item.quantity if line_item is not None else None
    return Decimal(str(quantity)) if quantity is not None else Decimal("1")


def evaluate_invoice(
    invoice: Any,
    contract: Any = None,
    duplicate_invoice_ids: Sequence[Any] = (),
) -> EvaluationOutcome:
    """
    Run every applicable rule against an invoice already loaded in memory.

    Invoice-level rules run once; line-level rules run per line. Price
    exceptions carry their financial impact (unit variance times quantity)
    as the variance amount.
    """
    outcome = EvaluationOutcome()

    def apply(rule_type: RuleType, context: ValidationContext) -> RuleResult:
        outcome.rules_applied += 1
        result = RULES[rule_type](context)
        if result.passed:
            return result

        profile = RULE_PROFILES[rule_type]
        impact = None
        if rule_type == RuleType.PRICE and result.variance is not None:
            impact = (result.variance * _quantity(context.line_item)).quantize(CENT)
            if impact > 0:
                outcome.potential_savings += impact

        line_item = context.line_item
        outcome.exceptions.append(
            CandidateException(
                exception_type=profile.exception_type,
                category=profile.category,
                severity=rule_severity(rule_type, impact),
                message=result.message,
                field_name=profile.field_name,
                line_item=line_item,
                line_number=line_item.line_number if line_item is not None else None,
                expected_value=result.expected_value,
                actual_value=result.actual_value,
                variance_amount=impact,
                recommendation=profile.recommendation,
                root_cause=profile.root_cause,
            )
        )
        return result

    invoice_context = ValidationContext(
        invoice=invoice,
        contract=contract,
        duplicate_invoice_ids=list(duplicate_invoice_ids),
    )
    if contract is None:
        outcome.exceptions.append(
            CandidateException(
                exception_type=ExceptionType.CONTRACT_NOT_MATCHED,
                category="Contract Compliance",
                severity=ExceptionSeverity.HIGH,
                message="No governing contract found for invoice",
                field_name="contract_id",
                recommendation="Link the invoice to its governing contract before payment",
                root_cause="Invoice could not be matched to a contract",
            )
        )
        apply(RuleType.DUPLICATE, invoice_context)
    else:
        for rule_type in INVOICE_LEVEL_RULES:
            apply(rule_type, invoice_context)

    expected_net = Decimal("0")
    for line_item in invoice.line_items:
        billable_item = line_item.billable_item
        context = ValidationContext(
            invoice=invoice,
            contract=contract,
            line_item=line_item,
            billable_item=billable_item,
        )

        if billable_item is not None:
            apply(RuleType.PRICE, context)
            apply(RuleType.UOM, context)
            unit_price = expected_unit_price(billable_item, _quantity(line_item))
            if unit_price is not None:
                expected_net += unit_price * _quantity(line_item)
        else:
            expected_net += Decimal(str(line_item.extended_amount or 0))
            if contract is not None:
                outcome.exceptions.append(
                    CandidateException(
                        exception_type=ExceptionType.ITEM_NOT_MATCHED,
                        category="Item Matching",
                        severity=ExceptionSeverity.MEDIUM,
                        message=f"No matching billable item found for line {line_item.line_number}",
                        field_name="billable_item_id",
                        line_item=line_item,
                        line_number=line_item.line_number,
                        actual_value=(line_item.description or "")[:255] or None,
                        recommendation="Map the line to a contract billable item or dispute the charge",
                        root_cause="Invoice line does not correspond to a contracted item",
                    )
                )

        apply(RuleType.QUANTITY, context)
        if contract is not None:
            apply(RuleType.DATE_RANGE, context)

    if not invoice.line_items and contract is not None:
        apply(RuleType.DATE_RANGE, invoice_context)

    if contract is not None and invoice.line_items:
        outcome.expected_net_amount = expected_net.quantize(CENT)
    elif invoice.net_service_amount is not None:
        outcome.expected_net_amount = Decimal(str(invoice.net_service_amount))
    return outcome


def _assisted_candidate(finding: AssistedException, lines_by_number: Dict[int, Any]) -> CandidateException:
    try:
        exception_type = ExceptionType(finding.exception_type)
    except ValueError:
        exception_type = ExceptionType.ASSISTED_FINDING
    try:
        severity = ExceptionSeverity((finding.severity or "Medium").capitalize())
    except ValueError:
        severity = ExceptionSeverity.MEDIUM

    line_item = lines_by_number.get(finding.line_number) if finding.line_number is not None else None
    return CandidateException(
        exception_type=exception_type,
        category=finding.category or "Assisted Review",
        severity=severity,
        message=finding.message,
        field_name=finding.field_name,
        line_item=line_item,
        line_number=finding.line_number,
        expected_value=finding.expected_value,
        actual_value=finding.actual_value,
        variance_amount=(
            finding.financial_impact_amount.quantize(CENT)
            if finding.financial_impact_amount is not None
            else None
        ),
        recommendation=finding.recommendation,
        root_cause=finding.root_cause,
    )


class ValidationEngine:
    """Runs and records invoice validations."""

    def __init__(self, db: AsyncSession):
        self.db = db
        self.approval_service = ApprovalService(db)
        self.audit_service = AuditService(db)

    async def validate_invoice_deterministic(self, invoice_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> InvoiceValidation:
        """Rule-only validation run."""
        return await self._run(invoice_id, user_id, None)

    async def validate_invoice(
        self,
        invoice_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        validation_payload: Optional[AssistedValidationPayload] = None,
    ) -> InvoiceValidation:
        """Validation run with an optional assisted judgment merged into the rule results."""
        return await self._run(invoice_id, user_id, validation_payload)

    async def get_validation(self, validation_id: uuid.UUID) -> InvoiceValidation:
        result = await self.db.execute(
            select(InvoiceValidation)
            .options(selectinload(InvoiceValidation.exceptions))
            .where(InvoiceValidation.id == validation_id)
            .execution_options(populate_existing=True)
        )
        validation = result.scalar_one_or_none()
        if validation is None:
            raise NotFoundError("Validation", validation_id)
        return validation

    async def list_validations(self, invoice_id: uuid.UUID) -> List[InvoiceValidation]:
        """Validation history of an invoice, most recent first."""
        if await self.db.get(Invoice, invoice_id) is None:
            raise NotFoundError("Invoice", invoice_id)
        result = await self.db.execute(
            select(InvoiceValidation)
            .options(selectinload(InvoiceValidation.exceptions))
            .where(InvoiceValidation.invoice_id == invoice_id)
            .order_by(InvoiceValidation.validation_date.desc())
        )
        return list(result.scalars().all())

    async def _run(
        self,
        invoice_id: uuid.UUID,
        user_id: Optional[uuid.UUID],
        payload: Optional[AssistedValidationPayload],
    ) -> InvoiceValidation:
        invoice = await self._load_invoice(invoice_id)

        try:
            duplicates = await self._duplicate_invoice_ids(invoice)
            outcome = evaluate_invoice(invoice, invoice.contract, duplicates)

            method = ValidationMethod.DETERMINISTIC
            confidence = 1.0
            assisted_summary = None
            if payload is not None:
                method = ValidationMethod.ASSISTED
                assisted = payload.validation_result
                lines_by_number = {line.line_number: line for line in invoice.line_items}
                outcome.exceptions.extend(
                    _assisted_candidate(finding, lines_by_number) for finding in assisted.exceptions
                )
                confidence = assisted.confidence_score if assisted.confidence_score is not None else confidence
                assisted_summary = payload.model_dump(mode="json", exclude={"validation_result": {"exceptions"}})

            levels = await self.approval_service.get_active_levels()
            status = overall_status(outcome.exceptions)
            gross = Decimal(str(invoice.gross_amount or 0))
            ceiling = lowest_band_ceiling(levels)
            auto_approved = status == ValidationStatus.PASSED and ceiling is not None and gross <= ceiling

            validation = InvoiceValidation(
                invoice_id=invoice.id,
                validation_date=utcnow(),
                overall_status=status,
                rules_applied_count=outcome.rules_applied,
                potential_savings=outcome.potential_savings.quantize(CENT),
                auto_approved=auto_approved,
                validation_method=method,
                validated_by=user_id,
                confidence_score=confidence,
                expected_net_amount=outcome.expected_net_amount,
                actual_net_amount=invoice.net_service_amount,
                assisted_summary=assisted_summary,
            )
            self.db.add(validation)
            await self.db.flush()

            evidence = await self._extraction_evidence(invoice)
            for candidate in outcome.exceptions:
                self.db.add(self._to_exception(candidate, validation, invoice, evidence))

            if status == ValidationStatus.FAILED and self._is_material(outcome):
                try:
                    await self.approval_service.create_approval_request(
                        invoice,
                        user_id,
                        validation_id=validation.id,
                        levels=levels,
                        comment=f"Validation failed with {len(outcome.exceptions)} exceptions",
                    )
                except WorkflowError as e:
                    logger.warning(f"Approval request not created for invoice {invoice.id}: {e.message}")

            invoice.validation_status = InvoiceValidationState(status.value)
            await self.db.commit()

        except Exception as e:
            await self.db.rollback()
            logger.error(f"Validation of invoice {invoice_id} failed: {e}")
            await self.audit_service.log_error(e, "invoice_validation", invoice_id=invoice_id, user_id=user_id)
            await self._mark_error(invoice_id)
            raise

        VALIDATION_RUNS.labels(status=status.value).inc()
        for candidate in outcome.exceptions:
            VALIDATION_EXCEPTIONS.labels(severity=candidate.severity.value).inc()
        logger.info(
            f"Validated invoice {invoice.invoice_number}: {status.value}, "
            f"{len(outcome.exceptions)} exceptions, {outcome.rules_applied} rules applied"
        )
        return await self.get_validation(validation.id)

    @staticmethod
    def _is_material(outcome: EvaluationOutcome) -> bool:
        """Any High exception, or enough total financial impact."""
        if any(e.severity == ExceptionSeverity.HIGH for e in outcome.exceptions):
            return True
        return outcome.total_impact >= settings.MATERIAL_IMPACT_THRESHOLD

    async def _load_invoice(self, invoice_id: uuid.UUID) -> Invoice:
        result = await self.db.execute(
            select(Invoice)
            .options(
                selectinload(Invoice.vendor),
                selectinload(Invoice.contract).selectinload(Contract.parties).selectinload(ContractParty.party),
                selectinload(Invoice.contract).selectinload(Contract.locations),
                selectinload(Invoice.line_items)
                .selectinload(InvoiceLineItem.billable_item)
                .selectinload(BillableItem.pricing_model)
                .selectinload(PricingModel.tiers),
            )
            .where(Invoice.id == invoice_id)
            .execution_options(populate_existing=True)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    async def _duplicate_invoice_ids(self, invoice: Invoice) -> List[uuid.UUID]:
        result = await self.db.execute(
            select(Invoice.id).where(
                and_(
                    Invoice.vendor_party_id == invoice.vendor_party_id,
                    Invoice.invoice_number == invoice.invoice_number,
                    Invoice.id != invoice.id,
                )
            )
        )
        return list(result.scalars().all())

    async def _extraction_evidence(self, invoice: Invoice) -> List[DocumentExtractionData]:
        conditions = [DocumentExtractionData.invoice_id == invoice.id]
        if invoice.contract_id is not None:
            conditions.append(DocumentExtractionData.contract_id == invoice.contract_id)
        result = await self.db.execute(
            select(DocumentExtractionData)
            .where(and_(or_(*conditions), DocumentExtractionData.entity_type != UNMAPPED_ENTITY_TYPE))
            .order_by(DocumentExtractionData.created_at)
        )
        return list(result.scalars().all())

    @staticmethod
    def _to_exception(
        candidate: CandidateException,
        validation: InvoiceValidation,
        invoice: Invoice,
        evidence: Sequence[DocumentExtractionData],
    ) -> ValidationException:
        contract_evidence = invoice_evidence = None
        if candidate.field_name:
            for record in evidence:
                if candidate.field_name not in record.field_name:
                    continue
                if contract_evidence is None and record.contract_id is not None and record.contract_id == invoice.contract_id:
                    contract_evidence = record.id
                if invoice_evidence is None and record.invoice_id == invoice.id:
                    invoice_evidence = record.id

        return ValidationException(
            validation_id=validation.id,
            invoice_id=invoice.id,
            line_item_id=candidate.line_item.id if candidate.line_item is not None else None,
            exception_type=candidate.exception_type,
            exception_category=candidate.category,
            severity=candidate.severity,
            field_name=candidate.field_name,
            line_number=candidate.line_number,
            message=candidate.message,
            recommendation=candidate.recommendation,
            root_cause=candidate.root_cause,
            expected_value=candidate.expected_value[:255] if candidate.expected_value else None,
            actual_value=candidate.actual_value[:255] if candidate.actual_value else None,
            variance_amount=candidate.variance_amount,
            is_resolved=False,
            contract_extraction_id=contract_evidence,
            invoice_extraction_id=invoice_evidence,
        )

    async def _mark_error(self, invoice_id: uuid.UUID):
        invoice = await self.db.get(Invoice, invoice_id)
        if invoice is None:
            return
        invoice.validation_status = InvoiceValidationState.ERROR
        await self.db.commit()
