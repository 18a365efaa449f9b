"""
Validation API schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from vendorspend.models.validation import (
    ExceptionSeverity,
    ExceptionType,
    ValidationMethod,
    ValidationStatus,
)


class AssistedException(BaseModel):
    """Finding reported by an assisted (non-deterministic) scorer."""
    model_config = ConfigDict(extra="allow")

    exception_type: str
    category: Optional[str] = None
    severity: Optional[str] = None
    field_name: Optional[str] = None
    line_number: Optional[int] = None
    expected_value: Optional[str] = None
    actual_value: Optional[str] = None
    financial_impact_amount: Optional[Decimal] = None
    root_cause: Optional[str] = None
    message: str
    recommendation: Optional[str] = None


class AssistedFinancialSummary(BaseModel):
    model_config = ConfigDict(extra="allow")

    expected_net_amount: Optional[Decimal] = None
    actual_net_amount: Optional[Decimal] = None
    variance_amount: Optional[Decimal] = None
    potential_savings: Optional[Decimal] = None


class AssistedValidationResult(BaseModel):
    model_config = ConfigDict(extra="allow")

    overall_status: Optional[str] = None
    confidence_score: Optional[float] = Field(default=None, ge=0, le=1)
    exceptions: List[AssistedException] = Field(default_factory=list)
    financial_summary: Optional[AssistedFinancialSummary] = None


class AssistedValidationPayload(BaseModel):
    """Pre-computed judgment merged with the rule results."""
    model_config = ConfigDict(extra="allow")

    validation_result: AssistedValidationResult = Field(default_factory=AssistedValidationResult)


class ValidationRequest(BaseModel):
    """Request to run a validation on an invoice."""
    invoice_id: UUID
    use_deterministic: bool = False
    validation_payload: Optional[AssistedValidationPayload] = None


class ValidationExceptionResponse(BaseModel):
    """Validation exception as returned by the API."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    validation_id: UUID
    invoice_id: UUID
    line_item_id: Optional[UUID] = None
    exception_type: ExceptionType
    exception_category: str
    severity: ExceptionSeverity
    field_name: Optional[str] = None
    line_number: Optional[int] = None
    message: str
    recommendation: Optional[str] = None
    root_cause: Optional[str] = None
    expected_value: Optional[str] = None
    actual_value: Optional[str] = None
    variance_amount: Optional[Decimal] = None
    is_resolved: bool
    resolved_by: Optional[UUID] = None
    resolved_date: Optional[datetime] = None
    resolution_notes: Optional[str] = None
    contract_extraction_id: Optional[UUID] = None
    invoice_extraction_id: Optional[UUID] = None
    created_at: Optional[datetime] = None


class ValidationResponse(BaseModel):
    """One validation run with its exceptions."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_id: UUID
    validation_date: datetime
    overall_status: ValidationStatus
    rules_applied_count: int
    potential_savings: Decimal
    auto_approved: bool
    validation_method: ValidationMethod
    validated_by: Optional[UUID] = None
    confidence_score: Optional[float] = None
    expected_net_amount: Optional[Decimal] = None
    actual_net_amount: Optional[Decimal] = None
    assisted_summary: Optional[Dict[str, Any]] = None
    exceptions: List[ValidationExceptionResponse] = Field(default_factory=list)


class ValidationListResponse(BaseModel):
    """Validation history of an invoice, newest first."""
    invoice_id: UUID
    validations: List[ValidationResponse]
    total: int
