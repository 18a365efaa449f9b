"""
Exception and dashboard API schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from vendorspend.api.schemas.validation import ValidationExceptionResponse
from vendorspend.models.validation import ExceptionSeverity, ExceptionType


class ExceptionResolveRequest(BaseModel):
    """Request to resolve an exception."""
    resolution_notes: Optional[str] = Field(default=None, max_length=2000)


class ExceptionListResponse(BaseModel):
    """Exception list response."""
    exceptions: List[ValidationExceptionResponse]
    total: int
    skip: int
    limit: int


class PriorityQueueItemResponse(BaseModel):
    """One row of the operator queue."""
    exception_id: UUID
    priority: str
    severity: ExceptionSeverity
    exception_type: ExceptionType
    issue: str
    impact: Decimal
    vendor_party_id: Optional[UUID] = None
    vendor_name: str
    invoice_id: UUID
    invoice_number: Optional[str] = None
    detected_at: datetime
    due_date: datetime
    days_until_due: int
    is_urgent: bool


class PriorityQueueResponse(BaseModel):
    items: List[PriorityQueueItemResponse]
    generated_at: datetime


class DashboardStatsResponse(BaseModel):
    """Headline dashboard numbers."""
    total_invoices: int
    invoices_by_validation_status: Dict[str, int]
    open_exceptions: int
    open_exceptions_by_severity: Dict[str, int]
    potential_savings: Decimal
    pending_approvals: int
