"""
Approval workflow API schemas.
"""

from datetime import datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

from vendorspend.models.approval import ApprovalDecision, ApprovalStatus


class ApprovalDecisionRequest(BaseModel):
    """Approver decision on a request."""
    decision: ApprovalDecision
    approved_amount: Optional[Decimal] = Field(default=None, ge=0)
    rejection_reason: Optional[str] = None
    comments: Optional[str] = None


class ApprovalLevelResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    level_name: str
    level_sequence: int
    min_amount: Decimal
    max_amount: Optional[Decimal] = None
    required_role: str
    escalation_days: int


class ApprovalHistoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    approval_level_id: Optional[UUID] = None
    status_from: Optional[ApprovalStatus] = None
    status_to: ApprovalStatus
    changed_by: Optional[UUID] = None
    amount_change: Optional[Decimal] = None
    comments: Optional[str] = None
    changed_at: datetime


class ApprovalRequestResponse(BaseModel):
    """Approval request with its level and history."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_id: UUID
    validation_id: Optional[UUID] = None
    current_level: Optional[ApprovalLevelResponse] = None
    current_status: ApprovalStatus
    assigned_to_user_id: Optional[UUID] = None
    assigned_to_role: Optional[str] = None
    assigned_date: Optional[datetime] = None
    required_by_date: Optional[datetime] = None
    decision: Optional[ApprovalDecision] = None
    decision_by: Optional[UUID] = None
    decision_date: Optional[datetime] = None
    approved_amount: Optional[Decimal] = None
    rejection_reason: Optional[str] = None
    comments: Optional[str] = None
    escalation_count: int
    history: List[ApprovalHistoryResponse] = []


class ApprovalListResponse(BaseModel):
    approvals: List[ApprovalRequestResponse]
    total: int
    skip: int
    limit: int


class EscalationResponse(BaseModel):
    """Result of an overdue sweep."""
    escalated: List[UUID]
    count: int
