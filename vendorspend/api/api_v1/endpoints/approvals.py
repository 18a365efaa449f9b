"""
Approval workflow API endpoints.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vendorspend.api.schemas.approval import (
    ApprovalDecisionRequest,
    ApprovalListResponse,
    ApprovalRequestResponse,
    EscalationResponse,
)
from vendorspend.core.logging import get_logger
from vendorspend.db.session import get_db
from vendorspend.models.approval import ApprovalStatus
from vendorspend.services.approval_service import ApprovalService
from vendorspend.services.auth_service import Principal, get_current_principal, require_permission

logger = get_logger(__name__)
router = APIRouter()


@router.get("/", response_model=ApprovalListResponse)
async def list_approvals(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    status_filter: Optional[ApprovalStatus] = Query(None, alias="status", description="Filter by status"),
    assigned_role: Optional[str] = Query(None, description="Filter by assigned role"),
    invoice_id: Optional[UUID] = Query(None, description="Filter by invoice"),
    principal: Principal = Depends(require_permission("approvals:view")),
    db: AsyncSession = Depends(get_db),
):
    """List approval requests, newest first."""
    requests, total = await ApprovalService(db).list_requests(
        status=status_filter,
        assigned_role=assigned_role,
        invoice_id=invoice_id,
        limit=limit,
        offset=skip,
    )
    return ApprovalListResponse(approvals=requests, total=total, skip=skip, limit=limit)


@router.post("/escalate-overdue", response_model=EscalationResponse)
async def escalate_overdue(
    principal: Principal = Depends(require_permission("approvals:escalate")),
    db: AsyncSession = Depends(get_db),
):
    """Escalate every Pending request past its required-by date."""
    escalated = await ApprovalService(db).check_and_escalate_overdue()
    logger.info(f"Overdue sweep by {principal.user_id} escalated {len(escalated)} requests")
    return EscalationResponse(escalated=escalated, count=len(escalated))


@router.get("/{request_id}", response_model=ApprovalRequestResponse)
async def get_approval(
    request_id: UUID,
    principal: Principal = Depends(require_permission("approvals:view")),
    db: AsyncSession = Depends(get_db),
):
    return await ApprovalService(db).get_request(request_id)


@router.patch("/{request_id}", response_model=ApprovalRequestResponse)
async def decide_approval(
    request_id: UUID,
    request: ApprovalDecisionRequest,
    principal: Principal = Depends(get_current_principal),
    db: AsyncSession = Depends(get_db),
):
    """
    Apply an approver decision.

    The capability required depends on the decision (``approvals:approve``,
    ``approvals:reject``, ``approvals:escalate`` or ``approvals:dispute``)
    and the request must be assigned to the caller or one of their roles.
    """
    return await ApprovalService(db).apply_decision(
        request_id,
        principal,
        request.decision,
        approved_amount=request.approved_amount,
        rejection_reason=request.rejection_reason,
        comments=request.comments,
    )
