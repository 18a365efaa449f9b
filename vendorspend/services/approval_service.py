"""
Tiered invoice approval workflow.

A request starts Pending at the level whose amount band contains the
invoice gross amount. Approve and Reject are terminal. Escalate moves the
request to the next level and keeps it Pending; at the top level it becomes
Escalated and needs manual intervention. Dispute puts the request on a
Disputed hold that can still be approved or rejected. Every transition
appends a history row.
"""

import logging
import uuid
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, List, Optional, Sequence, Tuple

from sqlalchemy import and_, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vendorspend.core.clock import as_utc, utcnow
from vendorspend.core.exceptions import (
    AuthorizationError,
    NotFoundError,
    ValidationError,
    WorkflowError,
)
from vendorspend.core.metrics import APPROVAL_DECISIONS
from vendorspend.models.approval import (
    ApprovalDecision,
    ApprovalLevel,
    ApprovalStatus,
    InvoiceApprovalHistory,
    InvoiceApprovalRequest,
    TERMINAL_APPROVAL_STATUSES,
)
from vendorspend.models.invoice import Invoice, InvoiceStatus

logger = logging.getLogger(__name__)

SUPER_ADMIN_ROLE = "Super Admin"

DECISION_PERMISSIONS = {
    ApprovalDecision.APPROVE: "approvals:approve",
    ApprovalDecision.REJECT: "approvals:reject",
    ApprovalDecision.ESCALATE: "approvals:escalate",
    ApprovalDecision.DISPUTE: "approvals:dispute",
}


def resolve_approval_level(levels: Sequence[Any], amount: Decimal) -> Optional[Any]:
    """
    Pick the approval level for an amount.

    The level whose band contains the amount wins, highest sequence first
    when bands overlap. An amount that falls in a gap between bands goes to
    the highest level whose minimum it reaches.
    """
    active = [level for level in levels if level.is_active]
    by_sequence = sorted(active, key=lambda level: level.level_sequence, reverse=True)

    for level in by_sequence:
        if Decimal(str(level.min_amount)) <= amount and (
            level.max_amount is None or amount <= Decimal(str(level.max_amount))
        ):
            return level

    for level in by_sequence:
        if Decimal(str(level.min_amount)) <= amount:
            return level
    return None


def lowest_band_ceiling(levels: Sequence[Any]) -> Optional[Decimal]:
    """Upper bound of the lowest active approval band, None when unbounded or missing."""
    active = [level for level in levels if level.is_active]
    if not active:
        return None
    lowest = min(active, key=lambda level: level.level_sequence)
    return Decimal(str(lowest.max_amount)) if lowest.max_amount is not None else None


class ApprovalService:
    """Approval request lifecycle."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_active_levels(self) -> List[ApprovalLevel]:
        result = await self.db.execute(
            select(ApprovalLevel)
            .where(ApprovalLevel.is_active.is_(True))
            .order_by(ApprovalLevel.level_sequence)
        )
        return list(result.scalars().all())

    async def create_approval_request(
        self,
        invoice: Invoice,
        user_id: Optional[uuid.UUID],
        validation_id: Optional[uuid.UUID] = None,
        levels: Optional[Sequence[ApprovalLevel]] = None,
        comment: Optional[str] = None,
    ) -> InvoiceApprovalRequest:
        """
        Stage a Pending request at the level for the invoice gross amount.

        The caller owns the transaction.
        """
        amount = Decimal(str(invoice.gross_amount or 0))
        if levels is None:
            levels = await self.get_active_levels()
        level = resolve_approval_level(levels, amount)
        if level is None:
            raise WorkflowError(
                "No approval level found for this amount",
                details={"invoice_id": str(invoice.id), "amount": str(amount)},
            )

        now = utcnow()
        request = InvoiceApprovalRequest(
            invoice_id=invoice.id,
            validation_id=validation_id,
            current_level_id=level.id,
            current_status=ApprovalStatus.PENDING,
            assigned_to_role=level.required_role,
            assigned_date=now,
            required_by_date=now + timedelta(days=level.escalation_days),
            escalation_count=0,
        )
        request.current_level = level
        self.db.add(request)
        await self.db.flush()

        self.db.add(
            InvoiceApprovalHistory(
                approval_request_id=request.id,
                approval_level_id=level.id,
                status_from=None,
                status_to=ApprovalStatus.PENDING,
                changed_by=user_id,
                comments=comment or f"Approval request created for {amount} at {level.level_name}",
                changed_at=now,
            )
        )
        logger.info(
            f"Approval request {request.id} created for invoice {invoice.id} at level {level.level_name}"
        )
        return request

    async def get_request(self, request_id: uuid.UUID) -> InvoiceApprovalRequest:
        result = await self.db.execute(
            select(InvoiceApprovalRequest)
            .options(
                selectinload(InvoiceApprovalRequest.current_level),
                selectinload(InvoiceApprovalRequest.history),
                selectinload(InvoiceApprovalRequest.invoice),
            )
            .where(InvoiceApprovalRequest.id == request_id)
        )
        request = result.scalar_one_or_none()
        if request is None:
            raise NotFoundError("Approval request", request_id)
        return request

    async def list_requests(
        self,
        status: Optional[ApprovalStatus] = None,
        assigned_role: Optional[str] = None,
        invoice_id: Optional[uuid.UUID] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[InvoiceApprovalRequest], int]:
        conditions = []
        if status:
            conditions.append(InvoiceApprovalRequest.current_status == status)
        if assigned_role:
            conditions.append(InvoiceApprovalRequest.assigned_to_role == assigned_role)
        if invoice_id:
            conditions.append(InvoiceApprovalRequest.invoice_id == invoice_id)

        query = select(InvoiceApprovalRequest).options(
            selectinload(InvoiceApprovalRequest.current_level),
            selectinload(InvoiceApprovalRequest.history),
        )
        count_query = select(func.count(InvoiceApprovalRequest.id))
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar()
        result = await self.db.execute(
            query.order_by(desc(InvoiceApprovalRequest.created_at)).offset(offset).limit(limit)
        )
        return list(result.scalars().all()), total

    def authorize_decision(self, request: InvoiceApprovalRequest, principal: Any, decision: ApprovalDecision):
        """Require the decision capability and an assignment match."""
        permission = DECISION_PERMISSIONS[decision]
        if not principal.has_permission(permission):
            raise AuthorizationError(
                f"Missing permission {permission}",
                details={"required_permission": permission},
            )

        if SUPER_ADMIN_ROLE in principal.roles:
            return
        if request.assigned_to_user_id is None and not request.assigned_to_role:
            return
        if request.assigned_to_user_id is not None and request.assigned_to_user_id == principal.user_id:
            return
        if request.assigned_to_role and request.assigned_to_role in principal.roles:
            return

        raise AuthorizationError(
            "Approval request is not assigned to this user or any of their roles",
            details={
                "assigned_to_role": request.assigned_to_role,
                "assigned_to_user_id": str(request.assigned_to_user_id) if request.assigned_to_user_id else None,
            },
        )

    async def apply_decision(
        self,
        request_id: uuid.UUID,
        principal: Any,
        decision: ApprovalDecision,
        approved_amount: Optional[Decimal] = None,
        rejection_reason: Optional[str] = None,
        comments: Optional[str] = None,
    ) -> InvoiceApprovalRequest:
        """Apply an approver decision and record it in the history."""
        request = await self.get_request(request_id)
        if request.current_status in TERMINAL_APPROVAL_STATUSES:
            raise WorkflowError(
                f"Approval request is already {request.current_status.value}",
                details={"approval_request_id": str(request_id)},
            )

        self.authorize_decision(request, principal, decision)

        if decision == ApprovalDecision.REJECT and not (rejection_reason or "").strip():
            raise ValidationError("Rejection reason is required", code="REJECTION_REASON_REQUIRED")

        now = utcnow()
        try:
            request.decision = decision
            request.decision_by = principal.user_id
            request.decision_date = now
            if comments is not None:
                request.comments = comments

            if decision == ApprovalDecision.ESCALATE:
                await self._escalate(request, principal.user_id, now, comments)
            else:
                status_from = request.current_status
                amount_change = None

                if decision == ApprovalDecision.APPROVE:
                    if approved_amount is None:
                        approved_amount = Decimal(str(request.invoice.gross_amount or 0))
                    previous_amount = Decimal(str(request.approved_amount or 0))
                    amount_change = approved_amount - previous_amount
                    request.approved_amount = approved_amount
                    request.current_status = ApprovalStatus.APPROVED
                    request.invoice.status = InvoiceStatus.APPROVED
                elif decision == ApprovalDecision.REJECT:
                    request.rejection_reason = rejection_reason
                    request.current_status = ApprovalStatus.REJECTED
                    request.invoice.status = InvoiceStatus.REJECTED
                else:
                    request.current_status = ApprovalStatus.DISPUTED

                request.history.append(
                    InvoiceApprovalHistory(
                        approval_level_id=request.current_level_id,
                        status_from=status_from,
                        status_to=request.current_status,
                        changed_by=principal.user_id,
                        amount_change=amount_change,
                        comments=comments or rejection_reason,
                        changed_at=now,
                    )
                )

            await self.db.commit()
            APPROVAL_DECISIONS.labels(decision=decision.value).inc()
            logger.info(
                f"Approval request {request_id}: {decision.value} by {principal.user_id} "
                f"-> {request.current_status.value}"
            )
            return await self.get_request(request_id)
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to apply {decision.value} to approval request {request_id}: {e}")
            raise

    async def _escalate(
        self,
        request: InvoiceApprovalRequest,
        user_id: Optional[uuid.UUID],
        now: datetime,
        comments: Optional[str] = None,
    ):
        current_sequence = request.current_level.level_sequence
        result = await self.db.execute(
            select(ApprovalLevel)
            .where(ApprovalLevel.is_active.is_(True), ApprovalLevel.level_sequence > current_sequence)
            .order_by(ApprovalLevel.level_sequence)
            .limit(1)
        )
        next_level = result.scalar_one_or_none()
        status_from = request.current_status
        request.escalation_count = (request.escalation_count or 0) + 1

        if next_level is None:
            request.current_status = ApprovalStatus.ESCALATED
            note = "Escalated to highest level - requires manual intervention"
        else:
            request.current_level_id = next_level.id
            request.current_level = next_level
            request.current_status = ApprovalStatus.PENDING
            request.assigned_to_role = next_level.required_role
            request.assigned_to_user_id = None
            request.assigned_date = now
            request.required_by_date = now + timedelta(days=next_level.escalation_days)
            note = f"Escalated to {next_level.level_name}"

        request.history.append(
            InvoiceApprovalHistory(
                approval_level_id=request.current_level_id,
                status_from=status_from,
                status_to=request.current_status,
                changed_by=user_id,
                comments=f"{note}: {comments}" if comments else note,
                changed_at=now,
            )
        )

    async def escalate(self, request_id: uuid.UUID, user_id: Optional[uuid.UUID]) -> InvoiceApprovalRequest:
        """Escalate without an approver decision (SLA breach)."""
        request = await self.get_request(request_id)
        if request.current_status in TERMINAL_APPROVAL_STATUSES:
            raise WorkflowError(f"Approval request is already {request.current_status.value}")
        try:
            await self._escalate(request, user_id, utcnow())
            await self.db.commit()
            return request
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to escalate approval request {request_id}: {e}")
            raise

    async def check_and_escalate_overdue(self, now: Optional[datetime] = None) -> List[uuid.UUID]:
        """Escalate every Pending request past its required-by date."""
        now = as_utc(now) or utcnow()
        result = await self.db.execute(
            select(InvoiceApprovalRequest.id, InvoiceApprovalRequest.required_by_date).where(
                InvoiceApprovalRequest.current_status == ApprovalStatus.PENDING,
                InvoiceApprovalRequest.required_by_date.isnot(None),
            )
        )
        overdue = [row[0] for row in result.all() if as_utc(row[1]) < now]

        for request_id in overdue:
            await self.escalate(request_id, user_id=None)
        if overdue:
            logger.info(f"Escalated {len(overdue)} overdue approval requests")
        return overdue
