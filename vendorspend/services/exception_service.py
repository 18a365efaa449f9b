"""
Exception management: listing, resolution and the operator priority queue.
"""

import logging
import math
import uuid
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Tuple

from sqlalchemy import and_, desc, func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vendorspend.core.clock import as_utc, utcnow
from vendorspend.core.config import settings
from vendorspend.core.exceptions import NotFoundError, ValidationError
from vendorspend.models.approval import ApprovalStatus, InvoiceApprovalRequest
from vendorspend.models.invoice import Invoice
from vendorspend.models.validation import (
    ExceptionSeverity,
    ExceptionType,
    ValidationException,
)

logger = logging.getLogger(__name__)


@dataclass
class PriorityQueueItem:
    """One row of the operator exception queue."""
    exception_id: Any
    priority: str
    severity: ExceptionSeverity
    exception_type: ExceptionType
    issue: str
    impact: Decimal
    vendor_party_id: Any
    vendor_name: str
    invoice_id: Any
    invoice_number: Optional[str]
    detected_at: datetime
    due_date: datetime
    days_until_due: int
    is_urgent: bool


def _severity_rank(severity: Any) -> int:
    return ExceptionSeverity(severity).rank


def _abs_variance(exception: Any) -> Decimal:
    if exception.variance_amount is None:
        return Decimal("0")
    return abs(Decimal(str(exception.variance_amount)))


def prioritize_exceptions(
    exceptions: Iterable[Any],
    now: Optional[datetime] = None,
    sla_days: Optional[int] = None,
    urgent_window_days: Optional[int] = None,
    limit: Optional[int] = None,
) -> List[PriorityQueueItem]:
    """
    Project unresolved exceptions into the priority queue.

    Ordering is severity (High, Medium, Low) then absolute variance,
    largest first. The due date is the detecting validation run's date plus
    the SLA; an item is urgent when it is due within the urgent window.
    """
    now = as_utc(now) or utcnow()
    sla = timedelta(days=settings.EXCEPTION_SLA_DAYS if sla_days is None else sla_days)
    urgent_window = timedelta(
        days=settings.URGENT_WINDOW_DAYS if urgent_window_days is None else urgent_window_days
    )
    limit = settings.PRIORITY_QUEUE_SIZE if limit is None else limit

    unresolved = [exc for exc in exceptions if not exc.is_resolved]
    ordered = sorted(unresolved, key=lambda exc: (_severity_rank(exc.severity), -_abs_variance(exc)))

    queue = []
    for exc in ordered[:limit]:
        detected_at = as_utc(exc.validation.validation_date)
        due_date = detected_at + sla
        remaining = due_date - now
        invoice = exc.invoice
        vendor = invoice.vendor if invoice is not None else None
        severity = ExceptionSeverity(exc.severity)

        queue.append(
            PriorityQueueItem(
                exception_id=exc.id,
                priority=severity.value.lower(),
                severity=severity,
                exception_type=ExceptionType(exc.exception_type),
                issue=exc.message,
                impact=Decimal(str(exc.variance_amount)) if exc.variance_amount is not None else Decimal("0"),
                vendor_party_id=vendor.id if vendor is not None else None,
                vendor_name=vendor.legal_name if vendor is not None else "Unknown Vendor",
                invoice_id=invoice.id if invoice is not None else None,
                invoice_number=invoice.invoice_number if invoice is not None else None,
                detected_at=detected_at,
                due_date=due_date,
                days_until_due=math.ceil(remaining.total_seconds() / 86400),
                is_urgent=remaining <= urgent_window,
            )
        )
    return queue


class ExceptionService:
    """Exception queries and operator resolution."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_exception(self, exception_id: uuid.UUID) -> ValidationException:
        """Get exception by ID."""
        result = await self.db.execute(
            select(ValidationException)
            .options(
                selectinload(ValidationException.validation),
                selectinload(ValidationException.invoice).selectinload(Invoice.vendor),
            )
            .where(ValidationException.id == exception_id)
        )
        exception = result.scalar_one_or_none()
        if exception is None:
            raise NotFoundError("Exception", exception_id)
        return exception

    async def list_exceptions(
        self,
        invoice_id: Optional[uuid.UUID] = None,
        severity: Optional[ExceptionSeverity] = None,
        exception_type: Optional[ExceptionType] = None,
        resolved: Optional[bool] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[ValidationException], int]:
        """List exceptions with filtering and pagination."""
        conditions = []
        if invoice_id:
            conditions.append(ValidationException.invoice_id == invoice_id)
        if severity:
            conditions.append(ValidationException.severity == severity)
        if exception_type:
            conditions.append(ValidationException.exception_type == exception_type)
        if resolved is not None:
            conditions.append(ValidationException.is_resolved == resolved)

        query = select(ValidationException).options(
            selectinload(ValidationException.validation),
            selectinload(ValidationException.invoice).selectinload(Invoice.vendor),
        )
        count_query = select(func.count(ValidationException.id))
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar()
        query = query.order_by(desc(ValidationException.created_at)).offset(offset).limit(limit)
        result = await self.db.execute(query)
        return list(result.scalars().all()), total

    async def resolve_exception(
        self,
        exception_id: uuid.UUID,
        user_id: uuid.UUID,
        resolution_notes: Optional[str] = None,
    ) -> ValidationException:
        """Mark an exception resolved. Exceptions are only ever resolved by an operator."""
        exception = await self.get_exception(exception_id)
        if exception.is_resolved:
            raise ValidationError(
                "Exception is already resolved",
                code="EXCEPTION_ALREADY_RESOLVED",
                details={"exception_id": str(exception_id)},
            )

        try:
            exception.is_resolved = True
            exception.resolved_by = user_id
            exception.resolved_date = utcnow()
            exception.resolution_notes = resolution_notes
            await self.db.commit()
            logger.info(f"Exception {exception_id} resolved by {user_id}")
            return exception
        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to resolve exception {exception_id}: {e}")
            raise

    async def get_priority_queue(self, now: Optional[datetime] = None) -> List[PriorityQueueItem]:
        """Top unresolved exceptions for the operator dashboard."""
        result = await self.db.execute(
            select(ValidationException)
            .options(
                selectinload(ValidationException.validation),
                selectinload(ValidationException.invoice).selectinload(Invoice.vendor),
            )
            .where(ValidationException.is_resolved.is_(False))
        )
        return prioritize_exceptions(result.scalars().all(), now=now)

    async def get_dashboard_stats(self) -> Dict[str, Any]:
        """Headline counts for the dashboard."""
        severity_rows = await self.db.execute(
            select(ValidationException.severity, func.count(ValidationException.id))
            .where(ValidationException.is_resolved.is_(False))
            .group_by(ValidationException.severity)
        )
        by_severity = {ExceptionSeverity(row[0]).value: row[1] for row in severity_rows.all()}

        invoice_count = (await self.db.execute(select(func.count(Invoice.id)))).scalar()
        status_rows = await self.db.execute(
            select(Invoice.validation_status, func.count(Invoice.id)).group_by(Invoice.validation_status)
        )
        invoices_by_status = {row[0].value if hasattr(row[0], "value") else row[0]: row[1] for row in status_rows.all()}

        savings = (
            await self.db.execute(
                select(func.coalesce(func.sum(ValidationException.variance_amount), 0)).where(
                    ValidationException.is_resolved.is_(False),
                    ValidationException.exception_type == ExceptionType.PRICE_VARIANCE,
                    ValidationException.variance_amount > 0,
                )
            )
        ).scalar()
        pending_approvals = (
            await self.db.execute(
                select(func.count(InvoiceApprovalRequest.id)).where(
                    InvoiceApprovalRequest.current_status.in_(
                        [ApprovalStatus.PENDING, ApprovalStatus.ESCALATED, ApprovalStatus.DISPUTED]
                    )
                )
            )
        ).scalar()

        return {
            "total_invoices": invoice_count,
            "invoices_by_validation_status": invoices_by_status,
            "open_exceptions": sum(by_severity.values()),
            "open_exceptions_by_severity": by_severity,
            "potential_savings": Decimal(str(savings)),
            "pending_approvals": pending_approvals,
        }
