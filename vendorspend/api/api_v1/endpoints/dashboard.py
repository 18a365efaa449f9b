"""
Dashboard API endpoints.
"""

from dataclasses import asdict

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from vendorspend.api.schemas.exception import (
    DashboardStatsResponse,
    PriorityQueueItemResponse,
    PriorityQueueResponse,
)
from vendorspend.core.clock import utcnow
from vendorspend.core.logging import get_logger
from vendorspend.db.session import get_db
from vendorspend.services.auth_service import Principal, require_permission
from vendorspend.services.exception_service import ExceptionService

logger = get_logger(__name__)
router = APIRouter()


@router.get("/priority-queue", response_model=PriorityQueueResponse)
async def get_priority_queue(
    principal: Principal = Depends(require_permission("dashboard:view")),
    db: AsyncSession = Depends(get_db),
):
    """
    Top unresolved exceptions, most severe and most expensive first.

    Each row carries its SLA due date and an urgency flag.
    """
    now = utcnow()
    items = await ExceptionService(db).get_priority_queue(now=now)
    return PriorityQueueResponse(
        items=[PriorityQueueItemResponse(**asdict(item)) for item in items],
        generated_at=now,
    )


@router.get("/stats", response_model=DashboardStatsResponse)
async def get_dashboard_stats(
    principal: Principal = Depends(require_permission("dashboard:view")),
    db: AsyncSession = Depends(get_db),
):
    stats = await ExceptionService(db).get_dashboard_stats()
    return DashboardStatsResponse(**stats)
