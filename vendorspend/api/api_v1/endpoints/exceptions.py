"""
Exception management API endpoints.

Exceptions are created by validation runs and only ever resolved by an
operator through this API.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from vendorspend.api.schemas.exception import ExceptionListResponse, ExceptionResolveRequest
from vendorspend.api.schemas.validation import ValidationExceptionResponse
from vendorspend.core.logging import get_logger
from vendorspend.db.session import get_db
from vendorspend.models.validation import ExceptionSeverity, ExceptionType
from vendorspend.services.auth_service import Principal, require_permission
from vendorspend.services.exception_service import ExceptionService

logger = get_logger(__name__)
router = APIRouter()


@router.get("/", response_model=ExceptionListResponse)
async def list_exceptions(
    invoice_id: Optional[UUID] = Query(None, description="Filter by invoice ID"),
    severity: Optional[ExceptionSeverity] = Query(None, description="Filter by severity"),
    exception_type: Optional[ExceptionType] = Query(None, description="Filter by exception type"),
    resolved: Optional[bool] = Query(None, description="Filter by resolution state"),
    limit: int = Query(50, ge=1, le=1000, description="Number of results to return"),
    offset: int = Query(0, ge=0, description="Number of results to skip"),
    principal: Principal = Depends(require_permission("exceptions:view")),
    db: AsyncSession = Depends(get_db),
):
    """List exceptions with optional filtering and pagination."""
    exceptions, total = await ExceptionService(db).list_exceptions(
        invoice_id=invoice_id,
        severity=severity,
        exception_type=exception_type,
        resolved=resolved,
        limit=limit,
        offset=offset,
    )
    logger.info(f"Listed {len(exceptions)} exceptions (total: {total})")
    return ExceptionListResponse(exceptions=exceptions, total=total, skip=offset, limit=limit)


@router.get("/{exception_id}", response_model=ValidationExceptionResponse)
async def get_exception(
    exception_id: UUID,
    principal: Principal = Depends(require_permission("exceptions:view")),
    db: AsyncSession = Depends(get_db),
):
    return await ExceptionService(db).get_exception(exception_id)


@router.patch("/{exception_id}", response_model=ValidationExceptionResponse)
async def resolve_exception(
    exception_id: UUID,
    request: ExceptionResolveRequest,
    principal: Principal = Depends(require_permission("exceptions:resolve")),
    db: AsyncSession = Depends(get_db),
):
    """Mark an exception resolved with optional notes."""
    exception = await ExceptionService(db).resolve_exception(
        exception_id, principal.user_id, request.resolution_notes
    )
    logger.info(f"Exception {exception_id} resolved by {principal.user_id}")
    return exception
