"""
Invoice API endpoints.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vendorspend.api.schemas.invoice import InvoiceListResponse, InvoiceResponse
from vendorspend.core.logging import get_logger
from vendorspend.db.session import get_db
from vendorspend.models.invoice import InvoiceStatus, InvoiceValidationState
from vendorspend.services.auth_service import Principal, require_permission
from vendorspend.services.invoice_service import InvoiceService

logger = get_logger(__name__)
router = APIRouter()


@router.get("/", response_model=InvoiceListResponse)
async def list_invoices(
    skip: int = Query(0, ge=0, description="Number of records to skip"),
    limit: int = Query(50, ge=1, le=500, description="Number of records to return"),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status", description="Filter by workflow status"),
    validation_status: Optional[InvoiceValidationState] = Query(None, description="Filter by validation status"),
    vendor_party_id: Optional[UUID] = Query(None, description="Filter by vendor"),
    principal: Principal = Depends(require_permission("invoices:read")),
    db: AsyncSession = Depends(get_db),
):
    """List invoices with optional filtering and pagination."""
    invoices, total = await InvoiceService(db).list_invoices(
        status=status_filter,
        validation_status=validation_status,
        vendor_party_id=vendor_party_id,
        limit=limit,
        offset=skip,
    )
    return InvoiceListResponse(invoices=invoices, total=total, skip=skip, limit=limit)


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: UUID,
    principal: Principal = Depends(require_permission("invoices:read")),
    db: AsyncSession = Depends(get_db),
):
    """Get a normalized invoice with its line items."""
    return await InvoiceService(db).get_invoice(invoice_id)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: UUID,
    principal: Principal = Depends(require_permission("invoices:delete")),
    db: AsyncSession = Depends(get_db),
):
    """
    Delete an invoice together with its validations, exceptions, line items
    and approval requests.
    """
    await InvoiceService(db).delete_invoice(invoice_id, principal.user_id)
    logger.info(f"Invoice {invoice_id} deleted by {principal.user_id}")
