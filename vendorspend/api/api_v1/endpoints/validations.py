"""
Invoice validation API endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from vendorspend.api.schemas.validation import (
    ValidationListResponse,
    ValidationRequest,
    ValidationResponse,
)
from vendorspend.core.logging import get_logger
from vendorspend.db.session import get_db
from vendorspend.services.auth_service import Principal, require_permission
from vendorspend.services.validation_engine import ValidationEngine

logger = get_logger(__name__)
router = APIRouter()


@router.post("/", response_model=ValidationResponse, status_code=status.HTTP_201_CREATED)
async def validate_invoice(
    request: ValidationRequest,
    principal: Principal = Depends(require_permission("invoices:update")),
    db: AsyncSession = Depends(get_db),
):
    """
    Run a validation of an invoice against its matched contract.

    Every call records a new validation run; earlier runs and their
    exceptions are kept. With ``use_deterministic`` only the contract
    rules run; otherwise an assisted payload, when sent, is merged into
    the rule findings.
    """
    engine = ValidationEngine(db)
    if request.use_deterministic:
        validation = await engine.validate_invoice_deterministic(request.invoice_id, principal.user_id)
    else:
        validation = await engine.validate_invoice(
            request.invoice_id, principal.user_id, request.validation_payload
        )

    logger.info(
        f"Invoice {request.invoice_id} validated by {principal.user_id}: "
        f"{validation.overall_status.value} with {len(validation.exceptions)} exceptions"
    )
    return validation


@router.get("/invoice/{invoice_id}", response_model=ValidationListResponse)
async def list_invoice_validations(
    invoice_id: UUID,
    principal: Principal = Depends(require_permission("validations:view")),
    db: AsyncSession = Depends(get_db),
):
    """Validation history of an invoice, newest first."""
    validations = await ValidationEngine(db).list_validations(invoice_id)
    return ValidationListResponse(
        invoice_id=invoice_id,
        validations=validations,
        total=len(validations),
    )


@router.get("/{validation_id}", response_model=ValidationResponse)
async def get_validation(
    validation_id: UUID,
    principal: Principal = Depends(require_permission("validations:view")),
    db: AsyncSession = Depends(get_db),
):
    return await ValidationEngine(db).get_validation(validation_id)
