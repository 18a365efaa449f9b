"""
Contract and billable item API endpoints.
"""

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from vendorspend.api.schemas.contract import (
    BillableItemCreate,
    BillableItemResponse,
    BillableItemUpdate,
    ContractListResponse,
    ContractResponse,
)
from vendorspend.core.logging import get_logger
from vendorspend.db.session import get_db
from vendorspend.models.contract import ContractStatus
from vendorspend.services.auth_service import Principal, require_permission
from vendorspend.services.contract_service import ContractService

logger = get_logger(__name__)
router = APIRouter()


@router.get("/", response_model=ContractListResponse)
async def list_contracts(
    skip: int = Query(0, ge=0),
    limit: int = Query(50, ge=1, le=500),
    status_filter: Optional[ContractStatus] = Query(None, alias="status"),
    principal: Principal = Depends(require_permission("contracts:read")),
    db: AsyncSession = Depends(get_db),
):
    contracts, total = await ContractService(db).list_contracts(status=status_filter, limit=limit, offset=skip)
    return ContractListResponse(contracts=contracts, total=total, skip=skip, limit=limit)


@router.get("/{contract_id}", response_model=ContractResponse)
async def get_contract(
    contract_id: UUID,
    principal: Principal = Depends(require_permission("contracts:read")),
    db: AsyncSession = Depends(get_db),
):
    return await ContractService(db).get_contract(contract_id)


@router.delete("/{contract_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_contract(
    contract_id: UUID,
    principal: Principal = Depends(require_permission("contracts:delete")),
    db: AsyncSession = Depends(get_db),
):
    """Delete a contract. Refused with 409 while invoices still reference it."""
    await ContractService(db).delete_contract(contract_id, principal.user_id)
    logger.info(f"Contract {contract_id} deleted by {principal.user_id}")


@router.post(
    "/{contract_id}/billable-items",
    response_model=BillableItemResponse,
    status_code=status.HTTP_201_CREATED,
)
async def add_billable_item(
    contract_id: UUID,
    item: BillableItemCreate,
    principal: Principal = Depends(require_permission("contracts:update")),
    db: AsyncSession = Depends(get_db),
):
    """Add a priced item to a contract's catalog."""
    created = await ContractService(db).add_billable_item(contract_id, item, principal.user_id)
    logger.info(f"Billable item {created.item_name} added to contract {contract_id}")
    return created


@router.patch("/{contract_id}/billable-items/{item_id}", response_model=BillableItemResponse)
async def update_billable_item(
    contract_id: UUID,
    item_id: UUID,
    item: BillableItemUpdate,
    principal: Principal = Depends(require_permission("contracts:update")),
    db: AsyncSession = Depends(get_db),
):
    return await ContractService(db).update_billable_item(contract_id, item_id, item, principal.user_id)
