"""
Contract maintenance: listing, guarded deletion and catalog edits.
"""

import logging
import uuid
from typing import Any, List, Optional, Tuple

from sqlalchemy import and_, delete, desc, func, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from vendorspend.api.schemas.contract import BillableItemCreate, BillableItemUpdate
from vendorspend.core.exceptions import ConflictError, NotFoundError, ValidationError
from vendorspend.models.contract import (
    BillableItem,
    Contract,
    ContractLocation,
    ContractParty,
    ContractStatus,
    PricingModel,
    PricingTier,
)
from vendorspend.models.extraction import DocumentExtractionData
from vendorspend.models.invoice import Invoice, InvoiceLineItem
from vendorspend.services.audit_service import AuditService
from vendorspend.services.pricing import check_price_band

logger = logging.getLogger(__name__)


class ContractService:
    """Contract and billable item operations."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_contract(self, contract_id: uuid.UUID) -> Contract:
        contract = await self.db.get(Contract, contract_id)
        if contract is None:
            raise NotFoundError("Contract", contract_id)
        return contract

    async def list_contracts(
        self,
        status: Optional[ContractStatus] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Contract], int]:
        query = select(Contract)
        count_query = select(func.count(Contract.id))
        if status:
            query = query.where(Contract.status == status)
            count_query = count_query.where(Contract.status == status)

        total = (await self.db.execute(count_query)).scalar()
        result = await self.db.execute(query.order_by(desc(Contract.created_at)).offset(offset).limit(limit))
        return list(result.scalars().all()), total

    async def delete_contract(self, contract_id: uuid.UUID, user_id: Any = None) -> None:
        """
        Delete a contract and its catalog.

        Refused while invoices or child contracts reference it.
        """
        contract = await self.get_contract(contract_id)

        invoice_count = (
            await self.db.execute(select(func.count(Invoice.id)).where(Invoice.contract_id == contract_id))
        ).scalar()
        if invoice_count:
            raise ConflictError(
                f"Contract is referenced by {invoice_count} invoices",
                details={"contract_id": str(contract_id), "invoice_count": invoice_count},
            )
        child_count = (
            await self.db.execute(select(func.count(Contract.id)).where(Contract.parent_contract_id == contract_id))
        ).scalar()
        if child_count:
            raise ConflictError(
                f"Contract has {child_count} child contracts",
                details={"contract_id": str(contract_id), "child_count": child_count},
            )

        item_ids = select(BillableItem.id).where(BillableItem.contract_id == contract_id)
        line_count = (
            await self.db.execute(
                select(func.count(InvoiceLineItem.id)).where(InvoiceLineItem.billable_item_id.in_(item_ids))
            )
        ).scalar()
        if line_count:
            raise ConflictError(
                f"Contract billable items are matched by {line_count} invoice lines",
                details={"contract_id": str(contract_id), "line_count": line_count},
            )

        contract_number = contract.contract_number
        try:
            model_ids = select(PricingModel.id).where(PricingModel.contract_id == contract_id)
            await self.db.execute(
                update(DocumentExtractionData)
                .where(DocumentExtractionData.contract_id == contract_id)
                .values(contract_id=None)
            )
            await self.db.execute(delete(BillableItem).where(BillableItem.contract_id == contract_id))
            await self.db.execute(delete(PricingTier).where(PricingTier.pricing_model_id.in_(model_ids)))
            await self.db.execute(delete(PricingModel).where(PricingModel.contract_id == contract_id))
            await self.db.execute(delete(ContractParty).where(ContractParty.contract_id == contract_id))
            await self.db.execute(delete(ContractLocation).where(ContractLocation.contract_id == contract_id))
            await self.db.execute(delete(Contract).where(Contract.id == contract_id))

            await AuditService(self.db).record(
                "contracts", contract_id, "DELETE", changed_by=user_id,
                payload={"contract_number": contract_number},
            )
            await self.db.commit()
            logger.info(f"Deleted contract {contract_number} ({contract_id})")

        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete contract {contract_id}: {e}")
            raise

    async def add_billable_item(
        self, contract_id: uuid.UUID, data: BillableItemCreate, user_id: Any = None
    ) -> BillableItem:
        """Add a billable item; its contract price must sit inside its floor/ceiling band."""
        await self.get_contract(contract_id)
        item = BillableItem(contract_id=contract_id, **data.model_dump())
        return await self._save_item(item, "CREATE", user_id)

    async def update_billable_item(
        self, contract_id: uuid.UUID, item_id: uuid.UUID, data: BillableItemUpdate, user_id: Any = None
    ) -> BillableItem:
        item = await self.db.get(BillableItem, item_id)
        if item is None or item.contract_id != contract_id:
            raise NotFoundError("Billable item", item_id)
        for column, value in data.model_dump(exclude_unset=True).items():
            setattr(item, column, value)
        return await self._save_item(item, "UPDATE", user_id)

    async def _save_item(self, item: BillableItem, action: str, user_id: Any) -> BillableItem:
        band_error = check_price_band(item)
        if band_error:
            error = ValidationError(
                band_error,
                code="PRICE_OUTSIDE_BAND",
                details={"item_name": item.item_name, "contract_id": str(item.contract_id)},
            )
            await self.db.rollback()
            raise error

        self.db.add(item)
        try:
            await self.db.flush()
            await AuditService(self.db).record(
                "billable_items", item.id, action, changed_by=user_id,
                payload={"item_name": item.item_name, "contract_price": str(item.contract_price)},
            )
            await self.db.commit()
        except IntegrityError as e:
            await self.db.rollback()
            raise ConflictError(
                f"A billable item named {item.item_name!r} already exists on this contract",
                details={"contract_id": str(item.contract_id)},
            ) from e

        await self.db.refresh(item)
        return item
