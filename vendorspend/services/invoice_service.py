"""
Invoice reads and deletion.
"""

import logging
import uuid
from typing import Any, List, Optional, Tuple

from sqlalchemy import and_, delete, desc, func, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vendorspend.core.exceptions import NotFoundError
from vendorspend.models.approval import InvoiceApprovalHistory, InvoiceApprovalRequest
from vendorspend.models.extraction import DocumentExtractionData
from vendorspend.models.invoice import Invoice, InvoiceLineItem, InvoiceStatus, InvoiceValidationState
from vendorspend.models.validation import InvoiceValidation, ValidationException
from vendorspend.services.audit_service import AuditService

logger = logging.getLogger(__name__)


class InvoiceService:
    """Invoice lookups and cascading delete."""

    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_invoice(self, invoice_id: uuid.UUID) -> Invoice:
        result = await self.db.execute(
            select(Invoice)
            .options(
                selectinload(Invoice.line_items),
                selectinload(Invoice.vendor),
                selectinload(Invoice.customer),
            )
            .where(Invoice.id == invoice_id)
        )
        invoice = result.scalar_one_or_none()
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        return invoice

    async def list_invoices(
        self,
        status: Optional[InvoiceStatus] = None,
        validation_status: Optional[InvoiceValidationState] = None,
        vendor_party_id: Optional[uuid.UUID] = None,
        limit: int = 50,
        offset: int = 0,
    ) -> Tuple[List[Invoice], int]:
        conditions = []
        if status:
            conditions.append(Invoice.status == status)
        if validation_status:
            conditions.append(Invoice.validation_status == validation_status)
        if vendor_party_id:
            conditions.append(Invoice.vendor_party_id == vendor_party_id)

        query = select(Invoice).options(selectinload(Invoice.line_items), selectinload(Invoice.vendor))
        count_query = select(func.count(Invoice.id))
        if conditions:
            query = query.where(and_(*conditions))
            count_query = count_query.where(and_(*conditions))

        total = (await self.db.execute(count_query)).scalar()
        result = await self.db.execute(query.order_by(desc(Invoice.created_at)).offset(offset).limit(limit))
        return list(result.scalars().all()), total

    async def delete_invoice(self, invoice_id: uuid.UUID, user_id: Any = None) -> None:
        """
        Delete an invoice with its line items, validations, exceptions and
        approval requests in one transaction.

        Extraction records survive with their invoice link cleared.
        """
        invoice = await self.db.get(Invoice, invoice_id)
        if invoice is None:
            raise NotFoundError("Invoice", invoice_id)
        invoice_number = invoice.invoice_number

        try:
            request_ids = select(InvoiceApprovalRequest.id).where(InvoiceApprovalRequest.invoice_id == invoice_id)

            await self.db.execute(
                update(DocumentExtractionData)
                .where(DocumentExtractionData.invoice_id == invoice_id)
                .values(invoice_id=None)
            )
            await self.db.execute(
                delete(InvoiceApprovalHistory).where(InvoiceApprovalHistory.approval_request_id.in_(request_ids))
            )
            await self.db.execute(delete(InvoiceApprovalRequest).where(InvoiceApprovalRequest.invoice_id == invoice_id))
            await self.db.execute(delete(ValidationException).where(ValidationException.invoice_id == invoice_id))
            await self.db.execute(delete(InvoiceValidation).where(InvoiceValidation.invoice_id == invoice_id))
            await self.db.execute(delete(InvoiceLineItem).where(InvoiceLineItem.invoice_id == invoice_id))
            await self.db.execute(delete(Invoice).where(Invoice.id == invoice_id))

            await AuditService(self.db).record(
                "invoices", invoice_id, "DELETE", changed_by=user_id,
                payload={"invoice_number": invoice_number},
            )
            await self.db.commit()
            logger.info(f"Deleted invoice {invoice_number} ({invoice_id})")

        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to delete invoice {invoice_id}: {e}")
            raise
