"""
Invoice API schemas.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from vendorspend.models.invoice import InvoiceStatus, InvoiceValidationState


class InvoiceLineItemResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    line_number: int
    description: Optional[str] = None
    quantity: Optional[Decimal] = None
    uom: Optional[str] = None
    unit_price: Optional[Decimal] = None
    extended_amount: Optional[Decimal] = None
    service_period_start: Optional[date] = None
    service_period_end: Optional[date] = None
    billable_item_id: Optional[UUID] = None
    gl_account: Optional[str] = None
    department: Optional[str] = None
    project: Optional[str] = None
    cost_center: Optional[str] = None


class InvoiceResponse(BaseModel):
    """Normalized invoice with its lines."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    invoice_number: str
    invoice_date: Optional[date] = None
    due_date: Optional[date] = None
    service_period_start: Optional[date] = None
    service_period_end: Optional[date] = None
    vendor_party_id: UUID
    customer_party_id: Optional[UUID] = None
    contract_id: Optional[UUID] = None
    net_service_amount: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    shipping_amount: Optional[Decimal] = None
    fuel_surcharge: Optional[Decimal] = None
    misc_charges: Optional[Decimal] = None
    gross_amount: Decimal
    currency: str
    status: InvoiceStatus
    validation_status: InvoiceValidationState
    source_document_id: Optional[UUID] = None
    po_number: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    line_items: List[InvoiceLineItemResponse] = []


class InvoiceListResponse(BaseModel):
    """Invoice list response."""
    invoices: List[InvoiceResponse]
    total: int
    skip: int
    limit: int
