"""
Contract and billable item API schemas.
"""

from datetime import date, datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vendorspend.models.contract import ContractStatus, VarianceType


class BillableItemBase(BaseModel):
    """Priced catalog entry fields."""
    item_code: Optional[str] = None
    description: Optional[str] = None
    list_price: Optional[Decimal] = Field(default=None, ge=0)
    contract_price: Optional[Decimal] = Field(default=None, ge=0)
    price_floor: Optional[Decimal] = Field(default=None, ge=0)
    price_ceiling: Optional[Decimal] = Field(default=None, ge=0)
    allowed_variance_type: VarianceType = VarianceType.ABSOLUTE
    allowed_variance_value: Decimal = Field(default=Decimal("0"), ge=0)
    currency: str = Field(default="USD", min_length=3, max_length=3)
    primary_uom: Optional[str] = None
    allowed_uoms: Optional[List[str]] = None
    uom_conversion_rules: Optional[Dict[str, float]] = None
    pricing_model_id: Optional[UUID] = None
    service_category_id: Optional[UUID] = None

    @field_validator("currency")
    @classmethod
    def upper_currency(cls, v: str) -> str:
        return v.upper()


class BillableItemCreate(BillableItemBase):
    """Schema for adding a billable item to a contract."""
    item_name: str = Field(min_length=1, max_length=255)


class BillableItemUpdate(BaseModel):
    """Partial billable item update."""
    item_name: Optional[str] = Field(default=None, min_length=1, max_length=255)
    item_code: Optional[str] = None
    description: Optional[str] = None
    list_price: Optional[Decimal] = Field(default=None, ge=0)
    contract_price: Optional[Decimal] = Field(default=None, ge=0)
    price_floor: Optional[Decimal] = Field(default=None, ge=0)
    price_ceiling: Optional[Decimal] = Field(default=None, ge=0)
    allowed_variance_type: Optional[VarianceType] = None
    allowed_variance_value: Optional[Decimal] = Field(default=None, ge=0)
    primary_uom: Optional[str] = None
    allowed_uoms: Optional[List[str]] = None
    uom_conversion_rules: Optional[Dict[str, float]] = None


class BillableItemResponse(BillableItemBase):
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    contract_id: UUID
    item_name: str
    uom_conversion_rules: Optional[Dict[str, Any]] = None
    created_at: Optional[datetime] = None


class ContractResponse(BaseModel):
    """Contract summary."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    contract_number: Optional[str] = None
    contract_title: str
    contract_type: Optional[str] = None
    effective_date: Optional[date] = None
    expiration_date: Optional[date] = None
    auto_renewal: bool
    currency: str
    status: ContractStatus
    parent_contract_id: Optional[UUID] = None
    source_document_id: Optional[UUID] = None
    created_at: Optional[datetime] = None


class ContractListResponse(BaseModel):
    contracts: List[ContractResponse]
    total: int
    skip: int
    limit: int
