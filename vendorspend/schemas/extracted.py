"""
Typed views over loosely-structured extraction payloads.

Known fields are parsed into typed attributes. Anything else the extractor
emits is kept in ``model_extra`` so normalization can store it as an
unmapped extraction record instead of silently dropping it.
"""

from decimal import Decimal
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from vendorspend.services.extraction_validation import parse_decimal


class ExtractedModel(BaseModel):
    """Base for extraction payload models: extras are allowed and retained."""

    model_config = ConfigDict(extra="allow", populate_by_name=True)

    def unmapped_fields(self, prefix: str = "") -> Dict[str, Any]:
        """Flatten unknown fields of this model and its nested models."""
        found: Dict[str, Any] = {}
        for key, value in (self.model_extra or {}).items():
            found[f"{prefix}{key}"] = value
        for name in type(self).model_fields:
            value = getattr(self, name)
            if isinstance(value, ExtractedModel):
                found.update(value.unmapped_fields(f"{prefix}{name}."))
            elif isinstance(value, list):
                for i, item in enumerate(value):
                    if isinstance(item, ExtractedModel):
                        found.update(item.unmapped_fields(f"{prefix}{name}[{i}]."))
        return found


def _money(value: Any) -> Optional[Decimal]:
    if value is None or value == "":
        return None
    parsed = parse_decimal(value)
    if parsed is None:
        raise ValueError(f"not a valid amount: {value!r}")
    return parsed


# Contract extraction payload

class ExtractedParty(ExtractedModel):
    party_id: Optional[str] = None
    party_type: str = "vendor"
    legal_name: str
    trading_name: Optional[str] = None
    tax_id: Optional[str] = None
    duns_number: Optional[str] = None
    npi_number: Optional[str] = None
    cage_code: Optional[str] = None
    external_ids: Optional[Dict[str, Any]] = None
    primary_contact_email: Optional[str] = None
    primary_contact_phone: Optional[str] = None


class ExtractedAutoRenewal(ExtractedModel):
    enabled: Optional[bool] = None
    renewal_period: Optional[str] = None
    notice_period: Optional[str] = None


class ExtractedLocation(ExtractedModel):
    location_id: str
    location_name: str
    location_type: Optional[str] = None
    address: Optional[str] = None


class ExtractedContract(ExtractedModel):
    contract_id: Optional[str] = None
    contract_title: str
    contract_type: Optional[str] = None
    external_ids: Optional[Dict[str, Any]] = None
    effective_date: Optional[str] = None
    expiration_date: Optional[str] = None
    currency: Optional[str] = None
    governing_law: Optional[str] = None
    termination_clause: Optional[str] = None
    termination_rights: Optional[str] = None
    auto_renewal: Optional[ExtractedAutoRenewal] = None
    locations: List[ExtractedLocation] = Field(default_factory=list)
    contract_status: Optional[str] = None
    parent_contract_id: Optional[str] = None


class ExtractedVariance(ExtractedModel):
    type: Optional[str] = None
    value: Optional[Decimal] = None

    @field_validator("value", mode="before")
    @classmethod
    def parse_money(cls, v):
        return _money(v)


class ExtractedPricingDetails(ExtractedModel):
    list_price: Optional[Decimal] = None
    unit_cost: Optional[Decimal] = None
    contractual_price_floor: Optional[Decimal] = None
    price_ceiling: Optional[Decimal] = None
    rate_type: Optional[str] = None
    allowed_variance: Optional[ExtractedVariance] = None
    currency: Optional[str] = None
    unit_of_measure: Optional[str] = None
    allowed_uoms: Optional[List[str]] = None
    uom_conversion_rules: Optional[Dict[str, Any]] = None

    @field_validator("list_price", "unit_cost", "contractual_price_floor", "price_ceiling", mode="before")
    @classmethod
    def parse_money(cls, v):
        return _money(v)


class ExtractedBillableItem(ExtractedModel):
    item_id: Optional[str] = None
    item_name: str
    external_ids: Optional[Dict[str, Any]] = None
    pricing_model_id: Optional[str] = None
    pricing_details: ExtractedPricingDetails = Field(default_factory=ExtractedPricingDetails)


class ExtractedTier(ExtractedModel):
    min_value: Decimal
    max_value: Optional[Decimal] = None
    rate: Decimal

    @field_validator("min_value", "max_value", "rate", mode="before")
    @classmethod
    def parse_money(cls, v):
        return _money(v)


class ExtractedPricingModel(ExtractedModel):
    model_id: Optional[str] = None
    model_name: str
    model_type: str = "flat"
    base_rate: Optional[Decimal] = None
    currency: Optional[str] = None
    tiers: List[ExtractedTier] = Field(default_factory=list)

    @field_validator("base_rate", mode="before")
    @classmethod
    def parse_money(cls, v):
        return _money(v)


class ExtractedContractDocument(ExtractedModel):
    """Fields extracted from a contract document."""

    parties: List[ExtractedParty] = Field(default_factory=list)
    contracts: ExtractedContract
    billable_items: List[ExtractedBillableItem] = Field(default_factory=list)
    pricing_models: List[ExtractedPricingModel] = Field(default_factory=list)


# Invoice extraction payload

class ExtractedServicePeriod(ExtractedModel):
    start_date: Optional[str] = None
    end_date: Optional[str] = None


class ExtractedInvoiceHeader(ExtractedModel):
    invoice_id: Optional[str] = None
    invoice_number: Optional[str] = None
    vendor_party_id: Optional[str] = None
    customer_party_id: Optional[str] = None
    invoice_date: Optional[str] = None
    due_date: Optional[str] = None
    total_amount: Optional[Decimal] = None
    gross_amount: Optional[Decimal] = None
    net_amount: Optional[Decimal] = None
    tax_amount: Optional[Decimal] = None
    shipping_amount: Optional[Decimal] = None
    fuel_surcharge: Optional[Decimal] = None
    misc_charges: Optional[Decimal] = None
    currency: Optional[str] = None
    service_period: Optional[ExtractedServicePeriod] = None
    external_ids: Optional[Dict[str, Any]] = None

    @field_validator(
        "total_amount", "gross_amount", "net_amount", "tax_amount",
        "shipping_amount", "fuel_surcharge", "misc_charges",
        mode="before",
    )
    @classmethod
    def parse_money(cls, v):
        return _money(v)


class ExtractedLineItem(ExtractedModel):
    line_number: int
    description: Optional[str] = None
    quantity: Optional[Decimal] = None
    uom: Optional[str] = None
    unit_price: Optional[Decimal] = None
    extended_amount: Optional[Decimal] = None
    billable_item_id: Optional[str] = None
    item_code: Optional[str] = None
    service_period: Optional[ExtractedServicePeriod] = None
    gl_account: Optional[str] = None
    department: Optional[str] = None
    project: Optional[str] = None
    cost_center: Optional[str] = None

    @field_validator("quantity", "unit_price", "extended_amount", mode="before")
    @classmethod
    def parse_money(cls, v):
        return _money(v)


class ExtractedInvoiceData(ExtractedModel):
    invoice_header: ExtractedInvoiceHeader
    line_items: List[ExtractedLineItem] = Field(default_factory=list)


class ExtractedContractContext(ExtractedModel):
    primary_contract_id: Optional[str] = None


class ExtractedValidationRequest(ExtractedModel):
    request_id: Optional[str] = None
    invoice_data: ExtractedInvoiceData
    contract_context: Optional[ExtractedContractContext] = None


class ExtractedInvoiceDocument(ExtractedModel):
    """Fields extracted from an invoice document."""

    validation_request: ExtractedValidationRequest
