"""
Normalization of extracted document fields into Contract and Invoice records.

Extraction payloads are parsed into the typed models of
``vendorspend.schemas.extracted``. Parties are resolved by id, registry
identifier or name before a new one is created. Re-running normalization on
a re-extracted document updates the records it created earlier instead of
duplicating them. Fields the typed models do not know are kept as
``unmapped`` extraction records.
"""

import logging
import re
import uuid
from datetime import date
from decimal import Decimal
from typing import Any, Dict, Iterable, List, Optional, Union

from pydantic import ValidationError as PydanticValidationError
from sqlalchemy import and_, delete, func, or_, select, update
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.orm import selectinload

from vendorspend.core.config import settings
from vendorspend.core.exceptions import ValidationError
from vendorspend.models.contract import (
    BillableItem,
    Contract,
    ContractLocation,
    ContractParty,
    ContractPartyRole,
    ContractStatus,
    Location,
    PricingModel,
    PricingModelType,
    PricingTier,
    VarianceType,
)
from vendorspend.models.extraction import UNMAPPED_ENTITY_TYPE, DocumentExtractionData
from vendorspend.models.invoice import Invoice, InvoiceLineItem
from vendorspend.models.party import Party, PartyType
from vendorspend.models.validation import ValidationException
from vendorspend.schemas.extracted import (
    ExtractedBillableItem,
    ExtractedContract,
    ExtractedContractDocument,
    ExtractedInvoiceDocument,
    ExtractedLineItem,
    ExtractedParty,
    ExtractedPricingModel,
)
from vendorspend.services.extraction_validation import parse_date
from vendorspend.services.pricing import check_price_band

logger = logging.getLogger(__name__)

MAX_PARTY_NAME_LENGTH = 200
UNKNOWN_VENDOR_NAME = "Unknown Vendor"

_PARTY_TYPES = {
    "vendor": PartyType.VENDOR,
    "supplier": PartyType.VENDOR,
    "customer": PartyType.CUSTOMER,
    "buyer": PartyType.CUSTOMER,
}

_PARTY_ROLES = {
    PartyType.VENDOR: ContractPartyRole.VENDOR,
    PartyType.CUSTOMER: ContractPartyRole.CUSTOMER,
}


def _as_uuid(value: Any) -> Optional[uuid.UUID]:
    """Parse a UUID, returning None for anything that is not one."""
    if value is None:
        return None
    if isinstance(value, uuid.UUID):
        return value
    try:
        return uuid.UUID(str(value).strip())
    except ValueError:
        return None


def _leading_int(value: Optional[str]) -> Optional[int]:
    """Pull the leading number out of strings like ``"12 months"``."""
    if not value:
        return None
    match = re.search(r"\d+", str(value))
    return int(match.group()) if match else None


def clean_party_name(value: Optional[str]) -> str:
    """
    Reduce an extracted party name to something storable.

    Extractors sometimes return a block of document text instead of a name;
    only its first line is kept and the result is capped in length.
    """
    name = (value or "").strip()
    if len(name) > MAX_PARTY_NAME_LENGTH:
        name = name.split("\n")[0].strip()
    return name[:MAX_PARTY_NAME_LENGTH]


def _contract_status(value: Optional[str]) -> ContractStatus:
    if not value:
        return ContractStatus.ACTIVE
    for status in ContractStatus:
        if status.value.lower() == value.strip().lower():
            return status
    return ContractStatus.ACTIVE


def _variance_type(value: Optional[str]) -> VarianceType:
    if value and value.strip().lower() in ("percentage", "percent", "%"):
        return VarianceType.PERCENTAGE
    return VarianceType.ABSOLUTE


def _pricing_model_type(value: Optional[str]) -> PricingModelType:
    for model_type in PricingModelType:
        if value and model_type.value == value.strip().lower():
            return model_type
    return PricingModelType.FLAT


class NormalizationService:
    """Maps extraction payloads onto canonical entities."""

    def __init__(self, db: AsyncSession):
        self.db = db

    # Parties

    async def resolve_party(
        self,
        legal_name: Optional[str],
        party_type: PartyType,
        user_id: Any,
        party_id: Any = None,
        tax_id: Optional[str] = None,
        duns_number: Optional[str] = None,
        create: bool = True,
        **attributes: Any,
    ) -> Optional[Party]:
        """
        Find a party by id, tax id, DUNS number or name; create it when absent.

        Blank identifiers on an existing party are filled from the extraction.
        """
        party = None
        party_uuid = _as_uuid(party_id)
        if party_uuid is not None:
            party = await self.db.get(Party, party_uuid)

        if party is None and tax_id:
            party = await self._first_party(Party.tax_id == tax_id)
        if party is None and duns_number:
            party = await self._first_party(Party.duns_number == duns_number)

        name = clean_party_name(legal_name)
        if party is None and name:
            lowered = name.lower()
            party = await self._first_party(
                or_(func.lower(Party.legal_name) == lowered, func.lower(Party.trading_name) == lowered)
            )
            if party is None:
                pattern = f"%{lowered}%"
                party = await self._first_party(
                    or_(func.lower(Party.legal_name).like(pattern), func.lower(Party.trading_name).like(pattern))
                )

        if party is None:
            if not create:
                return None
            party = Party(
                legal_name=name or UNKNOWN_VENDOR_NAME,
                party_type=party_type,
                tax_id=tax_id,
                duns_number=duns_number,
                created_by=user_id,
                updated_by=user_id,
                **{k: v for k, v in attributes.items() if v is not None},
            )
            self.db.add(party)
            await self.db.flush()
            logger.info(f"Created {party_type.value} party {party.legal_name[:100]} ({party.id})")
            return party

        filled = False
        for column, value in dict(attributes, tax_id=tax_id, duns_number=duns_number).items():
            if value is not None and getattr(party, column) is None:
                setattr(party, column, value)
                filled = True
        if filled:
            party.updated_by = user_id
        return party

    async def _first_party(self, condition) -> Optional[Party]:
        result = await self.db.execute(select(Party).where(condition).order_by(Party.created_at).limit(1))
        return result.scalar_one_or_none()

    async def _resolve_extracted_party(self, extracted: ExtractedParty, user_id: Any) -> Party:
        party_type = _PARTY_TYPES.get((extracted.party_type or "").strip().lower(), PartyType.OTHER)
        return await self.resolve_party(
            extracted.legal_name,
            party_type,
            user_id,
            party_id=extracted.party_id,
            tax_id=extracted.tax_id,
            duns_number=extracted.duns_number,
            trading_name=extracted.trading_name,
            npi_number=extracted.npi_number,
            cage_code=extracted.cage_code,
            external_ids=extracted.external_ids,
            email=extracted.primary_contact_email,
            phone=extracted.primary_contact_phone,
        )

    # Contracts

    async def normalize_contract_data(
        self,
        extracted: Union[Dict[str, Any], ExtractedContractDocument],
        document_id: Any,
        user_id: Any,
    ) -> uuid.UUID:
        """Create or update the contract described by a contract extraction."""
        payload = self._parse(ExtractedContractDocument, extracted)
        document_id = _as_uuid(document_id)

        try:
            contract = await self._upsert_contract(payload.contracts, document_id, user_id)

            for extracted_party in payload.parties:
                party = await self._resolve_extracted_party(extracted_party, user_id)
                role = _PARTY_ROLES.get(party.party_type, ContractPartyRole.GUARANTOR)
                await self._link_party(contract, party, role)

            await self._link_locations(contract, payload.contracts)
            pricing_models = await self._upsert_pricing_models(contract, payload.pricing_models)
            for item in payload.billable_items:
                await self._upsert_billable_item(contract, item, pricing_models)

            if document_id is not None:
                await self._link_extraction_records(document_id, contract_id=contract.id)
                await self._store_unmapped(document_id, payload.unmapped_fields(), contract_id=contract.id)

            await self.db.commit()
            logger.info(f"Normalized contract {contract.id} from document {document_id}")
            return contract.id

        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to normalize contract from document {document_id}: {e}")
            raise

    async def _upsert_contract(
        self, data: ExtractedContract, document_id: Optional[uuid.UUID], user_id: Any
    ) -> Contract:
        contract = None
        contract_uuid = _as_uuid(data.contract_id)
        if contract_uuid is not None:
            contract = await self.db.get(Contract, contract_uuid)
        if contract is None and data.contract_id and contract_uuid is None:
            result = await self.db.execute(
                select(Contract).where(Contract.contract_number == data.contract_id).limit(1)
            )
            contract = result.scalar_one_or_none()
        if contract is None and document_id is not None:
            result = await self.db.execute(
                select(Contract).where(Contract.source_document_id == document_id).limit(1)
            )
            contract = result.scalar_one_or_none()

        effective_date = parse_date(data.effective_date)
        expiration_date = parse_date(data.expiration_date)
        if effective_date and expiration_date and expiration_date < effective_date:
            raise ValidationError(
                f"Contract expiration date {expiration_date} is before effective date {effective_date}",
                code="INVALID_CONTRACT_TERM",
            )

        legal_terms = {
            key: value
            for key, value in {
                "governing_law": data.governing_law,
                "termination_clause": data.termination_clause,
                "termination_rights": data.termination_rights,
            }.items()
            if value
        }
        renewal = data.auto_renewal
        values = dict(
            contract_title=data.contract_title,
            contract_type=data.contract_type,
            effective_date=effective_date,
            expiration_date=expiration_date,
            auto_renewal=bool(renewal and renewal.enabled),
            renewal_period_months=_leading_int(renewal.renewal_period) if renewal else None,
            notice_period_days=_leading_int(renewal.notice_period) if renewal else None,
            currency=(data.currency or settings.DEFAULT_CURRENCY).upper(),
            legal_terms=legal_terms or None,
            external_ids=data.external_ids,
            parent_contract_id=_as_uuid(data.parent_contract_id),
            updated_by=user_id,
        )

        if contract is None:
            contract = Contract(
                contract_number=data.contract_id if contract_uuid is None else None,
                status=_contract_status(data.contract_status),
                source_document_id=document_id,
                created_by=user_id,
                **values,
            )
            self.db.add(contract)
        else:
            for column, value in values.items():
                if value is not None:
                    setattr(contract, column, value)
            if data.contract_status:
                contract.status = _contract_status(data.contract_status)
            if contract.source_document_id is None:
                contract.source_document_id = document_id

        await self.db.flush()
        return contract

    async def _link_party(self, contract: Contract, party: Party, role: ContractPartyRole):
        result = await self.db.execute(
            select(ContractParty).where(
                and_(
                    ContractParty.contract_id == contract.id,
                    ContractParty.party_id == party.id,
                    ContractParty.role == role.value,
                )
            )
        )
        if result.scalar_one_or_none() is None:
            self.db.add(ContractParty(contract_id=contract.id, party_id=party.id, role=role.value))
            await self.db.flush()

    async def _link_locations(self, contract: Contract, data: ExtractedContract):
        for extracted in data.locations:
            result = await self.db.execute(
                select(Location).where(Location.location_code == extracted.location_id).limit(1)
            )
            location = result.scalar_one_or_none()
            if location is None:
                location = Location(
                    location_code=extracted.location_id,
                    location_name=extracted.location_name,
                    location_type=extracted.location_type,
                    address_line=extracted.address,
                )
                self.db.add(location)
                await self.db.flush()

            result = await self.db.execute(
                select(ContractLocation).where(
                    and_(
                        ContractLocation.contract_id == contract.id,
                        ContractLocation.location_id == location.id,
                    )
                )
            )
            if result.scalar_one_or_none() is None:
                self.db.add(ContractLocation(contract_id=contract.id, location_id=location.id))
        await self.db.flush()

    async def _upsert_pricing_models(
        self, contract: Contract, models: Iterable[ExtractedPricingModel]
    ) -> Dict[str, PricingModel]:
        """Create or replace pricing models, keyed by their extracted id or name."""
        by_key: Dict[str, PricingModel] = {}
        for data in models:
            result = await self.db.execute(
                select(PricingModel)
                .options(selectinload(PricingModel.tiers))
                .where(and_(PricingModel.contract_id == contract.id, PricingModel.model_name == data.model_name))
            )
            model = result.scalar_one_or_none()
            if model is None:
                model = PricingModel(contract_id=contract.id, model_name=data.model_name, tiers=[])
                self.db.add(model)

            model.model_type = _pricing_model_type(data.model_type)
            model.base_rate = data.base_rate
            model.currency = (data.currency or contract.currency).upper()

            # Old tiers must be gone before new ones reuse their sequence numbers
            model.tiers.clear()
            await self.db.flush()
            model.tiers.extend(
                PricingTier(
                    tier_sequence=sequence,
                    min_value=tier.min_value,
                    max_value=tier.max_value,
                    rate=tier.rate,
                )
                for sequence, tier in enumerate(sorted(data.tiers, key=lambda t: t.min_value), start=1)
            )
            await self.db.flush()

            by_key[data.model_name] = model
            if data.model_id:
                by_key[data.model_id] = model
        return by_key

    async def _upsert_billable_item(
        self,
        contract: Contract,
        data: ExtractedBillableItem,
        pricing_models: Dict[str, PricingModel],
    ) -> BillableItem:
        details = data.pricing_details
        result = await self.db.execute(
            select(BillableItem).where(
                and_(BillableItem.contract_id == contract.id, BillableItem.item_name == data.item_name)
            )
        )
        item = result.scalar_one_or_none()
        if item is None:
            item = BillableItem(contract_id=contract.id, item_name=data.item_name)
            self.db.add(item)

        external_ids = data.external_ids or {}
        item.item_code = external_ids.get("vendor_sku") or data.item_id or item.item_code
        item.list_price = details.list_price
        item.contract_price = details.unit_cost if details.unit_cost is not None else details.list_price
        item.price_floor = details.contractual_price_floor
        item.price_ceiling = details.price_ceiling
        variance = details.allowed_variance
        item.allowed_variance_type = _variance_type(variance.type if variance else None)
        item.allowed_variance_value = (variance.value if variance and variance.value is not None else Decimal("0"))
        item.currency = (details.currency or contract.currency).upper()
        item.primary_uom = details.unit_of_measure
        item.allowed_uoms = details.allowed_uoms
        item.uom_conversion_rules = details.uom_conversion_rules
        if data.pricing_model_id and data.pricing_model_id in pricing_models:
            item.pricing_model_id = pricing_models[data.pricing_model_id].id

        band_error = check_price_band(item)
        if band_error:
            raise ValidationError(
                f"{data.item_name}: {band_error}",
                code="PRICE_OUTSIDE_BAND",
                details={"item_name": data.item_name},
            )

        await self.db.flush()
        return item

    # Invoices

    async def normalize_invoice_data(
        self,
        extracted: Union[Dict[str, Any], ExtractedInvoiceDocument],
        document_id: Any,
        user_id: Any,
    ) -> uuid.UUID:
        """Create or update the invoice described by an invoice extraction."""
        payload = self._parse(ExtractedInvoiceDocument, extracted)
        document_id = _as_uuid(document_id)
        request = payload.validation_request
        header = request.invoice_data.invoice_header

        invoice_number = (header.invoice_number or header.invoice_id or "").strip()
        if not invoice_number:
            raise ValidationError("Invoice number is required", code="MISSING_INVOICE_NUMBER")

        try:
            vendor = await self.resolve_party(header.vendor_party_id, PartyType.VENDOR, user_id,
                                              party_id=header.vendor_party_id)
            customer = None
            if header.customer_party_id:
                customer = await self.resolve_party(
                    header.customer_party_id, PartyType.CUSTOMER, user_id,
                    party_id=header.customer_party_id, create=False,
                )
            customer = customer or vendor

            invoice = await self._find_invoice(header.invoice_id, document_id, vendor.id, invoice_number)
            invoice_date = parse_date(header.invoice_date)
            contract_id = await self._match_contract(
                request.contract_context.primary_contract_id if request.contract_context else None,
                vendor.id,
                invoice_date,
            )

            gross = header.total_amount if header.total_amount is not None else header.gross_amount
            period = header.service_period
            values = dict(
                invoice_number=invoice_number,
                invoice_date=invoice_date,
                due_date=parse_date(header.due_date),
                service_period_start=parse_date(period.start_date) if period else None,
                service_period_end=parse_date(period.end_date) if period else None,
                vendor_party_id=vendor.id,
                customer_party_id=customer.id,
                contract_id=contract_id,
                net_service_amount=header.net_amount,
                tax_amount=header.tax_amount,
                shipping_amount=header.shipping_amount,
                fuel_surcharge=header.fuel_surcharge,
                misc_charges=header.misc_charges,
                currency=(header.currency or settings.DEFAULT_CURRENCY).upper(),
                external_ids=header.external_ids,
                po_number=(header.external_ids or {}).get("po_number"),
                updated_by=user_id,
            )

            if invoice is None:
                invoice = Invoice(
                    gross_amount=gross if gross is not None else Decimal("0"),
                    source_document_id=document_id,
                    created_by=user_id,
                    line_items=[],
                    **values,
                )
                self.db.add(invoice)
            else:
                for column, value in values.items():
                    if value is not None:
                        setattr(invoice, column, value)
                if gross is not None:
                    invoice.gross_amount = gross
                if invoice.source_document_id is None:
                    invoice.source_document_id = document_id

            await self._upsert_line_items(invoice, request.invoice_data.line_items)
            if invoice.net_service_amount is None and invoice.line_items:
                invoice.net_service_amount = sum(
                    (line.extended_amount or Decimal("0") for line in invoice.line_items), Decimal("0")
                )
            await self.db.flush()

            if document_id is not None:
                await self._link_extraction_records(document_id, invoice_id=invoice.id)
                await self._store_unmapped(document_id, payload.unmapped_fields(), invoice_id=invoice.id)

            await self.db.commit()
            logger.info(f"Normalized invoice {invoice.invoice_number} ({invoice.id}) from document {document_id}")
            return invoice.id

        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to normalize invoice from document {document_id}: {e}")
            raise

    async def _find_invoice(
        self,
        header_invoice_id: Optional[str],
        document_id: Optional[uuid.UUID],
        vendor_party_id: uuid.UUID,
        invoice_number: str,
    ) -> Optional[Invoice]:
        """Find the invoice a previous normalization produced for this extraction."""
        options = selectinload(Invoice.line_items)
        invoice_uuid = _as_uuid(header_invoice_id)
        conditions = []
        if invoice_uuid is not None:
            conditions.append(Invoice.id == invoice_uuid)
        if document_id is not None:
            conditions.append(Invoice.source_document_id == document_id)
        conditions.append(
            and_(Invoice.vendor_party_id == vendor_party_id, Invoice.invoice_number == invoice_number)
        )

        for condition in conditions:
            result = await self.db.execute(
                select(Invoice).options(options).where(condition).order_by(Invoice.created_at).limit(1)
            )
            invoice = result.scalar_one_or_none()
            if invoice is not None:
                return invoice
        return None

    async def _match_contract(
        self, primary_contract_id: Optional[str], vendor_party_id: uuid.UUID, invoice_date: Optional[date]
    ) -> Optional[uuid.UUID]:
        """
        Governing contract for an invoice.

        An explicit contract reference (id or number) wins. Otherwise the most
        recent active contract naming the vendor whose term covers the
        invoice date is used.
        """
        if primary_contract_id:
            contract_uuid = _as_uuid(primary_contract_id)
            condition = (
                Contract.id == contract_uuid
                if contract_uuid is not None
                else Contract.contract_number == primary_contract_id
            )
            result = await self.db.execute(select(Contract.id).where(condition).limit(1))
            contract_id = result.scalar_one_or_none()
            if contract_id is not None:
                return contract_id
            logger.warning(f"Referenced contract {primary_contract_id} not found")

        query = (
            select(Contract.id)
            .join(ContractParty, ContractParty.contract_id == Contract.id)
            .where(
                and_(
                    ContractParty.party_id == vendor_party_id,
                    ContractParty.role == ContractPartyRole.VENDOR.value,
                    Contract.status == ContractStatus.ACTIVE,
                )
            )
            .order_by(Contract.effective_date.desc())
        )
        if invoice_date is not None:
            query = query.where(
                and_(
                    or_(Contract.effective_date.is_(None), Contract.effective_date <= invoice_date),
                    or_(Contract.expiration_date.is_(None), Contract.expiration_date >= invoice_date),
                )
            )
        result = await self.db.execute(query.limit(1))
        return result.scalar_one_or_none()

    async def _upsert_line_items(self, invoice: Invoice, lines: List[ExtractedLineItem]):
        existing = {line.line_number: line for line in invoice.line_items}
        incoming = {data.line_number for data in lines}
        stale = [line for line in invoice.line_items if line.line_number not in incoming]
        if stale:
            stale_ids = [line.id for line in stale if line.id is not None]
            if stale_ids:
                await self.db.execute(
                    update(ValidationException)
                    .where(ValidationException.line_item_id.in_(stale_ids))
                    .values(line_item_id=None)
                )
            for line in stale:
                invoice.line_items.remove(line)
                existing.pop(line.line_number, None)
            logger.info(f"Dropped {len(stale)} line items missing from re-extraction of {invoice.invoice_number}")

        catalog = await self._catalog_for(invoice.contract_id)

        for data in lines:
            line = existing.get(data.line_number)
            if line is None:
                line = InvoiceLineItem(line_number=data.line_number)
                invoice.line_items.append(line)

            period = data.service_period
            line.description = data.description
            line.quantity = data.quantity
            line.uom = data.uom
            line.unit_price = data.unit_price
            line.extended_amount = data.extended_amount
            if line.extended_amount is None and data.quantity is not None and data.unit_price is not None:
                line.extended_amount = (data.quantity * data.unit_price).quantize(Decimal("0.01"))
            line.service_period_start = parse_date(period.start_date) if period else None
            line.service_period_end = parse_date(period.end_date) if period else None
            line.gl_account = data.gl_account
            line.department = data.department
            line.project = data.project
            line.cost_center = data.cost_center

            billable_item = match_billable_item(data, catalog)
            line.billable_item_id = billable_item.id if billable_item is not None else None
            if billable_item is not None:
                line.service_category_id = billable_item.service_category_id

    async def _catalog_for(self, contract_id: Optional[uuid.UUID]) -> List[BillableItem]:
        if contract_id is None:
            return []
        result = await self.db.execute(select(BillableItem).where(BillableItem.contract_id == contract_id))
        return list(result.scalars().all())

    # Extraction records

    async def _link_extraction_records(
        self,
        document_id: uuid.UUID,
        contract_id: Optional[uuid.UUID] = None,
        invoice_id: Optional[uuid.UUID] = None,
    ):
        values = {"contract_id": contract_id} if contract_id is not None else {"invoice_id": invoice_id}
        await self.db.execute(
            update(DocumentExtractionData)
            .where(DocumentExtractionData.document_id == document_id)
            .values(**values)
        )

    async def _store_unmapped(
        self,
        document_id: uuid.UUID,
        fields: Dict[str, Any],
        contract_id: Optional[uuid.UUID] = None,
        invoice_id: Optional[uuid.UUID] = None,
    ):
        """Replace the document's unmapped-field records with the current extraction's."""
        await self.db.execute(
            delete(DocumentExtractionData).where(
                and_(
                    DocumentExtractionData.document_id == document_id,
                    DocumentExtractionData.entity_type == UNMAPPED_ENTITY_TYPE,
                )
            )
        )
        for field_name, value in fields.items():
            self.db.add(
                DocumentExtractionData(
                    document_id=document_id,
                    entity_type=UNMAPPED_ENTITY_TYPE,
                    field_name=field_name[:255],
                    extracted_value=value,
                    extraction_method="normalization",
                    contract_id=contract_id,
                    invoice_id=invoice_id,
                )
            )
        if fields:
            logger.info(f"Retained {len(fields)} unmapped fields for document {document_id}")

    @staticmethod
    def _parse(model, extracted):
        if isinstance(extracted, model):
            return extracted
        try:
            return model.model_validate(extracted)
        except PydanticValidationError as e:
            raise ValidationError(
                "Extracted data does not have the expected shape",
                code="INVALID_EXTRACTION_PAYLOAD",
                details={"errors": e.errors(include_url=False, include_context=False)},
            ) from e


def match_billable_item(line: ExtractedLineItem, catalog: List[BillableItem]) -> Optional[BillableItem]:
    """
    Match an invoice line to a contract billable item.

    Tries the explicit billable item id, then the item code or item name
    appearing in the line description (case-insensitive).
    """
    if not catalog:
        return None

    item_uuid = _as_uuid(line.billable_item_id)
    if item_uuid is not None:
        for item in catalog:
            if item.id == item_uuid:
                return item

    description = (line.description or "").lower()
    code = (line.item_code or "").lower()
    for item in catalog:
        item_code = (item.item_code or "").lower()
        if item_code and (item_code == code or item_code in description):
            return item
    for item in catalog:
        if item.item_name and item.item_name.lower() in description:
            return item
    return None
