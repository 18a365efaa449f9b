"""
Tests for cascading invoice deletion and contract catalog maintenance.
"""

import uuid
from decimal import Decimal

import pytest
from sqlalchemy import func, select

from vendorspend.api.schemas.contract import BillableItemCreate, BillableItemUpdate
from vendorspend.core.exceptions import ConflictError, NotFoundError, ValidationError
from vendorspend.models.approval import InvoiceApprovalHistory, InvoiceApprovalRequest
from vendorspend.models.audit import AuditLog
from vendorspend.models.contract import BillableItem, Contract, ContractParty
from vendorspend.models.extraction import DocumentExtractionData
from vendorspend.models.invoice import Invoice, InvoiceLineItem
from vendorspend.models.validation import InvoiceValidation, ValidationException
from vendorspend.services.contract_service import ContractService
from vendorspend.services.invoice_service import InvoiceService
from vendorspend.services.validation_engine import ValidationEngine
from tests.factories import BillableItemFactory, ContractFactory, ContractPartyFactory, PartyFactory


async def rows(db_session, model):
    return (await db_session.execute(select(func.count(model.id)))).scalar()


class TestDeleteInvoice:

    @pytest.mark.asyncio
    async def test_delete_cascades_and_keeps_extraction_records(self, db_session, make_invoice):
        invoice = await make_invoice(unit_price=Decimal("110.00"))
        record = DocumentExtractionData(
            document_id=uuid.uuid4(),
            entity_type="invoices",
            field_name="invoices.invoice_number",
            extracted_value=invoice.invoice_number,
            invoice_id=invoice.id,
        )
        db_session.add(record)
        await db_session.commit()
        await ValidationEngine(db_session).validate_invoice_deterministic(invoice.id, None)
        assert await rows(db_session, InvoiceApprovalRequest) == 1

        user_id = uuid.uuid4()
        await InvoiceService(db_session).delete_invoice(invoice.id, user_id)

        for model in (
            Invoice,
            InvoiceLineItem,
            InvoiceValidation,
            ValidationException,
            InvoiceApprovalRequest,
            InvoiceApprovalHistory,
        ):
            assert await rows(db_session, model) == 0, model.__name__

        kept = (await db_session.execute(select(DocumentExtractionData))).scalar_one()
        assert kept.invoice_id is None

        audit = (
            await db_session.execute(select(AuditLog).where(AuditLog.table_name == "invoices"))
        ).scalar_one()
        assert audit.action == "DELETE"
        assert audit.changed_by == user_id
        assert audit.payload == {"invoice_number": invoice.invoice_number}

    @pytest.mark.asyncio
    async def test_delete_unknown_invoice(self, db_session):
        with pytest.raises(NotFoundError):
            await InvoiceService(db_session).delete_invoice(uuid.uuid4())


class TestDeleteContract:

    @pytest.mark.asyncio
    async def test_refused_while_invoices_reference_it(self, db_session, make_invoice, contract_setup):
        await make_invoice()

        with pytest.raises(ConflictError) as exc_info:
            await ContractService(db_session).delete_contract(contract_setup.contract.id)

        assert exc_info.value.details["invoice_count"] == 1

    @pytest.mark.asyncio
    async def test_refused_while_lines_match_its_items(self, db_session, make_invoice, contract_setup):
        await make_invoice(with_contract=False)

        with pytest.raises(ConflictError) as exc_info:
            await ContractService(db_session).delete_contract(contract_setup.contract.id)

        assert exc_info.value.details["line_count"] == 1

    @pytest.mark.asyncio
    async def test_refused_while_child_contracts_exist(self, db_session, contract_setup):
        amendment = ContractFactory(contract_title="Amendment 1", parent_contract_id=contract_setup.contract.id)
        db_session.add(amendment)
        await db_session.commit()

        with pytest.raises(ConflictError):
            await ContractService(db_session).delete_contract(contract_setup.contract.id)

    @pytest.mark.asyncio
    async def test_delete_removes_catalog_and_parties(self, db_session, contract_setup):
        contract_id = contract_setup.contract.id

        await ContractService(db_session).delete_contract(contract_id)

        assert await rows(db_session, Contract) == 0
        assert await rows(db_session, BillableItem) == 0
        assert await rows(db_session, ContractParty) == 0

    @pytest.mark.asyncio
    async def test_delete_unknown_contract(self, db_session):
        with pytest.raises(NotFoundError):
            await ContractService(db_session).delete_contract(uuid.uuid4())


class TestBillableItems:

    @pytest.mark.asyncio
    async def test_add_item_inside_band(self, db_session, contract_setup):
        data = BillableItemCreate(
            item_name="Nitrile Exam Gloves, Box",
            item_code="SKU-1002",
            contract_price=Decimal("42.00"),
            price_floor=Decimal("40.00"),
            price_ceiling=Decimal("45.00"),
        )

        item = await ContractService(db_session).add_billable_item(contract_setup.contract.id, data)

        assert item.contract_id == contract_setup.contract.id
        assert item.contract_price == Decimal("42.00")
        assert await rows(db_session, BillableItem) == 2

    @pytest.mark.asyncio
    async def test_price_outside_band_is_rejected(self, db_session, contract_setup):
        data = BillableItemCreate(
            item_name="Nitrile Exam Gloves, Box",
            contract_price=Decimal("50.00"),
            price_floor=Decimal("40.00"),
            price_ceiling=Decimal("45.00"),
        )

        with pytest.raises(ValidationError) as exc_info:
            await ContractService(db_session).add_billable_item(contract_setup.contract.id, data)

        assert exc_info.value.error_code == "PRICE_OUTSIDE_BAND"
        assert await rows(db_session, BillableItem) == 1

    @pytest.mark.asyncio
    async def test_duplicate_item_name_conflicts(self, db_session, contract_setup):
        data = BillableItemCreate(item_name=contract_setup.item.item_name, contract_price=Decimal("99.00"))

        with pytest.raises(ConflictError):
            await ContractService(db_session).add_billable_item(contract_setup.contract.id, data)

    @pytest.mark.asyncio
    async def test_update_checks_band(self, db_session, contract_setup):
        service = ContractService(db_session)
        contract_id = contract_setup.contract.id
        item_id = contract_setup.item.id

        updated = await service.update_billable_item(
            contract_id, item_id, BillableItemUpdate(contract_price=Decimal("95.00"), price_floor=Decimal("90.00"))
        )
        assert updated.contract_price == Decimal("95.00")

        with pytest.raises(ValidationError) as exc_info:
            await service.update_billable_item(contract_id, item_id, BillableItemUpdate(contract_price=Decimal("80.00")))
        assert exc_info.value.error_code == "PRICE_OUTSIDE_BAND"

    @pytest.mark.asyncio
    async def test_rejected_band_update_keeps_stored_item(self, db_session, contract_setup):
        contract_id = contract_setup.contract.id
        item_id = contract_setup.item.id

        with pytest.raises(ValidationError) as exc_info:
            await ContractService(db_session).update_billable_item(
                contract_id,
                item_id,
                BillableItemUpdate(price_floor=Decimal("200.00"), price_ceiling=Decimal("300.00")),
            )

        assert exc_info.value.error_code == "PRICE_OUTSIDE_BAND"
        assert exc_info.value.details["item_name"] == "Sterile Surgical Gloves, Box"
        assert exc_info.value.details["contract_id"] == str(contract_id)
        stored = await db_session.get(BillableItem, item_id, populate_existing=True)
        assert stored.price_floor is None
        assert stored.contract_price == Decimal("100.00")

    @pytest.mark.asyncio
    async def test_update_item_of_another_contract(self, db_session, contract_setup):
        other = ContractFactory(contract_title="Linen Services Agreement")
        ContractPartyFactory(contract=other, party=PartyFactory())
        stray = BillableItemFactory(contract=other)
        db_session.add_all([other, stray])
        await db_session.commit()

        with pytest.raises(NotFoundError):
            await ContractService(db_session).update_billable_item(
                contract_setup.contract.id, stray.id, BillableItemUpdate(contract_price=Decimal("1.00"))
            )
