"""
Pytest configuration and fixtures for the vendor spend validation platform.
"""

import os

os.environ["DATABASE_URL"] = "sqlite+aiosqlite:///:memory:"
os.environ["ENVIRONMENT"] = "test"

import uuid
from decimal import Decimal
from types import SimpleNamespace
from unittest.mock import AsyncMock

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

import vendorspend.models  # noqa: F401  registers every table on Base.metadata
from vendorspend.db.session import Base, get_db
from vendorspend.models.contract import VarianceType
from vendorspend.services.auth_service import PermissionCache, Principal, get_current_principal
from tests.factories import (
    ApprovalLevelFactory,
    BillableItemFactory,
    ContractFactory,
    ContractPartyFactory,
    InvoiceFactory,
    InvoiceLineFactory,
    PartyFactory,
)

ALL_PERMISSIONS = [
    "documents:upload",
    "contracts:read",
    "contracts:update",
    "contracts:delete",
    "invoices:read",
    "invoices:update",
    "invoices:delete",
    "validations:view",
    "exceptions:view",
    "exceptions:resolve",
    "approvals:view",
    "approvals:approve",
    "approvals:reject",
    "approvals:escalate",
    "approvals:dispute",
    "dashboard:view",
    "permissions:update",
]


@pytest.fixture
async def async_engine():
    """Create async engine for testing."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest.fixture
async def db_session(async_engine):
    """Create async session for testing."""
    session_factory = async_sessionmaker(async_engine, class_=AsyncSession, expire_on_commit=False)

    async with session_factory() as session:
        yield session


@pytest.fixture
def principal():
    """AP manager holding every capability."""
    return Principal(
        user_id=uuid.uuid4(),
        email="ap.manager@riversidehealth.org",
        roles=["AP Manager"],
        permissions=list(ALL_PERMISSIONS),
    )


@pytest.fixture
def app(db_session, principal):
    """Application wired to the test session, a fixed principal and mocked collaborators."""
    from vendorspend.main import app as fastapi_app

    async def override_get_db():
        yield db_session

    fastapi_app.dependency_overrides[get_db] = override_get_db
    fastapi_app.dependency_overrides[get_current_principal] = lambda: principal

    # ASGITransport does not run the lifespan, so shared state is set here
    fastapi_app.state.permission_cache = PermissionCache()
    fastapi_app.state.identity_client = AsyncMock()
    fastapi_app.state.text_extraction_client = AsyncMock()
    fastapi_app.state.field_extraction_client = AsyncMock()

    yield fastapi_app

    fastapi_app.dependency_overrides.clear()


@pytest.fixture
async def async_client(app):
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client


@pytest.fixture
async def contract_setup(db_session):
    """
    Active contract for one vendor with a single priced item and three
    approval bands (0-1000, 1001-10000, 10001+).
    """
    vendor = PartyFactory(legal_name="Cardinal Medical Supply LLC")
    contract = ContractFactory(contract_number="CTR-2025-001")
    ContractPartyFactory(contract=contract, party=vendor)
    item = BillableItemFactory(
        contract=contract,
        item_name="Sterile Surgical Gloves, Box",
        item_code="SKU-1001",
        contract_price=Decimal("100.00"),
        allowed_variance_type=VarianceType.PERCENTAGE,
        allowed_variance_value=Decimal("5"),
    )
    levels = [
        ApprovalLevelFactory(
            level_name="Manager", level_sequence=1,
            min_amount=Decimal("0"), max_amount=Decimal("1000"), required_role="AP Manager",
        ),
        ApprovalLevelFactory(
            level_name="Director", level_sequence=2,
            min_amount=Decimal("1001"), max_amount=Decimal("10000"), required_role="Finance Director",
        ),
        ApprovalLevelFactory(
            level_name="Executive", level_sequence=3,
            min_amount=Decimal("10001"), max_amount=None, required_role="CFO",
        ),
    ]

    db_session.add_all([vendor, contract, item, *levels])
    await db_session.commit()
    return SimpleNamespace(vendor=vendor, contract=contract, item=item, levels=levels)


@pytest.fixture
def make_invoice(db_session, contract_setup):
    """Persist an invoice with one line billed against the contract's item."""

    async def _make(
        unit_price=Decimal("100.00"),
        quantity=Decimal("10"),
        currency="USD",
        with_contract=True,
        **overrides,
    ):
        line = InvoiceLineFactory(
            line_number=1,
            description="Sterile Surgical Gloves, Box",
            unit_price=unit_price,
            quantity=quantity,
            billable_item=contract_setup.item,
        )
        invoice = InvoiceFactory(
            vendor=contract_setup.vendor,
            contract=contract_setup.contract if with_contract else None,
            currency=currency,
            net_service_amount=line.extended_amount,
            gross_amount=overrides.pop("gross_amount", line.extended_amount),
            line_items=[line],
            **overrides,
        )
        db_session.add(invoice)
        await db_session.commit()
        return invoice

    return _make
