"""
Test data factories for the vendor spend validation platform.

This module provides Factory Boy factories for generating parties,
contracts, invoices, validation runs and extraction payloads.
"""

from .party_factory import CustomerPartyFactory, PartyFactory
from .contract_factory import (
    BillableItemFactory,
    ContractFactory,
    ContractPartyFactory,
    PricingModelFactory,
    PricingTierFactory,
)
from .invoice_factory import InvoiceFactory, InvoiceLineFactory
from .workflow_factory import (
    ApprovalLevelFactory,
    InvoiceValidationFactory,
    ValidationExceptionFactory,
)
from .extraction_factory import (
    ExtractionHeaderFactory,
    ExtractionLineFactory,
    contract_payload,
    invoice_payload,
)

__all__ = [
    "PartyFactory",
    "CustomerPartyFactory",
    "BillableItemFactory",
    "ContractFactory",
    "ContractPartyFactory",
    "PricingModelFactory",
    "PricingTierFactory",
    "InvoiceFactory",
    "InvoiceLineFactory",
    "ApprovalLevelFactory",
    "InvoiceValidationFactory",
    "ValidationExceptionFactory",
    "ExtractionHeaderFactory",
    "ExtractionLineFactory",
    "contract_payload",
    "invoice_payload",
]
