"""
Database models for the vendor spend validation platform.
"""

from .party import Party, PartyStatus, PartyType
from .contract import (
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
    ServiceCategory,
    VarianceType,
)
from .invoice import Invoice, InvoiceLineItem, InvoiceStatus, InvoiceValidationState
from .extraction import DocumentExtractionData, UNMAPPED_ENTITY_TYPE
from .validation import (
    ExceptionSeverity,
    ExceptionType,
    InvoiceValidation,
    ValidationException,
    ValidationMethod,
    ValidationStatus,
)
from .approval import (
    ApprovalDecision,
    ApprovalLevel,
    ApprovalStatus,
    InvoiceApprovalHistory,
    InvoiceApprovalRequest,
    TERMINAL_APPROVAL_STATUSES,
)
from .audit import AuditLog

__all__ = [
    "Party",
    "PartyStatus",
    "PartyType",
    "BillableItem",
    "Contract",
    "ContractLocation",
    "ContractParty",
    "ContractPartyRole",
    "ContractStatus",
    "Location",
    "PricingModel",
    "PricingModelType",
    "PricingTier",
    "ServiceCategory",
    "VarianceType",
    "Invoice",
    "InvoiceLineItem",
    "InvoiceStatus",
    "InvoiceValidationState",
    "DocumentExtractionData",
    "UNMAPPED_ENTITY_TYPE",
    "ExceptionSeverity",
    "ExceptionType",
    "InvoiceValidation",
    "ValidationException",
    "ValidationMethod",
    "ValidationStatus",
    "ApprovalDecision",
    "ApprovalLevel",
    "ApprovalStatus",
    "InvoiceApprovalHistory",
    "InvoiceApprovalRequest",
    "TERMINAL_APPROVAL_STATUSES",
    "AuditLog",
]
