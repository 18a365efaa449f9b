"""
API schemas for request/response models.
"""

from .approval import (
    ApprovalDecisionRequest,
    ApprovalListResponse,
    ApprovalRequestResponse,
    EscalationResponse,
)
from .common import ErrorResponse, HealthResponse
from .contract import (
    BillableItemCreate,
    BillableItemResponse,
    BillableItemUpdate,
    ContractListResponse,
    ContractResponse,
)
from .exception import (
    DashboardStatsResponse,
    ExceptionListResponse,
    ExceptionResolveRequest,
    PriorityQueueResponse,
)
from .invoice import InvoiceListResponse, InvoiceResponse
from .validation import (
    AssistedValidationPayload,
    ValidationListResponse,
    ValidationRequest,
    ValidationResponse,
)

__all__ = [
    "ApprovalDecisionRequest",
    "ApprovalListResponse",
    "ApprovalRequestResponse",
    "EscalationResponse",
    "ErrorResponse",
    "HealthResponse",
    "BillableItemCreate",
    "BillableItemResponse",
    "BillableItemUpdate",
    "ContractListResponse",
    "ContractResponse",
    "DashboardStatsResponse",
    "ExceptionListResponse",
    "ExceptionResolveRequest",
    "PriorityQueueResponse",
    "InvoiceListResponse",
    "InvoiceResponse",
    "AssistedValidationPayload",
    "ValidationListResponse",
    "ValidationRequest",
    "ValidationResponse",
]
