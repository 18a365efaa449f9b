"""
Business logic services for vendor spend validation.
"""

from .approval_service import ApprovalService
from .exception_service import ExceptionService
from .validation_engine import ValidationEngine

__all__ = [
    "ApprovalService",
    "ExceptionService",
    "ValidationEngine",
]
