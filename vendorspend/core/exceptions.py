"""
Custom exceptions for the vendor spend validation platform.
"""

from typing import Any, Dict, Optional


class VendorSpendError(Exception):
    """Base exception for the platform."""

    def __init__(
        self,
        message: str,
        error_code: str = "UNKNOWN_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_code = error_code
        self.details = details or {}
        super().__init__(self.message)


class ValidationError(VendorSpendError):
    """Raised for a rule or input-shape violation. Never retried."""

    def __init__(
        self,
        message: str,
        code: str = "VALIDATION_ERROR",
        details: Optional[Dict[str, Any]] = None,
    ):
        super().__init__(message=message, error_code=code, details=details)


class NotFoundError(VendorSpendError):
    """Raised when a requested entity does not exist."""

    def __init__(self, entity: str, entity_id: Any):
        super().__init__(
            message=f"{entity} not found",
            error_code="NOT_FOUND",
            details={"entity": entity, "id": str(entity_id)},
        )


class ConflictError(VendorSpendError):
    """Raised when an operation would break referential integrity."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="CONFLICT_ERROR",
            details=details,
        )


class WorkflowError(VendorSpendError):
    """Raised when an approval transition is not allowed from the current state."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="WORKFLOW_ERROR",
            details=details,
        )


class ExtractionError(VendorSpendError):
    """Raised when OCR or field extraction fails for a document."""

    def __init__(
        self,
        message: str,
        document_id: Any = None,
        partial_data: Optional[Dict[str, Any]] = None,
    ):
        self.document_id = document_id
        self.partial_data = partial_data
        super().__init__(
            message=message,
            error_code="EXTRACTION_ERROR",
            details={
                "document_id": str(document_id) if document_id else None,
                "has_partial_data": partial_data is not None,
            },
        )


class TransientExternalError(VendorSpendError):
    """Raised for a retryable failure of an external collaborator."""

    def __init__(self, service: str, message: str):
        self.service = service
        super().__init__(
            message=message,
            error_code="TRANSIENT_EXTERNAL_ERROR",
            details={"service": service},
        )


class ExternalServiceError(VendorSpendError):
    """Raised when an external call fails for good (retries exhausted or non-retryable)."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="EXTERNAL_SERVICE_ERROR",
            details=details,
        )


class AuthenticationError(VendorSpendError):
    """Raised for a missing or invalid bearer token."""

    def __init__(self, message: str = "Could not validate credentials"):
        super().__init__(message=message, error_code="UNAUTHORIZED")


class AuthorizationError(VendorSpendError):
    """Raised when the principal lacks a required capability."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(
            message=message,
            error_code="FORBIDDEN",
            details=details,
        )
