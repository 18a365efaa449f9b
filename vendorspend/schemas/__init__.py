"""
Data contracts for extraction payloads consumed by normalization.
"""

from .extracted import (
    ExtractedContractDocument,
    ExtractedInvoiceDocument,
    ExtractedModel,
)

__all__ = [
    "ExtractedContractDocument",
    "ExtractedInvoiceDocument",
    "ExtractedModel",
]
