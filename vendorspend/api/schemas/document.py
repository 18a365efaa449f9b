"""
Document extraction and normalization API schemas.
"""

from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from vendorspend.services.extraction_pipeline import DocumentType


class NormalizeRequest(BaseModel):
    """Extracted fields to normalize for a document."""
    document_type: DocumentType
    extracted_data: Dict[str, Any]


class NormalizeResponse(BaseModel):
    document_id: UUID
    document_type: DocumentType
    entity_id: UUID


class ExtractRequest(BaseModel):
    """Stored document to run through extraction."""
    file_path: str = Field(min_length=1)
    document_type: DocumentType


class ExtractionResponse(BaseModel):
    """Outcome of an extraction run."""
    document_id: UUID
    document_type: DocumentType
    success: bool
    message: str
    confidence: float
    requires_human_review: bool
    records_stored: int
    data: Optional[Dict[str, Any]] = None
    errors: List[str] = []
    warnings: List[str] = []
    entity_id: Optional[UUID] = None
    normalization_error: Optional[str] = None
