"""
Document extraction and normalization API endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, Request
from sqlalchemy.ext.asyncio import AsyncSession

from vendorspend.api.schemas.document import (
    ExtractionResponse,
    ExtractRequest,
    NormalizeRequest,
    NormalizeResponse,
)
from vendorspend.core.logging import get_logger
from vendorspend.db.session import get_db
from vendorspend.services.auth_service import Principal, require_permission
from vendorspend.services.extraction_pipeline import DocumentExtractionService, DocumentType
from vendorspend.services.normalization_service import NormalizationService

logger = get_logger(__name__)
router = APIRouter()


def get_extraction_service(request: Request, db: AsyncSession = Depends(get_db)) -> DocumentExtractionService:
    """Extraction pipeline wired to the clients created at startup."""
    return DocumentExtractionService(
        db,
        request.app.state.text_extraction_client,
        request.app.state.field_extraction_client,
    )


@router.post("/{document_id}/extract", response_model=ExtractionResponse)
async def extract_document(
    document_id: UUID,
    request: ExtractRequest,
    principal: Principal = Depends(require_permission("documents:upload")),
    service: DocumentExtractionService = Depends(get_extraction_service),
):
    """
    Run OCR and field extraction on a stored document, persist the fields
    and normalize them into a contract or invoice.

    Partial extractions are persisted and flagged for review. A failed
    normalization is reported in ``normalization_error`` without failing
    the request.
    """
    outcome = await service.extract_document(
        document_id, request.file_path, request.document_type, principal.user_id
    )

    if not outcome.success:
        message = "Extraction incomplete; fields stored for human review"
    elif outcome.normalization_error:
        message = "Extraction completed; normalization failed"
    else:
        message = "Extraction completed successfully"

    return ExtractionResponse(
        document_id=outcome.document_id,
        document_type=outcome.document_type,
        success=outcome.success,
        message=message,
        confidence=outcome.confidence,
        requires_human_review=outcome.requires_human_review,
        records_stored=outcome.records_stored,
        data=outcome.data,
        errors=outcome.errors,
        warnings=outcome.warnings,
        entity_id=outcome.entity_id,
        normalization_error=outcome.normalization_error,
    )


@router.post("/{document_id}/normalize", response_model=NormalizeResponse)
async def normalize_document(
    document_id: UUID,
    request: NormalizeRequest,
    principal: Principal = Depends(require_permission("documents:upload")),
    db: AsyncSession = Depends(get_db),
):
    """Normalize already-extracted fields. Re-running for the same document updates in place."""
    service = NormalizationService(db)
    if request.document_type == DocumentType.CONTRACT:
        entity_id = await service.normalize_contract_data(request.extracted_data, document_id, principal.user_id)
    else:
        entity_id = await service.normalize_invoice_data(request.extracted_data, document_id, principal.user_id)

    logger.info(f"Normalized {request.document_type.value} document {document_id} into {entity_id}")
    return NormalizeResponse(document_id=document_id, document_type=request.document_type, entity_id=entity_id)
