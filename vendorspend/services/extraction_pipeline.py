"""
Document extraction pipeline: OCR, field extraction, sanity checks,
per-field persistence and normalization.
"""

import enum
import logging
import uuid
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from sqlalchemy import and_, delete, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from vendorspend.clients.extraction import FieldExtractionClient, TextExtractionClient
from vendorspend.core.config import settings
from vendorspend.core.exceptions import ExtractionError, VendorSpendError
from vendorspend.core.retry import retry_with_backoff
from vendorspend.models.extraction import UNMAPPED_ENTITY_TYPE, DocumentExtractionData
from vendorspend.models.validation import ValidationException
from vendorspend.services.extraction_validation import apply_confidence_penalty, validate_invoice_header
from vendorspend.services.normalization_service import NormalizationService

logger = logging.getLogger(__name__)

METADATA_ENTITY_TYPE = "extraction_metadata"
METADATA_FIELD_NAME = "_extraction_metadata"


class DocumentType(str, enum.Enum):
    """Document kinds the pipeline can extract."""

    CONTRACT = "contract"
    INVOICE = "invoice"


@dataclass
class ExtractionOutcome:
    """What an extraction run produced."""
    document_id: uuid.UUID
    document_type: DocumentType
    success: bool
    confidence: float
    requires_human_review: bool
    data: Optional[Dict[str, Any]] = None
    errors: List[str] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)
    records_stored: int = 0
    total_pages: int = 0
    entity_id: Optional[uuid.UUID] = None
    normalization_error: Optional[str] = None


def flatten_fields(value: Any, path: str = "") -> Dict[str, Any]:
    """Flatten nested extraction data into dotted paths; list items use their index."""
    if isinstance(value, dict):
        flat: Dict[str, Any] = {}
        for key, child in value.items():
            flat.update(flatten_fields(child, f"{path}.{key}" if path else str(key)))
        return flat
    if isinstance(value, list):
        flat = {}
        for index, child in enumerate(value):
            flat.update(flatten_fields(child, f"{path}.{index}" if path else str(index)))
        return flat
    if value is None:
        return {}
    return {path: value}


def invoice_header_of(data: Dict[str, Any]) -> Dict[str, Any]:
    """Invoice header of an extraction payload, in the shape the header checks expect."""
    header = (
        data.get("validation_request", {}).get("invoice_data", {}).get("invoice_header")
        or {}
    )
    return dict(header, invoice_id=header.get("invoice_number") or header.get("invoice_id"))


class DocumentExtractionService:
    """Runs the extraction pipeline for one stored document."""

    def __init__(
        self,
        db: AsyncSession,
        text_client: TextExtractionClient,
        field_client: FieldExtractionClient,
        normalization_service: Optional[NormalizationService] = None,
    ):
        self.db = db
        self.text_client = text_client
        self.field_client = field_client
        self.normalization_service = normalization_service or NormalizationService(db)

    async def extract_document(
        self,
        document_id: uuid.UUID,
        file_path: str,
        document_type: DocumentType,
        user_id: Optional[uuid.UUID] = None,
    ) -> ExtractionOutcome:
        """
        Extract, check, store and normalize a document.

        Partial extractions are stored and flagged for human review but not
        normalized. A normalization failure does not fail the extraction; it
        is reported on the outcome instead.
        """
        document_type = DocumentType(document_type)
        context = {"document_id": document_id, "user_id": user_id, "document_type": document_type.value}

        ocr = await retry_with_backoff(
            lambda: self.text_client.extract_text(file_path, document_id),
            operation_name="ocr.extract_text",
            context=context,
        )
        if not ocr.text.strip():
            raise ExtractionError("No text could be extracted from the document", document_id=document_id)

        result = await retry_with_backoff(
            lambda: self.field_client.extract(
                ocr.text,
                document_id,
                {"document_type": document_type.value, "total_pages": ocr.total_pages},
            ),
            operation_name="fields.extract",
            context=context,
        )
        if not result.data:
            raise ExtractionError(
                "Field extraction returned no data",
                document_id=document_id,
                partial_data={"errors": result.errors},
            )

        outcome = ExtractionOutcome(
            document_id=document_id,
            document_type=document_type,
            success=result.success,
            confidence=result.confidence,
            requires_human_review=not result.success,
            data=result.data,
            errors=list(result.errors),
            total_pages=ocr.total_pages,
        )

        if document_type == DocumentType.INVOICE:
            header_check = validate_invoice_header(invoice_header_of(result.data))
            outcome.errors.extend(header_check.errors)
            outcome.warnings.extend(header_check.warnings)
            outcome.confidence = apply_confidence_penalty(result.confidence, header_check.confidence_penalty)
            if not header_check.is_valid:
                outcome.requires_human_review = True

        if outcome.confidence < settings.EXTRACTION_REVIEW_CONFIDENCE_THRESHOLD:
            outcome.requires_human_review = True

        outcome.records_stored = await self.store_extraction_results(outcome)
        logger.info(
            f"Extracted {outcome.records_stored} fields from document {document_id} "
            f"(confidence {outcome.confidence:.2f}, review={outcome.requires_human_review})"
        )

        if outcome.success:
            await self._normalize(outcome, user_id)
        return outcome

    async def store_extraction_results(self, outcome: ExtractionOutcome) -> int:
        """
        Replace the document's extracted-field records with this run's.

        Exceptions that cited the old records as evidence keep their rows but
        lose the link.
        """
        document_id = outcome.document_id
        try:
            old_ids = select(DocumentExtractionData.id).where(
                and_(
                    DocumentExtractionData.document_id == document_id,
                    DocumentExtractionData.entity_type != UNMAPPED_ENTITY_TYPE,
                )
            )
            await self.db.execute(
                update(ValidationException)
                .where(ValidationException.contract_extraction_id.in_(old_ids))
                .values(contract_extraction_id=None)
            )
            await self.db.execute(
                update(ValidationException)
                .where(ValidationException.invoice_extraction_id.in_(old_ids))
                .values(invoice_extraction_id=None)
            )
            await self.db.execute(
                delete(DocumentExtractionData).where(
                    and_(
                        DocumentExtractionData.document_id == document_id,
                        DocumentExtractionData.entity_type != UNMAPPED_ENTITY_TYPE,
                    )
                )
            )

            self.db.add(
                DocumentExtractionData(
                    document_id=document_id,
                    entity_type=METADATA_ENTITY_TYPE,
                    field_name=METADATA_FIELD_NAME,
                    extracted_value={
                        "success": outcome.success,
                        "total_pages": outcome.total_pages,
                        "errors": outcome.errors,
                        "warnings": outcome.warnings,
                    },
                    confidence_score=outcome.confidence,
                    extraction_method="field_extraction",
                    requires_human_review=outcome.requires_human_review,
                )
            )
            fields = flatten_fields(outcome.data or {})
            for field_name, value in fields.items():
                self.db.add(
                    DocumentExtractionData(
                        document_id=document_id,
                        entity_type=outcome.document_type.value,
                        field_name=field_name[:255],
                        extracted_value=value,
                        confidence_score=outcome.confidence,
                        extraction_method="field_extraction",
                        requires_human_review=outcome.requires_human_review,
                    )
                )
            await self.db.commit()
            return len(fields)

        except Exception as e:
            await self.db.rollback()
            logger.error(f"Failed to store extraction results for document {document_id}: {e}")
            raise

    async def _normalize(self, outcome: ExtractionOutcome, user_id: Optional[uuid.UUID]):
        try:
            if outcome.document_type == DocumentType.CONTRACT:
                outcome.entity_id = await self.normalization_service.normalize_contract_data(
                    outcome.data, outcome.document_id, user_id
                )
            else:
                outcome.entity_id = await self.normalization_service.normalize_invoice_data(
                    outcome.data, outcome.document_id, user_id
                )
        except VendorSpendError as e:
            outcome.normalization_error = e.message
            outcome.requires_human_review = True
            logger.warning(f"Normalization of document {outcome.document_id} failed: {e.message}")
        except Exception as e:
            outcome.normalization_error = "Normalization failed"
            outcome.requires_human_review = True
            logger.exception(f"Unexpected normalization failure for document {outcome.document_id}: {e}")
