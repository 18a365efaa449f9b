"""
Clients for the text (OCR) and field extraction services.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx

from vendorspend.clients.base import ServiceClient
from vendorspend.core.config import settings
from vendorspend.core.exceptions import ExtractionError


@dataclass
class ExtractedPage:
    page_number: int
    text: str


@dataclass
class ExtractedText:
    """OCR output for a document."""
    text: str
    pages: List[ExtractedPage] = field(default_factory=list)
    total_pages: int = 0


@dataclass
class FieldExtractionResult:
    """
    Structured fields extracted from raw text.

    ``data`` may be present even when ``success`` is False; such partial
    results still get persisted for human review.
    """
    success: bool
    data: Optional[Dict[str, Any]] = None
    confidence: float = 0.0
    errors: List[str] = field(default_factory=list)


class TextExtractionClient(ServiceClient):
    """OCR over stored documents."""

    service_name = "text_extraction"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(
            base_url or settings.TEXT_EXTRACTION_SERVICE_URL,
            timeout or settings.OCR_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def extract_text(self, file_path: str, document_id: Any = None) -> ExtractedText:
        response = await self._request("POST", "/extract-text", json={"file_path": file_path})
        if 400 <= response.status_code < 500:
            raise ExtractionError(
                f"Text extraction rejected the document: {response.status_code}",
                document_id=document_id,
            )
        body = self._json(response)
        pages = [
            ExtractedPage(page_number=int(page.get("page_number", i + 1)), text=page.get("text", ""))
            for i, page in enumerate(body.get("pages") or [])
        ]
        return ExtractedText(
            text=body.get("text") or "",
            pages=pages,
            total_pages=int(body.get("total_pages") or len(pages)),
        )


class FieldExtractionClient(ServiceClient):
    """Structured field extraction from OCR text."""

    service_name = "field_extraction"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(
            base_url or settings.FIELD_EXTRACTION_SERVICE_URL,
            timeout or settings.FIELD_EXTRACTION_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def extract(
        self,
        raw_text: str,
        document_id: Any,
        context: Optional[Dict[str, Any]] = None,
    ) -> FieldExtractionResult:
        response = await self._request(
            "POST",
            "/extract",
            json={"raw_text": raw_text, "document_id": str(document_id), "context": context or {}},
        )
        if 400 <= response.status_code < 500:
            raise ExtractionError(
                f"Field extraction rejected the request: {response.status_code}",
                document_id=document_id,
            )
        body = self._json(response)
        return FieldExtractionResult(
            success=bool(body.get("success")),
            data=body.get("data"),
            confidence=float(body.get("confidence") or 0.0),
            errors=list(body.get("errors") or []),
        )
