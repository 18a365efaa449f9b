"""
Tests for retry-with-backoff around external calls.
"""

from unittest.mock import AsyncMock

import pytest

from vendorspend.core.exceptions import ExternalServiceError, TransientExternalError, ValidationError
from vendorspend.core.retry import retry_with_backoff


class TestRetryWithBackoff:

    @pytest.mark.asyncio
    async def test_returns_first_success(self):
        operation = AsyncMock(return_value="ok")

        result = await retry_with_backoff(operation, "ocr.extract_text", max_attempts=3, initial_delay=0)

        assert result == "ok"
        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_retries_transient_failures(self):
        operation = AsyncMock(
            side_effect=[
                TransientExternalError("ocr", "timed out"),
                TransientExternalError("ocr", "timed out"),
                "text",
            ]
        )

        result = await retry_with_backoff(operation, "ocr.extract_text", max_attempts=3, initial_delay=0)

        assert result == "text"
        assert operation.await_count == 3

    @pytest.mark.asyncio
    async def test_exhausted_attempts_raise_external_service_error(self):
        operation = AsyncMock(side_effect=TransientExternalError("fields", "returned 503"))

        with pytest.raises(ExternalServiceError) as exc_info:
            await retry_with_backoff(
                operation,
                "fields.extract",
                max_attempts=2,
                initial_delay=0,
                context={"document_id": "doc-1"},
            )

        assert operation.await_count == 2
        details = exc_info.value.details
        assert details["operation"] == "fields.extract"
        assert details["attempts"] == 2
        assert details["document_id"] == "doc-1"
        assert "returned 503" in details["last_error"]

    @pytest.mark.asyncio
    async def test_non_retryable_error_propagates_immediately(self):
        operation = AsyncMock(side_effect=ValidationError("bad input"))

        with pytest.raises(ValidationError):
            await retry_with_backoff(operation, "fields.extract", max_attempts=3, initial_delay=0)

        assert operation.await_count == 1

    @pytest.mark.asyncio
    async def test_custom_retry_on(self):
        operation = AsyncMock(side_effect=[ConnectionError("reset"), "ok"])

        result = await retry_with_backoff(
            operation, "identity.verify_token", max_attempts=2, initial_delay=0, retry_on=(ConnectionError,)
        )

        assert result == "ok"
