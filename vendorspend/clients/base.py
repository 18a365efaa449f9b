"""
Shared HTTP plumbing for external collaborator clients.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from vendorspend.core.exceptions import ExternalServiceError, TransientExternalError

logger = logging.getLogger(__name__)


class ServiceClient:
    """Thin async HTTP client that maps transport failures to platform errors."""

    service_name = "external"

    def __init__(
        self,
        base_url: str,
        timeout: float,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.timeout = timeout
        self.http_client = httpx.AsyncClient(
            base_url=base_url,
            timeout=timeout,
            transport=transport,
            limits=httpx.Limits(max_keepalive_connections=10, max_connections=20),
        )

    async def __aenter__(self):
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        await self.aclose()

    async def aclose(self):
        await self.http_client.aclose()

    async def _request(
        self,
        method: str,
        path: str,
        timeout: Optional[float] = None,
        **kwargs: Any,
    ) -> httpx.Response:
        """
        Send a request.

        Timeouts, connection failures and 5xx responses raise
        TransientExternalError; other error statuses are returned to the
        caller untouched.
        """
        try:
            response = await self.http_client.request(
                method, path, timeout=timeout or self.timeout, **kwargs
            )
        except httpx.TimeoutException as e:
            logger.warning(f"{self.service_name} {method} {path} timed out")
            raise TransientExternalError(self.service_name, f"{self.service_name} request timed out") from e
        except httpx.TransportError as e:
            logger.warning(f"{self.service_name} {method} {path} transport error: {e}")
            raise TransientExternalError(self.service_name, f"{self.service_name} unavailable: {e}") from e

        if response.status_code >= 500:
            raise TransientExternalError(
                self.service_name,
                f"{self.service_name} returned {response.status_code}",
            )
        return response

    def _json(self, response: httpx.Response) -> Dict[str, Any]:
        if response.status_code >= 400:
            raise ExternalServiceError(
                f"{self.service_name} returned {response.status_code}",
                details={"service": self.service_name, "body": response.text[:500]},
            )
        try:
            return response.json()
        except ValueError as e:
            raise ExternalServiceError(
                f"{self.service_name} returned a non-JSON body",
                details={"service": self.service_name},
            ) from e
