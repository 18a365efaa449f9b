"""
Client for the identity / authorization service.
"""

from typing import Any, Dict, Optional

import httpx

from vendorspend.clients.base import ServiceClient
from vendorspend.core.config import settings
from vendorspend.core.exceptions import AuthenticationError


class IdentityClient(ServiceClient):
    """Resolves bearer tokens and permission sets."""

    service_name = "identity"

    def __init__(self, base_url: Optional[str] = None, timeout: Optional[float] = None,
                 transport: Optional[httpx.AsyncBaseTransport] = None):
        super().__init__(
            base_url or settings.IDENTITY_SERVICE_URL,
            timeout or settings.IDENTITY_TIMEOUT_SECONDS,
            transport=transport,
        )

    async def verify_token(self, token: str) -> Dict[str, Any]:
        """Return ``{user_id, email, organization_id, roles}`` for a valid token."""
        response = await self._request(
            "POST", "/tokens/verify", headers={"Authorization": f"Bearer {token}"}
        )
        if response.status_code in (401, 403):
            raise AuthenticationError("Invalid or expired token")
        return self._json(response)

    async def get_permissions(self, user_id: str) -> Dict[str, Any]:
        """Return ``{roles, permissions}`` for a user."""
        response = await self._request("GET", f"/users/{user_id}/permissions")
        if response.status_code == 404:
            raise AuthenticationError("Unknown user")
        return self._json(response)
