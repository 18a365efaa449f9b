"""
Authentication and permission checks backed by the identity service.
"""

import logging
import time
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Tuple

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from vendorspend.clients.identity import IdentityClient
from vendorspend.core.config import settings
from vendorspend.core.exceptions import AuthenticationError
from vendorspend.core.retry import retry_with_backoff

logger = logging.getLogger(__name__)

security = HTTPBearer(auto_error=False)


@dataclass
class Principal:
    """Authenticated caller and their capabilities."""
    user_id: uuid.UUID
    email: Optional[str] = None
    organization_id: Optional[uuid.UUID] = None
    roles: List[str] = field(default_factory=list)
    permissions: List[str] = field(default_factory=list)

    def has_permission(self, permission: str) -> bool:
        """Set-membership test on ``resource:action`` capability names."""
        return permission in self.permissions


class PermissionCache:
    """
    Short-lived read-through cache of roles and permissions per user.

    Never authoritative: entries expire after the TTL and can be dropped
    at any time with ``invalidate``.
    """

    def __init__(self, ttl_seconds: Optional[int] = None, clock: Callable[[], float] = time.monotonic):
        self.ttl_seconds = settings.PERMISSION_CACHE_TTL_SECONDS if ttl_seconds is None else ttl_seconds
        self._clock = clock
        self._entries: Dict[str, Tuple[float, Dict[str, Any]]] = {}

    @staticmethod
    def key(user_id: Any) -> str:
        return f"user:{user_id}:permissions"

    def get(self, user_id: Any) -> Optional[Dict[str, Any]]:
        key = self.key(user_id)
        entry = self._entries.get(key)
        if entry is None:
            return None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return None
        return value

    def set(self, user_id: Any, value: Dict[str, Any]):
        self._entries[self.key(user_id)] = (self._clock() + self.ttl_seconds, value)

    def invalidate(self, user_id: Any):
        """Drop a user's entry after a role or permission change."""
        self._entries.pop(self.key(user_id), None)

    def clear(self):
        self._entries.clear()

    def __len__(self):
        return len(self._entries)


class AuthService:
    """Resolves bearer tokens to principals."""

    def __init__(self, identity_client: IdentityClient, cache: PermissionCache):
        self.identity_client = identity_client
        self.cache = cache

    async def get_permissions(self, user_id: Any) -> Dict[str, Any]:
        cached = self.cache.get(user_id)
        if cached is not None:
            return cached

        grants = await retry_with_backoff(
            lambda: self.identity_client.get_permissions(str(user_id)),
            operation_name="identity.get_permissions",
            context={"user_id": user_id},
        )
        self.cache.set(user_id, grants)
        return grants

    async def authenticate(self, token: str) -> Principal:
        claims = await retry_with_backoff(
            lambda: self.identity_client.verify_token(token),
            operation_name="identity.verify_token",
        )
        user_id = claims.get("user_id")
        if not user_id:
            raise AuthenticationError("Invalid token payload")

        grants = await self.get_permissions(user_id)
        organization_id = claims.get("organization_id")
        return Principal(
            user_id=uuid.UUID(str(user_id)),
            email=claims.get("email"),
            organization_id=uuid.UUID(str(organization_id)) if organization_id else None,
            roles=list(grants.get("roles") or claims.get("roles") or []),
            permissions=list(grants.get("permissions") or []),
        )


def get_permission_cache(request: Request) -> PermissionCache:
    return request.app.state.permission_cache


def get_auth_service(request: Request) -> AuthService:
    return AuthService(request.app.state.identity_client, request.app.state.permission_cache)


async def get_current_principal(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
    auth_service: AuthService = Depends(get_auth_service),
) -> Principal:
    """Authenticate the bearer token on the request."""
    if credentials is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Not authenticated",
            headers={"WWW-Authenticate": "Bearer"},
        )

    try:
        return await auth_service.authenticate(credentials.credentials)
    except AuthenticationError as e:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=e.message,
            headers={"WWW-Authenticate": "Bearer"},
        )


def require_permission(permission: str):
    """Dependency factory requiring a ``resource:action`` capability."""
    def permission_checker(principal: Principal = Depends(get_current_principal)) -> Principal:
        if not principal.has_permission(permission):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail=f"Permission denied: {permission}",
                headers={"WWW-Authenticate": "Bearer"},
            )
        return principal

    return permission_checker
