"""
Authentication API endpoints.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, status

from vendorspend.core.logging import get_logger
from vendorspend.services.auth_service import (
    PermissionCache,
    Principal,
    get_current_principal,
    get_permission_cache,
    require_permission,
)

logger = get_logger(__name__)
router = APIRouter()


@router.get("/me")
async def read_current_principal(principal: Principal = Depends(get_current_principal)):
    """Identity and capabilities of the caller."""
    return {
        "user_id": principal.user_id,
        "email": principal.email,
        "organization_id": principal.organization_id,
        "roles": principal.roles,
        "permissions": principal.permissions,
    }


@router.post("/permissions/{user_id}/invalidate", status_code=status.HTTP_204_NO_CONTENT)
async def invalidate_permissions(
    user_id: UUID,
    principal: Principal = Depends(require_permission("permissions:update")),
    cache: PermissionCache = Depends(get_permission_cache),
):
    """Drop a user's cached permissions after a role or permission change."""
    cache.invalidate(user_id)
    logger.info(f"Permission cache entry for {user_id} invalidated by {principal.user_id}")
