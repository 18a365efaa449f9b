"""
Tests for the permission cache and token authentication.
"""

import uuid
from unittest.mock import AsyncMock

import pytest

from vendorspend.core.config import settings
from vendorspend.core.exceptions import AuthenticationError, TransientExternalError
from vendorspend.services.auth_service import AuthService, PermissionCache, Principal


class FakeClock:
    def __init__(self):
        self.now = 1000.0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def cache(clock):
    return PermissionCache(ttl_seconds=300, clock=clock)


@pytest.fixture
def identity_client():
    client = AsyncMock()
    client.verify_token.return_value = {
        "user_id": "6f1c1d2e-0b7a-4d59-8d8e-7c3f2a9b1e01",
        "email": "ap.clerk@riversidehealth.org",
        "organization_id": None,
    }
    client.get_permissions.return_value = {
        "roles": ["AP Clerk"],
        "permissions": ["invoices:read", "exceptions:view"],
    }
    return client


class TestPermissionCache:

    def test_key_format(self):
        assert PermissionCache.key("abc") == "user:abc:permissions"

    def test_entry_expires_after_ttl(self, cache, clock):
        cache.set("u1", {"permissions": ["invoices:read"]})
        clock.now += 299
        assert cache.get("u1") == {"permissions": ["invoices:read"]}

        clock.now += 1
        assert cache.get("u1") is None
        assert len(cache) == 0

    def test_invalidate_drops_entry(self, cache):
        cache.set("u1", {"permissions": []})
        cache.set("u2", {"permissions": []})

        cache.invalidate("u1")

        assert cache.get("u1") is None
        assert cache.get("u2") is not None

    def test_invalidate_unknown_user_is_noop(self, cache):
        cache.invalidate("nobody")
        assert len(cache) == 0

    def test_clear(self, cache):
        cache.set("u1", {})
        cache.clear()
        assert len(cache) == 0


class TestPrincipal:

    def test_has_permission(self):
        principal = Principal(user_id=uuid.uuid4(), permissions=["approvals:approve"])

        assert principal.has_permission("approvals:approve") is True
        assert principal.has_permission("approvals:reject") is False


class TestAuthService:

    @pytest.mark.asyncio
    async def test_authenticate_builds_principal(self, identity_client, cache):
        principal = await AuthService(identity_client, cache).authenticate("token-123")

        assert principal.user_id == uuid.UUID("6f1c1d2e-0b7a-4d59-8d8e-7c3f2a9b1e01")
        assert principal.roles == ["AP Clerk"]
        assert principal.has_permission("invoices:read")
        identity_client.verify_token.assert_awaited_once_with("token-123")

    @pytest.mark.asyncio
    async def test_permissions_are_served_from_cache(self, identity_client, cache):
        service = AuthService(identity_client, cache)

        await service.authenticate("token-123")
        await service.authenticate("token-123")

        assert identity_client.get_permissions.await_count == 1

    @pytest.mark.asyncio
    async def test_invalidation_forces_reload(self, identity_client, cache):
        service = AuthService(identity_client, cache)
        principal = await service.authenticate("token-123")

        cache.invalidate(principal.user_id)
        identity_client.get_permissions.return_value = {"roles": ["AP Clerk"], "permissions": []}
        reloaded = await service.authenticate("token-123")

        assert identity_client.get_permissions.await_count == 2
        assert reloaded.permissions == []

    @pytest.mark.asyncio
    async def test_missing_user_id_is_rejected(self, identity_client, cache):
        identity_client.verify_token.return_value = {"email": "someone@example.org"}

        with pytest.raises(AuthenticationError):
            await AuthService(identity_client, cache).authenticate("token-123")

    @pytest.mark.asyncio
    async def test_transient_identity_failure_is_retried(self, identity_client, cache, monkeypatch):
        monkeypatch.setattr(settings, "RETRY_INITIAL_DELAY", 0)
        identity_client.verify_token.side_effect = [
            TransientExternalError("identity", "identity unavailable"),
            {"user_id": "6f1c1d2e-0b7a-4d59-8d8e-7c3f2a9b1e01"},
        ]

        principal = await AuthService(identity_client, cache).authenticate("token-123")

        assert principal.email is None
        assert identity_client.verify_token.await_count == 2
