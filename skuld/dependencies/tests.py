"""
Tests for Bearer token resolution
"""

import jwt
import pytest
from uuid import uuid4

from skuld.common.exceptions import UnauthorizedError
from skuld.core.config import settings
from skuld.dependencies.auth import decode_token, get_auth_context
from skuld.main import app


def make_token(claims, secret=None):
    return jwt.encode(claims, secret or settings.APP_SECRET_STRING, algorithm=settings.ALGORITHM)


class TestDecodeToken:

    def test_tenant_defaults_to_user(self):
        user_id = uuid4()
        context = decode_token(make_token({"sub": str(user_id)}))
        assert context.user_id == user_id
        assert context.tenant_id == user_id

    def test_explicit_tenant(self):
        user_id, tenant_id = uuid4(), uuid4()
        context = decode_token(make_token({"sub": str(user_id), "tenant_id": str(tenant_id)}))
        assert context.tenant_id == tenant_id

    @pytest.mark.parametrize("token", [
        make_token({"sub": str(uuid4())}, secret="another-secret-entirely-and-long-enough"),
        make_token({"role": "authenticated"}),
        make_token({"sub": "not-a-uuid"}),
        "garbage",
    ])
    def test_rejected(self, token):
        with pytest.raises(UnauthorizedError):
            decode_token(token)


class TestAuthenticatedRoutes:

    async def test_missing_token(self, client):
        app.dependency_overrides.pop(get_auth_context)

        response = await client.get("/contacts")

        assert response.status_code == 401
        assert response.json() == {"detail": "Authentication required", "code": "UNAUTHORIZED"}
        assert response.headers["www-authenticate"] == "Bearer"

    async def test_valid_token(self, client):
        app.dependency_overrides.pop(get_auth_context)
        token = make_token({"sub": str(uuid4())})

        response = await client.get("/contacts", headers={"Authorization": f"Bearer {token}"})

        assert response.status_code == 200
        assert response.json()["meta"]["total"] == 0

    async def test_public_health_check(self, client):
        response = await client.get("/health")
        assert response.json() == {"status": "healthy", "environment": "test"}
        assert response.headers["x-content-type-options"] == "nosniff"
        assert "x-request-id" in response.headers
