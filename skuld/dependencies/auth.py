"""
Authentication context for FastAPI endpoints.

Tokens are issued by the external identity provider and signed with the
shared secret. The ``sub`` claim is the user id; the optional ``tenant_id``
claim scopes the data (it defaults to the user id, one tenant per user).
"""
from typing import Annotated, Optional
from uuid import UUID

import jwt
from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from pydantic import BaseModel

from skuld.common.exceptions import UnauthorizedError
from skuld.core.config import settings

# Security scheme
security = HTTPBearer(auto_error=False)


class AuthContext(BaseModel):
    user_id: UUID
    tenant_id: UUID


def decode_token(token: str) -> AuthContext:
    try:
        payload = jwt.decode(
            token,
            settings.APP_SECRET_STRING,
            algorithms=[settings.ALGORITHM],
            options={"verify_aud": False},
        )
    except jwt.PyJWTError:
        raise UnauthorizedError("Invalid or expired token")

    user_id = payload.get("sub")
    if user_id is None:
        raise UnauthorizedError("Invalid or expired token")

    try:
        return AuthContext(
            user_id=UUID(str(user_id)),
            tenant_id=UUID(str(payload.get("tenant_id", user_id))),
        )
    except ValueError:
        raise UnauthorizedError("Invalid or expired token")


def get_auth_context(
    credentials: Optional[HTTPAuthorizationCredentials] = Depends(security),
) -> AuthContext:
    """Resolve the caller from the Bearer token"""
    if credentials is None or credentials.scheme.lower() != "bearer":
        raise UnauthorizedError()
    return decode_token(credentials.credentials)


auth_dependency = Annotated[AuthContext, Depends(get_auth_context)]
