"""FastAPI authentication dependencies (the current-user provider)."""

from __future__ import annotations

import jwt
from fastapi import Depends, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from linguacred.auth.jwt import verify_token
from linguacred.database import get_session
from linguacred.db.models import User
from linguacred.errors import NotAuthenticatedError
from linguacred.users.service import get_user_by_id

_bearer = HTTPBearer(auto_error=False)


async def get_current_user_optional(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    db: AsyncSession = Depends(get_session),
) -> User | None:
    """Return the authenticated user, or None when no token was sent.

    A token that is present but invalid, or names an unknown user, is still
    an authentication failure.
    """
    if credentials is None:
        return None
    try:
        payload = verify_token(credentials.credentials, expected_type="access")
        user_id = int(payload["sub"])
    except (jwt.InvalidTokenError, KeyError, ValueError) as e:
        raise NotAuthenticatedError(str(e) or None) from e

    user = await get_user_by_id(db, user_id)
    if user is None:
        raise NotAuthenticatedError("User not found")
    return user


async def get_current_user(
    user: User | None = Depends(get_current_user_optional),
) -> User:
    """Require an authenticated user. Raises NotAuthenticatedError otherwise."""
    if user is None:
        raise NotAuthenticatedError
    return user
