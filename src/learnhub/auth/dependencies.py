"""FastAPI authentication dependencies."""

from __future__ import annotations

import jwt
from fastapi import Depends, Header, HTTPException, Security
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.jwt import decode_access_token
from learnhub.auth.service import get_user_by_id
from learnhub.database import get_session
from learnhub.db.models import User

_bearer = HTTPBearer(auto_error=False)


def extract_token(
    credentials: HTTPAuthorizationCredentials | None,
    x_auth_token: str | None,
    x_access_token: str | None,
) -> str | None:
    """Pick the credential: Bearer header first, then X-Auth-Token, then X-Access-Token."""
    if credentials is not None and credentials.credentials:
        return credentials.credentials
    return x_auth_token or x_access_token or None


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(_bearer),
    x_auth_token: str | None = Header(None),
    x_access_token: str | None = Header(None),
    db: AsyncSession = Depends(get_session),
) -> User:
    """
    Extract and verify the JWT, return the acting User.

    Raises 401 when the token is missing or invalid, the user no longer exists,
    or the account has been deactivated.
    """
    token = extract_token(credentials, x_auth_token, x_access_token)
    if not token:
        raise HTTPException(status_code=401, detail="Not authorized, no token provided")

    try:
        claims = decode_access_token(token)
    except jwt.InvalidTokenError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e

    user = await get_user_by_id(db, claims.user_id)
    if user is None:
        raise HTTPException(status_code=401, detail="User not found")
    if not user.is_active:
        raise HTTPException(status_code=401, detail="User account is deactivated")
    return user


async def get_current_admin(
    user: User = Depends(get_current_user),
) -> User:
    """Same as get_current_user but additionally requires the admin role."""
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    return user
