"""
RS256 access tokens.

A token names the user (``sub``) and their role. The role claim is only a
hint: request handlers always reload the user and re-check the stored role,
so demoting or deactivating an account takes effect immediately.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any

import jwt

from learnhub.config import get_settings

ROLES = frozenset({"user", "admin"})

_private_key: str | None = None
_public_key: str | None = None


@dataclass(frozen=True)
class TokenClaims:
    user_id: int
    role: str
    expires_at: datetime


def _load_keys() -> tuple[str, str]:
    """Read the PEM key pair once per process."""
    global _private_key, _public_key  # noqa: PLW0603
    if _private_key is None or _public_key is None:
        settings = get_settings()
        _private_key = Path(settings.jwt_private_key_path).read_text()
        _public_key = Path(settings.jwt_public_key_path).read_text()
    return _private_key, _public_key


def reset_keys() -> None:
    """Forget the cached key pair so the next call re-reads the configured paths."""
    global _private_key, _public_key  # noqa: PLW0603
    _private_key = None
    _public_key = None


def create_access_token(user_id: int, role: str) -> str:
    """Sign a token for ``user_id`` valid for ``jwt_access_token_expire_minutes``."""
    if role not in ROLES:
        msg = f"Unknown role: {role}"
        raise ValueError(msg)
    private_key, _ = _load_keys()
    settings = get_settings()
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "iat": now,
        "exp": now + timedelta(minutes=settings.jwt_access_token_expire_minutes),
        "iss": settings.jwt_issuer,
    }
    return jwt.encode(payload, private_key, algorithm=settings.jwt_algorithm)


def verify_token(token: str) -> dict[str, Any]:
    """
    Check signature, issuer and expiry and return the raw payload.

    Raises:
        jwt.InvalidTokenError: On any failure; expiry gets its own message.
    """
    _, public_key = _load_keys()
    settings = get_settings()
    try:
        return jwt.decode(
            token,
            public_key,
            algorithms=[settings.jwt_algorithm],
            issuer=settings.jwt_issuer,
            options={"require": ["sub", "exp", "iss"]},
        )
    except jwt.ExpiredSignatureError:
        msg = "Token has expired"
        raise jwt.InvalidTokenError(msg) from None


def decode_access_token(token: str) -> TokenClaims:
    """
    Verify a token and return its claims.

    Raises:
        jwt.InvalidTokenError: If the token is invalid or its subject is not a user id.
    """
    payload = verify_token(token)
    try:
        user_id = int(payload["sub"])
    except (TypeError, ValueError):
        msg = "Invalid token subject"
        raise jwt.InvalidTokenError(msg) from None
    return TokenClaims(
        user_id=user_id,
        role=payload.get("role", "user"),
        expires_at=datetime.fromtimestamp(payload["exp"], tz=timezone.utc),
    )
