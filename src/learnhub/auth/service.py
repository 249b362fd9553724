"""
Authentication business logic: registration, credential checks, user lookups.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from learnhub.auth.password import hash_password, needs_rehash, validate_password_strength, verify_password
from learnhub.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class AccountDisabledError(PermissionError):
    """Raised when a deactivated account tries to log in."""


async def get_user_by_id(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    result = await db.execute(select(User).where(User.id == user_id))
    return result.scalar_one_or_none()


async def get_user_by_email(db: AsyncSession, email: str) -> User | None:
    """Fetch a user by email (case-insensitive)."""
    result = await db.execute(select(User).where(func.lower(User.email) == email.lower().strip()))
    return result.scalar_one_or_none()


async def register_user(db: AsyncSession, name: str, email: str, password: str) -> User:
    """
    Register a new learner account.

    Raises:
        ValueError: If the email is already registered or the password is weak.
    """
    validate_password_strength(password)

    existing = await get_user_by_email(db, email)
    if existing is not None:
        msg = "Email already registered"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    user = User(
        name=name.strip(),
        email=email.lower().strip(),
        password_hash=hash_password(password),
        role="user",
        is_active=True,
        coins=0,
        created_at=now,
        updated_at=now,
        last_login=now,
    )
    db.add(user)
    await db.flush()
    logger.info("user_registered", user_id=user.id, email=user.email)
    return user


async def authenticate_user(db: AsyncSession, email: str, password: str) -> User | None:
    """
    Check credentials.

    Returns the user on success and None on unknown email or wrong password.

    Raises:
        AccountDisabledError: If the credentials are right but the account is deactivated.
    """
    user = await get_user_by_email(db, email)
    if user is None or not verify_password(password, user.password_hash):
        logger.info("login_failed", email=email)
        return None
    if not user.is_active:
        msg = "Account is deactivated"
        raise AccountDisabledError(msg)

    if needs_rehash(user.password_hash):
        user.password_hash = hash_password(password)
        logger.info("password_rehashed", user_id=user.id)
    user.last_login = datetime.now(timezone.utc)
    await db.flush()
    return user
