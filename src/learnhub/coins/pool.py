"""Coin pool account registration.

Every reward is funded by a single admin account (the pool). Its id is
resolved once at startup by :func:`seed_pool_account` and registered here;
transfers receive it explicitly instead of looking an admin up per call.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select

from learnhub.auth.password import hash_password
from learnhub.config import DEFAULT_POOL_ACCOUNT_PASSWORD
from learnhub.db.models import CoinTransaction, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from learnhub.config import Settings

logger = structlog.get_logger()

_pool_account_id: int | None = None


class PoolAccountNotConfiguredError(RuntimeError):
    """Raised when a reward transfer is attempted before the pool is registered."""


def set_pool_account(user_id: int) -> None:
    """Register the pool account id for this process."""
    global _pool_account_id  # noqa: PLW0603
    _pool_account_id = user_id


def clear_pool_account() -> None:
    """Forget the registered pool account (shutdown and tests)."""
    global _pool_account_id  # noqa: PLW0603
    _pool_account_id = None


def get_pool_account_id() -> int:
    """Get the registered pool account id."""
    if _pool_account_id is None:
        msg = "Coin pool account is not configured"
        raise PoolAccountNotConfiguredError(msg)
    return _pool_account_id


async def seed_pool_account(db: AsyncSession, settings: Settings) -> User:
    """Create the pool admin with its initial allocation if it does not exist yet.

    Idempotent: an existing account is returned untouched. The caller commits.
    The built-in default password is only accepted in development.
    """
    email = settings.pool_account_email.lower().strip()
    result = await db.execute(select(User).where(func.lower(User.email) == email))
    pool = result.scalar_one_or_none()
    if pool is not None:
        if pool.role != "admin":
            msg = f"Pool account {email} exists but is not an admin"
            raise PoolAccountNotConfiguredError(msg)
        return pool

    if settings.pool_account_password == DEFAULT_POOL_ACCOUNT_PASSWORD:
        if settings.environment != "development":
            msg = "LEARNHUB_POOL_ACCOUNT_PASSWORD must be set outside development"
            raise PoolAccountNotConfiguredError(msg)
        logger.warning("pool_account_default_password", email=email)

    now = datetime.now(timezone.utc)
    pool = User(
        name=settings.pool_account_name,
        email=email,
        password_hash=hash_password(settings.pool_account_password),
        role="admin",
        is_active=True,
        coins=settings.pool_initial_coins,
        created_at=now,
        updated_at=now,
    )
    db.add(pool)
    await db.flush()

    if settings.pool_initial_coins > 0:
        db.add(
            CoinTransaction(
                user_id=pool.id,
                amount=settings.pool_initial_coins,
                kind="bonus",
                reason="Initial admin coin allocation",
                created_at=now,
            )
        )
        await db.flush()

    logger.info("pool_account_seeded", user_id=pool.id, email=email, coins=settings.pool_initial_coins)
    return pool
