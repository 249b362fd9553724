"""Health, readiness, and version endpoints."""

from fastapi import APIRouter, Depends
from sqlalchemy import select, text
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.coins.pool import PoolAccountNotConfiguredError, get_pool_account_id
from learnhub.config import get_settings
from learnhub.database import get_session
from learnhub.db.models import User
from learnhub.redis_client import get_optional_redis

router = APIRouter()


async def _check_database(db: AsyncSession) -> str:
    try:
        await db.execute(text("SELECT 1"))
    except Exception as exc:  # noqa: BLE001
        return f"error: {exc}"
    return "ok"


async def _check_redis() -> str:
    redis = get_optional_redis()
    if redis is None:
        return "error: not configured"
    try:
        await redis.ping()
    except Exception as exc:  # noqa: BLE001
        return f"error: {exc}"
    return "ok"


async def _check_coin_pool(db: AsyncSession) -> str:
    """The pool must be registered and still exist as an active admin."""
    try:
        pool_id = get_pool_account_id()
    except PoolAccountNotConfiguredError as exc:
        return f"error: {exc}"
    try:
        active = await db.scalar(
            select(User.is_active).where(User.id == pool_id, User.role == "admin")
        )
    except Exception as exc:  # noqa: BLE001
        return f"error: {exc}"
    return "ok" if active else "error: pool account missing or inactive"


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness probe: returns 200 if the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness(
    db: AsyncSession = Depends(get_session),  # noqa: B008
) -> dict[str, object]:
    """Readiness probe. ``degraded`` when any dependency check fails."""
    checks = {
        "database": await _check_database(db),
        "redis": await _check_redis(),
        "coin_pool": await _check_coin_pool(db),
    }
    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
    }
