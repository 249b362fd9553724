"""Admin dashboard and analytics endpoints."""

from __future__ import annotations

from typing import Any

import redis.asyncio as aioredis
from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_admin
from learnhub.config import get_settings
from learnhub.dashboard.analytics_service import (
    get_course_analytics,
    get_enrollment_analytics,
    get_overview,
    get_revenue,
    get_user_analytics,
)
from learnhub.dashboard.service import get_dashboard_stats, get_performance_metrics, get_recent_activity
from learnhub.database import get_session
from learnhub.db.models import User
from learnhub.dependencies import get_redis_dep

router = APIRouter(prefix="/api/v1/admin/dashboard", tags=["Admin"])
analytics_router = APIRouter(prefix="/api/v1/admin/analytics", tags=["Admin"])


@router.get("/stats")
async def dashboard_stats(
    redis: aioredis.Redis | None = Depends(get_redis_dep),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Platform totals and 30-day growth (briefly cached in Redis)."""
    return await get_dashboard_stats(db, redis, get_settings().dashboard_cache_ttl_seconds)


@router.get("/activity")
async def recent_activity(
    limit: int = Query(10, ge=1, le=50),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Recent enrollments, sign-ups and courses."""
    activity = await get_recent_activity(db, limit)
    return {"count": len(activity), "activity": activity}


@router.get("/metrics")
async def performance_metrics(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Engagement metrics."""
    return await get_performance_metrics(db)


@analytics_router.get("/overview")
async def analytics_overview(
    period: int = Query(30, ge=1, le=3650),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return await get_overview(db, period)


@analytics_router.get("/revenue")
async def analytics_revenue(
    period: int = Query(30, ge=1, le=3650),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return await get_revenue(db, period)


@analytics_router.get("/users")
async def analytics_users(
    period: int = Query(30, ge=1, le=3650),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return await get_user_analytics(db, period)


@analytics_router.get("/courses")
async def analytics_courses(
    period: int = Query(30, ge=1, le=3650),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return await get_course_analytics(db, period)


@analytics_router.get("/enrollments")
async def analytics_enrollments(
    period: int = Query(30, ge=1, le=3650),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    return await get_enrollment_analytics(db, period)
