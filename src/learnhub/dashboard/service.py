"""Admin dashboard aggregation.

Headline stats are cached in Redis for a few seconds when Redis is available;
activity and metrics are computed on every call.
"""

from __future__ import annotations

import json
from datetime import datetime, timedelta, timezone
from typing import Any

import redis.asyncio as aioredis
import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.coins.ledger import get_balance
from learnhub.coins.pool import get_pool_account_id
from learnhub.db.models import Course, Enrollment, User
from learnhub.redis_client import redis_key
from learnhub.timeseries import growth_rate

logger = structlog.get_logger()

DASHBOARD_CACHE_KEY = redis_key("dashboard", "stats")
WINDOW_DAYS = 30


async def _count(session: AsyncSession, model: type, *criteria: Any) -> int:
    return await session.scalar(select(func.count()).select_from(model).where(*criteria)) or 0


async def enrollment_revenue(session: AsyncSession, *criteria: Any) -> float:
    """Sum of course prices over the enrollments matching ``criteria``."""
    total = await session.scalar(
        select(func.coalesce(func.sum(Course.price), 0))
        .select_from(Enrollment)
        .join(Course, Course.id == Enrollment.course_id)
        .where(*criteria)
    )
    return round(float(total or 0), 2)


async def _compute_stats(session: AsyncSession) -> dict[str, Any]:
    now = datetime.now(timezone.utc)
    window_start = now - timedelta(days=WINDOW_DAYS)
    previous_start = now - timedelta(days=2 * WINDOW_DAYS)

    users_recent = await _count(session, User, User.created_at >= window_start)
    users_previous = await _count(
        session, User, User.created_at >= previous_start, User.created_at < window_start
    )
    enrollments_recent = await _count(session, Enrollment, Enrollment.enrolled_at >= window_start)
    enrollments_previous = await _count(
        session, Enrollment, Enrollment.enrolled_at >= previous_start, Enrollment.enrolled_at < window_start
    )
    revenue_recent = await enrollment_revenue(session, Enrollment.enrolled_at >= window_start)
    revenue_previous = await enrollment_revenue(
        session, Enrollment.enrolled_at >= previous_start, Enrollment.enrolled_at < window_start
    )

    return {
        "total_users": await _count(session, User),
        "total_courses": await _count(session, Course),
        "total_enrollments": await _count(session, Enrollment),
        "total_revenue": await enrollment_revenue(session),
        "users_this_month": users_recent,
        "courses_this_month": await _count(session, Course, Course.created_at >= window_start),
        "enrollments_this_month": enrollments_recent,
        "revenue_this_month": revenue_recent,
        "pool_coin_balance": await get_balance(session, get_pool_account_id()) or 0,
        "growth_rates": {
            "users": growth_rate(users_recent, users_previous),
            "enrollments": growth_rate(enrollments_recent, enrollments_previous),
            "revenue": growth_rate(revenue_recent, revenue_previous),
        },
    }


async def get_dashboard_stats(
    session: AsyncSession,
    redis: aioredis.Redis | None,
    ttl_seconds: int,
) -> dict[str, Any]:
    """Platform totals, 30-day counts, growth rates and the pool balance.

    Served from Redis for ``ttl_seconds`` when a client is given.
    """
    if redis is not None:
        try:
            cached = await redis.get(DASHBOARD_CACHE_KEY)
        except aioredis.RedisError:
            logger.warning("dashboard_cache_read_failed", exc_info=True)
            cached = None
        if cached:
            return json.loads(cached)

    stats = await _compute_stats(session)

    if redis is not None and ttl_seconds > 0:
        try:
            await redis.setex(DASHBOARD_CACHE_KEY, ttl_seconds, json.dumps(stats))
        except aioredis.RedisError:
            logger.warning("dashboard_cache_write_failed", exc_info=True)
    return stats


async def get_recent_activity(session: AsyncSession, limit: int = 10) -> list[dict[str, Any]]:
    """Latest enrollments, sign-ups and course creations merged newest first."""
    enrollments = await session.execute(
        select(Enrollment.enrolled_at, User.id, User.name, Course.title)
        .join(User, User.id == Enrollment.user_id)
        .join(Course, Course.id == Enrollment.course_id)
        .order_by(Enrollment.enrolled_at.desc())
        .limit(limit)
    )
    users = await session.execute(
        select(User.id, User.name, User.created_at).order_by(User.created_at.desc()).limit(limit)
    )
    courses = await session.execute(
        select(Course.id, Course.title, Course.status, Course.instructor, Course.created_at, User.name)
        .outerjoin(User, User.id == Course.created_by)
        .order_by(Course.created_at.desc())
        .limit(limit)
    )

    activity: list[dict[str, Any]] = [
        {
            "type": "enrollment",
            "message": f"{name} enrolled in {title}",
            "user_id": user_id,
            "timestamp": enrolled_at,
            "icon": "book",
        }
        for enrolled_at, user_id, name, title in enrollments
    ]
    activity.extend(
        {
            "type": "user",
            "message": f"{name} joined the platform",
            "user_id": user_id,
            "timestamp": created_at,
            "icon": "user",
        }
        for user_id, name, created_at in users
    )
    for course_id, title, status, instructor, created_at, creator in courses:
        verb = "published" if status == "published" else "created"
        activity.append(
            {
                "type": "course",
                "message": f'New course "{title}" {verb} by {creator or instructor}',
                "course_id": course_id,
                "timestamp": created_at,
                "icon": "video",
            }
        )

    activity.sort(key=lambda item: item["timestamp"], reverse=True)
    return activity[:limit]


async def get_performance_metrics(session: AsyncSession) -> dict[str, Any]:
    """Engagement metrics: active users, completion, ratings, retention, top courses."""
    since = datetime.now(timezone.utc) - timedelta(days=7)
    active_users = await _count(session, User, or_(User.last_login >= since, User.updated_at >= since))

    total_enrollments = await _count(session, Enrollment)
    completed = await _count(session, Enrollment, Enrollment.status == "completed")
    completion_rate = round(completed / total_enrollments * 100, 2) if total_enrollments else 0.0

    avg_rating = await session.scalar(select(func.avg(Course.rating)).where(Course.rating > 0))

    repeat_learners = select(Enrollment.user_id).group_by(Enrollment.user_id).having(func.count() > 1)
    retained = await session.scalar(select(func.count()).select_from(repeat_learners.subquery())) or 0
    total_users = await _count(session, User)
    retention_rate = round(retained / total_users * 100, 2) if total_users else 0.0

    popular = await session.execute(
        select(Course.id, Course.title, Course.enrolled_count, Course.rating)
        .order_by(Course.enrolled_count.desc(), Course.id.asc())
        .limit(5)
    )
    return {
        "active_users": active_users,
        "completion_rate": completion_rate,
        "average_rating": round(float(avg_rating or 0), 2),
        "retention_rate": retention_rate,
        "popular_courses": [
            {"id": row.id, "title": row.title, "enrolled_count": row.enrolled_count, "rating": row.rating}
            for row in popular
        ],
    }
