"""Period analytics for the admin reports (``period`` is a number of days)."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

from sqlalchemy import distinct, func, select
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.dashboard.service import enrollment_revenue
from learnhub.db.models import Course, Enrollment, User
from learnhub.timeseries import count_by_day, period_start, sum_by_day


async def get_overview(session: AsyncSession, period: int) -> dict[str, Any]:
    """Revenue, sign-ups, enrollments and newly published courses in the period."""
    since = period_start(datetime.now(timezone.utc), period)
    new_users = await session.scalar(select(func.count()).select_from(User).where(User.created_at >= since))
    new_enrollments = await session.scalar(
        select(func.count()).select_from(Enrollment).where(Enrollment.enrolled_at >= since)
    )
    active_courses = await session.scalar(
        select(func.count()).select_from(Course).where(Course.status == "published", Course.created_at >= since)
    )
    return {
        "period": f"{period} days",
        "revenue": await enrollment_revenue(session, Enrollment.enrolled_at >= since),
        "new_users": new_users or 0,
        "new_enrollments": new_enrollments or 0,
        "active_courses": active_courses or 0,
    }


async def get_revenue(session: AsyncSession, period: int) -> dict[str, Any]:
    """Revenue by day and by course category."""
    since = period_start(datetime.now(timezone.utc), period)
    result = await session.execute(
        select(Enrollment.enrolled_at, Course.price, Course.category)
        .join(Course, Course.id == Enrollment.course_id)
        .where(Enrollment.enrolled_at >= since)
    )
    rows = result.all()

    by_category: dict[str, float] = {}
    for _, price, category in rows:
        key = category or "Uncategorized"
        by_category[key] = round(by_category.get(key, 0.0) + float(price or 0), 2)

    total = round(sum(float(price or 0) for _, price, _ in rows), 2)
    return {
        "total": total,
        "average": round(total / len(rows), 2) if rows else 0.0,
        "transactions": len(rows),
        "by_date": sum_by_day((enrolled_at, price or 0) for enrolled_at, price, _ in rows),
        "by_category": by_category,
    }


async def get_user_analytics(session: AsyncSession, period: int) -> dict[str, Any]:
    """Sign-ups by day plus users who enrolled during the period."""
    since = period_start(datetime.now(timezone.utc), period)
    created = await session.execute(select(User.created_at).where(User.created_at >= since))
    signups = list(created.scalars().all())

    active = await session.scalar(
        select(func.count(distinct(Enrollment.user_id))).where(Enrollment.enrolled_at >= since)
    ) or 0
    total_users = await session.scalar(select(func.count()).select_from(User)) or 0
    return {
        "new_users": len(signups),
        "active_users": active,
        "retention_rate": round(active / total_users * 100, 2) if total_users else 0.0,
        "by_date": count_by_day(signups),
    }


async def get_course_analytics(session: AsyncSession, period: int) -> dict[str, Any]:
    """Top courses by enrollment and by period revenue, with completion stats."""
    since = period_start(datetime.now(timezone.utc), period)
    top_enrolled = await session.execute(
        select(Course.id, Course.title, Course.enrolled_count, Course.rating, Course.price, Course.category)
        .where(Course.status == "published")
        .order_by(Course.enrolled_count.desc(), Course.id.asc())
        .limit(10)
    )

    enrollments = func.count(Enrollment.id).label("enrollments")
    top_revenue = await session.execute(
        select(Course.id, Course.title, Course.price, enrollments)
        .join(Enrollment, Enrollment.course_id == Course.id)
        .where(Enrollment.enrolled_at >= since)
        .group_by(Course.id, Course.title, Course.price)
        .order_by(enrollments.desc(), Course.id.asc())
        .limit(10)
    )

    completion = await session.execute(select(Enrollment.status, func.count()).group_by(Enrollment.status))
    return {
        "top_by_enrollment": [dict(row._mapping) for row in top_enrolled],
        "top_by_revenue": [
            {
                "id": row.id,
                "title": row.title,
                "enrollments": row.enrollments,
                "revenue": round(float(row.price or 0) * row.enrollments, 2),
            }
            for row in top_revenue
        ],
        "completion_stats": {status: count for status, count in completion},
    }


async def get_enrollment_analytics(session: AsyncSession, period: int) -> dict[str, Any]:
    """Enrollments by day and status, plus overall average progress."""
    since = period_start(datetime.now(timezone.utc), period)
    enrolled = await session.execute(select(Enrollment.enrolled_at).where(Enrollment.enrolled_at >= since))
    timestamps = list(enrolled.scalars().all())

    by_status = await session.execute(
        select(Enrollment.status, func.count()).where(Enrollment.enrolled_at >= since).group_by(Enrollment.status)
    )
    avg_progress = await session.scalar(select(func.avg(Enrollment.progress)))
    return {
        "total": len(timestamps),
        "by_date": count_by_day(timestamps),
        "by_status": {status: count for status, count in by_status},
        "average_progress": round(float(avg_progress or 0), 2),
    }
