"""Course catalog business logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, select, update

from learnhub.db.models import ContentItem, Course, Enrollment
from learnhub.pagination import paginate

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def list_courses(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 20,
    *,
    status: str | None = "published",
    category: str | None = None,
    level: str | None = None,
    search: str | None = None,
) -> tuple[list[Course], int]:
    """List courses, newest first. Public callers keep the default ``published`` filter."""
    query = select(Course)
    if status is not None:
        query = query.where(Course.status == status)
    if category:
        query = query.where(Course.category == category)
    if level:
        query = query.where(Course.level == level)
    if search:
        query = query.where(Course.title.ilike(f"%{search}%"))
    query = query.order_by(Course.created_at.desc(), Course.id.desc())
    return await paginate(db, query, page, per_page)


async def get_course(db: AsyncSession, course_id: int) -> Course | None:
    """Fetch a course by ID regardless of status."""
    return await db.get(Course, course_id)


async def get_published_course(db: AsyncSession, course_id: int) -> Course | None:
    """Fetch a course only if learners may see it."""
    course = await db.get(Course, course_id)
    if course is None or course.status != "published":
        return None
    return course


async def create_course(db: AsyncSession, created_by: int, fields: dict[str, Any]) -> Course:
    """Create a catalog entry owned by the creating admin."""
    now = datetime.now(timezone.utc)
    course = Course(**fields, created_by=created_by, created_at=now, updated_at=now)
    db.add(course)
    await db.flush()
    logger.info("course_created", course_id=course.id, created_by=created_by)
    return course


async def update_course(db: AsyncSession, course: Course, fields: dict[str, Any]) -> Course:
    """Apply a partial update."""
    for key, value in fields.items():
        setattr(course, key, value)
    course.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return course


async def delete_course(db: AsyncSession, course: Course) -> None:
    """Delete a course with its enrollments; attached content items are kept but unlinked."""
    await db.execute(delete(Enrollment).where(Enrollment.course_id == course.id))
    await db.execute(
        update(ContentItem).where(ContentItem.course_id == course.id).values(course_id=None)
    )
    await db.delete(course)
    await db.flush()
    logger.info("course_deleted", course_id=course.id)
