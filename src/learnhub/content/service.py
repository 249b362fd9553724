"""Content library business logic."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, or_, select, update

from learnhub.db.models import ContentItem, Course
from learnhub.pagination import paginate

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

COUNTERS = ("views", "downloads")
REQUIRED_FIELDS = frozenset({"title", "type", "url", "size_bytes", "status", "tags"})


async def _check_course(db: AsyncSession, course_id: int | None) -> None:
    if course_id is not None and await db.get(Course, course_id) is None:
        msg = f"Course {course_id} does not exist"
        raise ValueError(msg)


async def list_content(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 20,
    *,
    type_: str | None = None,
    status: str | None = None,
    course_id: int | None = None,
    search: str | None = None,
) -> tuple[list[ContentItem], int]:
    """Content items, newest first."""
    query = select(ContentItem)
    if type_:
        query = query.where(ContentItem.type == type_)
    if status:
        query = query.where(ContentItem.status == status)
    if course_id is not None:
        query = query.where(ContentItem.course_id == course_id)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(ContentItem.title.ilike(pattern), ContentItem.description.ilike(pattern)))
    query = query.order_by(ContentItem.created_at.desc(), ContentItem.id.desc())
    return await paginate(db, query, page, per_page)


async def get_content(db: AsyncSession, content_id: int) -> ContentItem | None:
    """Fetch a content item by ID."""
    return await db.get(ContentItem, content_id)


async def create_content(db: AsyncSession, uploaded_by: int, fields: dict[str, Any]) -> ContentItem:
    """
    Register a content item.

    Raises:
        ValueError: If ``course_id`` points at a missing course.
    """
    await _check_course(db, fields.get("course_id"))
    now = datetime.now(timezone.utc)
    item = ContentItem(**fields, uploaded_by=uploaded_by, created_at=now, updated_at=now)
    db.add(item)
    await db.flush()
    logger.info("content_created", content_id=item.id, type=item.type)
    return item


async def update_content(db: AsyncSession, item: ContentItem, fields: dict[str, Any]) -> ContentItem:
    """Apply a partial update."""
    if "course_id" in fields:
        await _check_course(db, fields["course_id"])
    for key, value in fields.items():
        if value is None and key in REQUIRED_FIELDS:
            continue
        setattr(item, key, value)
    item.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return item


async def delete_content(db: AsyncSession, item: ContentItem) -> None:
    """Remove a content item."""
    await db.delete(item)
    await db.flush()
    logger.info("content_deleted", content_id=item.id)


async def increment_counter(db: AsyncSession, content_id: int, counter: str) -> int | None:
    """Atomically bump ``views`` or ``downloads``. Returns the new value, or None if missing."""
    if counter not in COUNTERS:
        msg = f"Unknown counter: {counter}"
        raise ValueError(msg)
    column = getattr(ContentItem, counter)
    result = await db.execute(
        update(ContentItem)
        .where(ContentItem.id == content_id)
        .values({column: column + 1})
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        return None
    return await db.scalar(select(column).where(ContentItem.id == content_id))


async def get_content_stats(db: AsyncSession) -> dict[str, Any]:
    """Totals by type and status plus size, views and downloads."""
    totals = await db.execute(
        select(
            func.count(ContentItem.id),
            func.coalesce(func.sum(ContentItem.size_bytes), 0),
            func.coalesce(func.sum(ContentItem.views), 0),
            func.coalesce(func.sum(ContentItem.downloads), 0),
        )
    )
    count, size, views, downloads = totals.one()

    by_type = {t: c for t, c in await db.execute(select(ContentItem.type, func.count()).group_by(ContentItem.type))}
    by_status = {
        s: c for s, c in await db.execute(select(ContentItem.status, func.count()).group_by(ContentItem.status))
    }
    return {
        "total": count,
        "total_size_bytes": int(size),
        "total_views": int(views),
        "total_downloads": int(downloads),
        "by_type": by_type,
        "by_status": by_status,
    }
