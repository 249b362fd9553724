"""Enrollment business logic: enrolling, progress tracking and course ratings."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING

import structlog
from sqlalchemy import func, select, update
from sqlalchemy.exc import IntegrityError

from learnhub.db.models import Course, Enrollment
from learnhub.pagination import count_rows

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


async def get_enrollment(db: AsyncSession, user_id: int, course_id: int) -> Enrollment | None:
    """The enrollment of a user in a course, if any."""
    result = await db.execute(
        select(Enrollment).where(Enrollment.user_id == user_id, Enrollment.course_id == course_id)
    )
    return result.scalar_one_or_none()


async def enroll(db: AsyncSession, user_id: int, course: Course) -> Enrollment:
    """
    Enroll a user in a published course and bump its enrollment counter.

    Raises:
        ValueError: If the course is not published or the user is already enrolled.
    """
    if course.status != "published":
        msg = "Course not available"
        raise ValueError(msg)
    if await get_enrollment(db, user_id, course.id) is not None:
        msg = "Already enrolled in this course"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    enrollment = Enrollment(
        user_id=user_id,
        course_id=course.id,
        status="active",
        progress=0,
        completed_lessons=[],
        enrolled_at=now,
        last_accessed_at=now,
    )
    db.add(enrollment)
    try:
        await db.flush()
    except IntegrityError as e:
        # A concurrent request enrolled the same pair first
        msg = "Already enrolled in this course"
        raise ValueError(msg) from e

    await db.execute(
        update(Course)
        .where(Course.id == course.id)
        .values(enrolled_count=Course.enrolled_count + 1)
        .execution_options(synchronize_session=False)
    )
    await db.refresh(course)
    logger.info("user_enrolled", user_id=user_id, course_id=course.id)
    return enrollment


async def list_user_enrollments(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
    status: str | None = None,
) -> tuple[list[tuple[Enrollment, Course]], int]:
    """A user's enrollments joined with their courses, most recently accessed first."""
    query = (
        select(Enrollment, Course)
        .join(Course, Course.id == Enrollment.course_id)
        .where(Enrollment.user_id == user_id)
    )
    if status:
        query = query.where(Enrollment.status == status)
    total = await count_rows(db, query)
    result = await db.execute(
        query.order_by(Enrollment.last_accessed_at.desc(), Enrollment.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return [(row[0], row[1]) for row in result.all()], total


async def _recompute_course_rating(db: AsyncSession, course_id: int) -> None:
    average = await db.scalar(
        select(func.avg(Enrollment.rating)).where(
            Enrollment.course_id == course_id, Enrollment.rating.is_not(None)
        )
    )
    await db.execute(
        update(Course)
        .where(Course.id == course_id)
        .values(rating=round(float(average or 0), 2))
        .execution_options(synchronize_session=False)
    )


async def update_enrollment(
    db: AsyncSession,
    user_id: int,
    enrollment_id: int,
    *,
    progress: int | None = None,
    status: str | None = None,
    completed_lesson: str | None = None,
    rating: int | None = None,
    review: str | None = None,
) -> Enrollment | None:
    """
    Update progress, status, lessons, rating or review of one's own enrollment.

    Reaching 100% progress completes the enrollment and issues the certificate.

    Returns None if the enrollment does not exist.

    Raises:
        PermissionError: If the enrollment belongs to someone else.
    """
    enrollment = await db.get(Enrollment, enrollment_id)
    if enrollment is None:
        return None
    if enrollment.user_id != user_id:
        msg = "Not authorized to update this enrollment"
        raise PermissionError(msg)

    now = datetime.now(timezone.utc)
    if completed_lesson is not None and completed_lesson not in enrollment.completed_lessons:
        enrollment.completed_lessons = [*enrollment.completed_lessons, completed_lesson]
    if progress is not None:
        enrollment.progress = progress
    if status is not None:
        enrollment.status = status
    if enrollment.progress >= 100 and enrollment.status != "dropped":
        enrollment.status = "completed"
    if enrollment.status == "completed":
        enrollment.progress = 100
        enrollment.completed_at = enrollment.completed_at or now
        enrollment.certificate_issued = True
    if review is not None:
        enrollment.review = review
    enrollment.last_accessed_at = now

    if rating is not None:
        enrollment.rating = rating
        await db.flush()
        await _recompute_course_rating(db, enrollment.course_id)

    await db.flush()
    return enrollment
