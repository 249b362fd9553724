"""Course catalog router: public browsing and enrollment."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_user
from learnhub.courses.enrollment_service import enroll
from learnhub.courses.schemas import (
    CourseLevel,
    CourseListResponse,
    CourseResponse,
    CourseSummary,
    EnrollmentResponse,
)
from learnhub.courses.service import get_published_course, list_courses
from learnhub.database import get_session
from learnhub.db.models import Course, Enrollment, User

router = APIRouter(prefix="/api/v1/courses", tags=["Courses"])


def enrollment_response(enrollment: Enrollment, course: Course | None = None) -> EnrollmentResponse:
    """Build an EnrollmentResponse, embedding the course summary when given."""
    response = EnrollmentResponse.model_validate(enrollment)
    if course is not None:
        response.course = CourseSummary.model_validate(course)
    return response


@router.get("", response_model=CourseListResponse)
async def browse_courses(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    category: str | None = Query(None, max_length=60),
    level: CourseLevel | None = Query(None),
    search: str | None = Query(None, max_length=200),
    db: AsyncSession = Depends(get_session),
) -> CourseListResponse:
    """Published courses, newest first."""
    courses, total = await list_courses(
        db, page, per_page, category=category, level=level, search=search
    )
    return CourseListResponse(
        courses=[CourseResponse.model_validate(c) for c in courses],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{course_id}", response_model=CourseResponse)
async def course_detail(
    course_id: int,
    db: AsyncSession = Depends(get_session),
) -> CourseResponse:
    """A single published course."""
    course = await get_published_course(db, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not available")
    return CourseResponse.model_validate(course)


@router.post("/{course_id}/enroll", response_model=EnrollmentResponse, status_code=201)
async def enroll_in_course(
    course_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentResponse:
    """Enroll the current user in a published course."""
    course = await get_published_course(db, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not available")
    try:
        enrollment = await enroll(db, user.id, course)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return enrollment_response(enrollment, course)
