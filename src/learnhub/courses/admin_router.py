"""Admin course management: /api/v1/admin/courses/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_admin
from learnhub.courses.schemas import (
    CourseCreateRequest,
    CourseListResponse,
    CourseResponse,
    CourseStatus,
    CourseUpdateRequest,
)
from learnhub.courses.service import create_course, delete_course, get_course, list_courses, update_course
from learnhub.database import get_session
from learnhub.db.models import User

router = APIRouter(prefix="/api/v1/admin/courses", tags=["Admin"])


@router.get("", response_model=CourseListResponse)
async def admin_list_courses(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: CourseStatus | None = Query(None),
    search: str | None = Query(None, max_length=200),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> CourseListResponse:
    """All courses in any status."""
    courses, total = await list_courses(db, page, per_page, status=status, search=search)
    return CourseListResponse(
        courses=[CourseResponse.model_validate(c) for c in courses],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("", response_model=CourseResponse, status_code=201)
async def admin_create_course(
    body: CourseCreateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> CourseResponse:
    """Create a course."""
    course = await create_course(db, admin.id, body.model_dump())
    await db.commit()
    return CourseResponse.model_validate(course)


@router.get("/{course_id}", response_model=CourseResponse)
async def admin_get_course(
    course_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> CourseResponse:
    """A course in any status."""
    course = await get_course(db, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    return CourseResponse.model_validate(course)


@router.put("/{course_id}", response_model=CourseResponse)
async def admin_update_course(
    course_id: int,
    body: CourseUpdateRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> CourseResponse:
    """Partially update a course."""
    course = await get_course(db, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    course = await update_course(db, course, body.model_dump(exclude_unset=True))
    await db.commit()
    return CourseResponse.model_validate(course)


@router.delete("/{course_id}")
async def admin_delete_course(
    course_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Delete a course and its enrollments."""
    course = await get_course(db, course_id)
    if course is None:
        raise HTTPException(status_code=404, detail="Course not found")
    await delete_course(db, course)
    await db.commit()
    return {"detail": "Course deleted"}
