"""Request/response schemas for the course catalog and enrollments."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

CourseStatus = Literal["draft", "published", "archived"]
CourseLevel = Literal["beginner", "intermediate", "advanced"]
EnrollmentStatus = Literal["active", "completed", "dropped"]


class CourseCreateRequest(BaseModel):
    """Create a catalog entry (admin)."""

    title: str = Field(..., min_length=1, max_length=200)
    description: str = Field(..., min_length=1)
    instructor: str = Field(..., min_length=1, max_length=120)
    duration: str = Field(..., min_length=1, max_length=60)
    price: float = Field(0, ge=0)
    image_url: str | None = None
    status: CourseStatus = "published"
    category: str = Field(..., min_length=1, max_length=60)
    level: CourseLevel = "beginner"

    @field_validator("title", "description", "instructor", "category")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Trim and reject whitespace-only text."""
        v = v.strip()
        if not v:
            msg = "Field cannot be blank"
            raise ValueError(msg)
        return v


class CourseUpdateRequest(BaseModel):
    """Partial course update (admin). Omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=200)
    description: str | None = Field(None, min_length=1)
    instructor: str | None = Field(None, min_length=1, max_length=120)
    duration: str | None = Field(None, min_length=1, max_length=60)
    price: float | None = Field(None, ge=0)
    image_url: str | None = None
    status: CourseStatus | None = None
    category: str | None = Field(None, min_length=1, max_length=60)
    level: CourseLevel | None = None


class CourseResponse(BaseModel):
    """A catalog entry."""

    model_config = {"from_attributes": True}

    id: int
    title: str
    description: str
    instructor: str
    duration: str
    price: float
    image_url: str | None = None
    status: str
    category: str
    level: str
    enrolled_count: int
    rating: float
    created_by: int | None = None
    created_at: datetime
    updated_at: datetime


class CourseListResponse(BaseModel):
    """Paginated course list."""

    courses: list[CourseResponse]
    total: int
    page: int
    per_page: int


class CourseSummary(BaseModel):
    """Course fields embedded in enrollment responses."""

    model_config = {"from_attributes": True}

    id: int
    title: str
    instructor: str
    category: str
    level: str
    image_url: str | None = None
    price: float


class EnrollmentResponse(BaseModel):
    """A user's enrollment."""

    model_config = {"from_attributes": True}

    id: int
    user_id: int
    course_id: int
    status: str
    progress: int
    completed_lessons: list[str | int] = []
    enrolled_at: datetime
    last_accessed_at: datetime
    completed_at: datetime | None = None
    certificate_issued: bool
    rating: int | None = None
    review: str | None = None
    course: CourseSummary | None = None


class EnrollmentListResponse(BaseModel):
    """Paginated enrollment list."""

    enrollments: list[EnrollmentResponse]
    total: int
    page: int
    per_page: int


class EnrollmentUpdateRequest(BaseModel):
    """Learner-side progress update."""

    progress: int | None = Field(None, ge=0, le=100)
    status: EnrollmentStatus | None = None
    completed_lesson: str | None = Field(None, min_length=1, max_length=100)
    rating: int | None = Field(None, ge=1, le=5)
    review: str | None = Field(None, max_length=2000)
