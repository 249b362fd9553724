"""Request/response schemas for the content library."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from learnhub.validators import strip_required, validate_http_url

ContentType = Literal["video", "pdf", "image", "audio", "document", "other"]
ContentStatus = Literal["draft", "processing", "published", "archived"]


class ContentCreateRequest(BaseModel):
    """Register a media asset."""

    title: str = Field(..., min_length=1, max_length=200)
    type: ContentType
    url: str
    thumbnail_url: str | None = None
    size_bytes: int = Field(0, ge=0)
    duration: str | None = Field(None, max_length=60)
    description: str | None = None
    course_id: int | None = None
    status: ContentStatus = "published"
    tags: list[str] = Field(default_factory=list, max_length=20)

    @field_validator("title")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Trim and reject whitespace-only titles."""
        return strip_required(v, "Title")

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str) -> str:
        """Content must live at an http(s) URL."""
        return validate_http_url(v)

    @field_validator("tags")
    @classmethod
    def clean_tags(cls, v: list[str]) -> list[str]:
        """Lower-case, trim and de-duplicate tags, preserving order."""
        seen: list[str] = []
        for tag in v:
            tag = tag.strip().lower()
            if tag and tag not in seen:
                seen.append(tag)
        return seen


class ContentUpdateRequest(BaseModel):
    """Partial update; omitted fields are left unchanged."""

    title: str | None = Field(None, min_length=1, max_length=200)
    type: ContentType | None = None
    url: str | None = None
    thumbnail_url: str | None = None
    size_bytes: int | None = Field(None, ge=0)
    duration: str | None = Field(None, max_length=60)
    description: str | None = None
    course_id: int | None = None
    status: ContentStatus | None = None
    tags: list[str] | None = None

    @field_validator("url")
    @classmethod
    def check_url(cls, v: str | None) -> str | None:
        """Validate the URL when one is given."""
        return validate_http_url(v) if v is not None else None


class ContentResponse(BaseModel):
    """A content item."""

    model_config = {"from_attributes": True}

    id: int
    title: str
    type: str
    url: str
    thumbnail_url: str | None = None
    size_bytes: int
    duration: str | None = None
    description: str | None = None
    course_id: int | None = None
    uploaded_by: int | None = None
    status: str
    downloads: int
    views: int
    tags: list[str]
    created_at: datetime
    updated_at: datetime


class ContentListResponse(BaseModel):
    """Paginated content list."""

    content: list[ContentResponse]
    total: int
    page: int
    per_page: int
