"""Request/response schemas for thoughts."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from learnhub.notifications.schemas import Priority, TargetAudience
from learnhub.validators import strip_required

ThoughtStatus = Literal["pending", "approved", "rejected"]


class ThoughtCreateRequest(BaseModel):
    """Share a thought for moderation."""

    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=1000)

    @field_validator("title", "message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Trim and reject whitespace-only text."""
        return strip_required(v)


class ThoughtApproveRequest(BaseModel):
    """Publish a thought as a notification."""

    target_audience: TargetAudience = "all"
    target_user_ids: list[int] | None = None
    priority: Priority = "medium"
    review_notes: str | None = Field(None, max_length=500)


class ThoughtRejectRequest(BaseModel):
    """Reject a thought. Notes are required and checked by the service."""

    review_notes: str = Field("", max_length=500)


class ThoughtResponse(BaseModel):
    """A thought with its review state."""

    id: int
    title: str
    message: str
    status: str
    submitted_by: int
    submitter_name: str | None = None
    submitter_email: str | None = None
    reviewed_by: int | None = None
    reviewed_at: datetime | None = None
    review_notes: str | None = None
    notification_id: int | None = None
    coins_awarded: int = 0
    created_at: datetime
    updated_at: datetime


class ThoughtListResponse(BaseModel):
    """Paginated thought list."""

    thoughts: list[ThoughtResponse]
    total: int
    page: int
    per_page: int


class MyThoughtStatsResponse(BaseModel):
    """A learner's thought counts and coins earned from approvals."""

    total: int
    pending: int
    approved: int
    rejected: int
    coins_from_thoughts: int
