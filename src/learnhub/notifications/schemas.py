"""Request/response schemas for notifications."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field, field_validator

from learnhub.validators import strip_required

NotificationType = Literal["general", "course", "system", "assignment", "announcement", "doubt"]
TargetAudience = Literal["all", "students", "instructors", "specific"]
Priority = Literal["low", "medium", "high", "urgent"]
NotificationStatus = Literal["draft", "scheduled", "sent"]


class NotificationCreateRequest(BaseModel):
    """Admin notification composer."""

    title: str = Field(..., min_length=1, max_length=200)
    message: str = Field(..., min_length=1, max_length=5000)
    type: NotificationType = "general"
    target_audience: TargetAudience = "all"
    target_user_ids: list[int] | None = None
    priority: Priority = "medium"
    scheduled_for: datetime | None = None
    link: str | None = Field(None, max_length=2048)
    icon: str | None = Field(None, max_length=64)
    draft: bool = False

    @field_validator("title", "message")
    @classmethod
    def not_blank(cls, v: str) -> str:
        """Trim and reject whitespace-only text."""
        return strip_required(v)


class NotificationUpdateRequest(BaseModel):
    """Edit of a draft or scheduled notification."""

    title: str | None = Field(None, min_length=1, max_length=200)
    message: str | None = Field(None, min_length=1, max_length=5000)
    type: NotificationType | None = None
    target_audience: TargetAudience | None = None
    target_user_ids: list[int] | None = None
    priority: Priority | None = None
    scheduled_for: datetime | None = None
    link: str | None = Field(None, max_length=2048)
    icon: str | None = Field(None, max_length=64)


class NotificationResponse(BaseModel):
    """Admin view of a notification."""

    model_config = {"from_attributes": True}

    id: int
    title: str
    message: str
    type: str
    target_audience: str
    priority: str
    status: str
    scheduled_for: datetime | None = None
    sent_at: datetime | None = None
    sent_by: int | None = None
    link: str | None = None
    icon: str | None = None
    created_at: datetime
    recipient_count: int = 0
    read_count: int = 0


class NotificationListResponse(BaseModel):
    """Paginated admin list."""

    notifications: list[NotificationResponse]
    total: int
    page: int
    per_page: int


class FeedItemResponse(BaseModel):
    """A notification as seen by a recipient."""

    id: int
    title: str
    message: str
    type: str
    priority: str
    link: str | None = None
    icon: str | None = None
    sent_at: datetime | None = None
    read: bool
    read_at: datetime | None = None


class FeedResponse(BaseModel):
    """Paginated recipient feed."""

    notifications: list[FeedItemResponse]
    total: int
    unread_count: int
    page: int
    per_page: int


class UnreadCountResponse(BaseModel):
    """Unread notification count."""

    unread_count: int


class CategoryCount(BaseModel):
    """Visible and unread notifications of one type."""

    type: str
    total: int
    unread: int
