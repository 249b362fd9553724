"""Request/response schemas for profiles, settings and admin user management."""

from __future__ import annotations

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, EmailStr, Field, field_validator

from learnhub.auth.schemas import UserResponse
from learnhub.courses.schemas import EnrollmentResponse
from learnhub.validators import strip_required, validate_http_url


class ProfileStats(BaseModel):
    """Learning progress summary."""

    enrolled_courses: int
    completed_courses: int


class ProfileResponse(UserResponse):
    """Own profile with learning stats."""

    stats: ProfileStats


class ProfileUpdateRequest(BaseModel):
    """Partial profile update."""

    name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    avatar_url: str | None = Field(None, max_length=2048)

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        """Reject whitespace-only names."""
        return strip_required(v, "Name") if v is not None else None

    @field_validator("avatar_url")
    @classmethod
    def check_avatar(cls, v: str | None) -> str | None:
        """Avatar must be an http(s) URL."""
        return validate_http_url(v) if v is not None else None


class AvatarRequest(BaseModel):
    """Set the avatar image URL."""

    avatar_url: str = Field(..., min_length=1, max_length=2048)

    @field_validator("avatar_url")
    @classmethod
    def check_avatar(cls, v: str) -> str:
        """Avatar must be an http(s) URL."""
        return validate_http_url(v)


class ChangePasswordRequest(BaseModel):
    """Change password (requires current password)."""

    current_password: str = Field(..., min_length=1, max_length=128)
    new_password: str = Field(..., min_length=1, max_length=128)


class DeleteAccountRequest(BaseModel):
    """Password confirmation for account deletion."""

    password: str = Field(..., min_length=1, max_length=128)


class SettingsResponse(BaseModel):
    """All settings sections."""

    notifications: dict[str, Any]
    privacy: dict[str, Any]
    preferences: dict[str, Any]
    security: dict[str, Any]
    updated_at: datetime | None = None


class SettingsUpdateRequest(BaseModel):
    """Deep-merge settings update. Omitted sections are left unchanged."""

    model_config = {"extra": "ignore"}

    notifications: dict[str, Any] | None = None
    privacy: dict[str, Any] | None = None
    preferences: dict[str, Any] | None = None
    security: dict[str, Any] | None = None


class UserSettingsResponse(SettingsResponse):
    """Settings row as listed for admins."""

    user_id: int


class UserSettingsListResponse(BaseModel):
    """Paginated settings list."""

    settings: list[UserSettingsResponse]
    total: int
    page: int
    per_page: int


class AdminUserResponse(UserResponse):
    """User row in the admin list."""

    enrollment_count: int = 0


class AdminUserListResponse(BaseModel):
    """Paginated admin user list."""

    users: list[AdminUserResponse]
    total: int
    page: int
    per_page: int


class AdminUserDetailResponse(BaseModel):
    """A user with their enrollments."""

    user: UserResponse
    enrollments: list[EnrollmentResponse]


class AdminUserUpdateRequest(BaseModel):
    """Admin-side user update."""

    name: str | None = Field(None, min_length=1, max_length=100)
    email: EmailStr | None = None
    role: Literal["user", "admin"] | None = None
    is_active: bool | None = None

    @field_validator("name")
    @classmethod
    def strip_name(cls, v: str | None) -> str | None:
        """Reject whitespace-only names."""
        return strip_required(v, "Name") if v is not None else None
