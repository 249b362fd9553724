"""Profile router: /api/v1/profile/* (own account, enrollments and settings)."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_user
from learnhub.auth.schemas import UserResponse
from learnhub.courses.enrollment_service import list_user_enrollments, update_enrollment
from learnhub.courses.router import enrollment_response
from learnhub.courses.schemas import (
    EnrollmentListResponse,
    EnrollmentResponse,
    EnrollmentStatus,
    EnrollmentUpdateRequest,
)
from learnhub.database import get_session
from learnhub.db.models import Course, User, UserSettings
from learnhub.users.schemas import (
    AvatarRequest,
    ChangePasswordRequest,
    DeleteAccountRequest,
    ProfileResponse,
    ProfileStats,
    ProfileUpdateRequest,
    SettingsResponse,
    SettingsUpdateRequest,
)
from learnhub.users.service import (
    InvalidCredentialsError,
    change_password,
    delete_own_account,
    get_enrollment_counts,
    update_profile,
)
from learnhub.users.settings_service import get_user_settings, settings_document, update_user_settings

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/profile", tags=["Profile"])


async def _profile_response(db: AsyncSession, user: User) -> ProfileResponse:
    counts = await get_enrollment_counts(db, user.id)
    return ProfileResponse(
        **UserResponse.model_validate(user).model_dump(),
        stats=ProfileStats(**counts),
    )


def settings_response(settings: UserSettings) -> SettingsResponse:
    """Build a SettingsResponse with defaults filled in."""
    return SettingsResponse(**settings_document(settings), updated_at=settings.updated_at)


# ---------------------------------------------------------------------------
# Profile
# ---------------------------------------------------------------------------


@router.get("", response_model=ProfileResponse)
async def get_profile(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Own profile with enrollment stats."""
    return await _profile_response(db, user)


@router.put("", response_model=ProfileResponse)
async def update_my_profile(
    body: ProfileUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Update name, email or avatar."""
    try:
        user = await update_profile(db, user, name=body.name, email=body.email, avatar_url=body.avatar_url)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return await _profile_response(db, user)


@router.delete("")
async def delete_my_account(
    body: DeleteAccountRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Permanently delete the account and its data."""
    try:
        await delete_own_account(db, user, body.password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"detail": "Account deleted"}


@router.put("/change-password")
async def change_my_password(
    body: ChangePasswordRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Change password after confirming the current one."""
    try:
        await change_password(db, user, body.current_password, body.new_password)
    except InvalidCredentialsError as e:
        raise HTTPException(status_code=401, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"detail": "Password changed successfully"}


@router.post("/avatar", response_model=ProfileResponse)
async def set_avatar(
    body: AvatarRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ProfileResponse:
    """Set the avatar URL."""
    user = await update_profile(db, user, avatar_url=body.avatar_url)
    await db.commit()
    return await _profile_response(db, user)


# ---------------------------------------------------------------------------
# Enrollments
# ---------------------------------------------------------------------------


@router.get("/enrollments", response_model=EnrollmentListResponse)
async def my_enrollments(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: EnrollmentStatus | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentListResponse:
    """Own enrollments with course summaries."""
    rows, total = await list_user_enrollments(db, user.id, page, per_page, status)
    return EnrollmentListResponse(
        enrollments=[enrollment_response(e, c) for e, c in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.patch("/enrollments/{enrollment_id}", response_model=EnrollmentResponse)
async def update_my_enrollment(
    enrollment_id: int,
    body: EnrollmentUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> EnrollmentResponse:
    """Record progress, completion, a rating or a review."""
    try:
        enrollment = await update_enrollment(db, user.id, enrollment_id, **body.model_dump(exclude_unset=True))
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    if enrollment is None:
        raise HTTPException(status_code=404, detail="Enrollment not found")
    await db.commit()
    course = await db.get(Course, enrollment.course_id)
    return enrollment_response(enrollment, course)


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@router.get("/settings", response_model=SettingsResponse)
async def get_my_settings(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    """Own settings, created with defaults on first access."""
    settings = await get_user_settings(db, user.id)
    await db.commit()
    return settings_response(settings)


@router.put("/settings", response_model=SettingsResponse)
async def update_my_settings(
    body: SettingsUpdateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    """Deep-merge update of own settings."""
    try:
        settings = await update_user_settings(db, user.id, body.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return settings_response(settings)
