"""Admin user and settings management: /api/v1/admin/users/*, /api/v1/admin/settings/*."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_admin
from learnhub.auth.schemas import UserResponse
from learnhub.courses.router import enrollment_response
from learnhub.database import get_session
from learnhub.db.models import User
from learnhub.users.router import settings_response
from learnhub.users.schemas import (
    AdminUserDetailResponse,
    AdminUserListResponse,
    AdminUserResponse,
    AdminUserUpdateRequest,
    SettingsResponse,
    SettingsUpdateRequest,
    UserSettingsListResponse,
    UserSettingsResponse,
)
from learnhub.users.service import (
    admin_delete_user,
    admin_update_user,
    get_user,
    get_user_enrollments,
    get_user_stats,
    list_users,
    toggle_suspension,
)
from learnhub.users.settings_service import (
    get_settings_stats,
    get_user_settings,
    list_all_settings,
    reset_user_settings,
    settings_document,
    update_user_settings,
)

router = APIRouter(prefix="/api/v1/admin/users", tags=["Admin"])
settings_router = APIRouter(prefix="/api/v1/admin/settings", tags=["Admin"])


async def _get_user_or_404(db: AsyncSession, user_id: int) -> User:
    user = await get_user(db, user_id)
    if user is None:
        raise HTTPException(status_code=404, detail="User not found")
    return user


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


@router.get("", response_model=AdminUserListResponse)
async def admin_list_users(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    search: str | None = Query(None, max_length=200),
    role: Literal["user", "admin"] | None = Query(None),
    status: Literal["active", "suspended"] | None = Query(None),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminUserListResponse:
    """Search and filter accounts."""
    rows, total = await list_users(db, page, per_page, search=search, role=role, status=status)
    return AdminUserListResponse(
        users=[
            AdminUserResponse(**UserResponse.model_validate(u).model_dump(), enrollment_count=count)
            for u, count in rows
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/stats")
async def admin_user_stats(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Account totals and monthly sign-ups."""
    return await get_user_stats(db)


@router.get("/{user_id}", response_model=AdminUserDetailResponse)
async def admin_get_user(
    user_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> AdminUserDetailResponse:
    """A user with their enrollments."""
    user = await _get_user_or_404(db, user_id)
    enrollments = await get_user_enrollments(db, user.id)
    return AdminUserDetailResponse(
        user=UserResponse.model_validate(user),
        enrollments=[enrollment_response(e, c) for e, c in enrollments],
    )


@router.put("/{user_id}", response_model=UserResponse)
async def admin_update(
    user_id: int,
    body: AdminUserUpdateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Update name, email, role or active flag."""
    user = await _get_user_or_404(db, user_id)
    try:
        user = await admin_update_user(db, admin, user, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return UserResponse.model_validate(user)


@router.patch("/{user_id}/suspend", response_model=UserResponse)
async def admin_toggle_suspend(
    user_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> UserResponse:
    """Suspend an active user or reactivate a suspended one."""
    user = await _get_user_or_404(db, user_id)
    try:
        user = await toggle_suspension(db, admin, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return UserResponse.model_validate(user)


@router.delete("/{user_id}")
async def admin_delete(
    user_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Hard-delete a user and their data."""
    user = await _get_user_or_404(db, user_id)
    try:
        await admin_delete_user(db, admin, user)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"detail": "User deleted"}


# ---------------------------------------------------------------------------
# Settings
# ---------------------------------------------------------------------------


@settings_router.get("", response_model=UserSettingsListResponse)
async def admin_list_settings(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> UserSettingsListResponse:
    """Stored settings of all users."""
    rows, total = await list_all_settings(db, page, per_page)
    return UserSettingsListResponse(
        settings=[
            UserSettingsResponse(user_id=s.user_id, **settings_document(s), updated_at=s.updated_at)
            for s in rows
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@settings_router.get("/stats")
async def admin_settings_stats(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Adoption of dark mode, 2FA, channels and languages."""
    return await get_settings_stats(db)


@settings_router.get("/{user_id}", response_model=SettingsResponse)
async def admin_get_settings(
    user_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    """A user's settings, created with defaults if missing."""
    await _get_user_or_404(db, user_id)
    settings = await get_user_settings(db, user_id)
    await db.commit()
    return settings_response(settings)


@settings_router.put("/{user_id}", response_model=SettingsResponse)
async def admin_update_settings(
    user_id: int,
    body: SettingsUpdateRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    """Deep-merge update of a user's settings."""
    await _get_user_or_404(db, user_id)
    try:
        settings = await update_user_settings(db, user_id, body.model_dump(exclude_none=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return settings_response(settings)


@settings_router.post("/{user_id}/reset", response_model=SettingsResponse)
async def admin_reset_settings(
    user_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> SettingsResponse:
    """Restore a user's settings to the defaults."""
    await _get_user_or_404(db, user_id)
    settings = await reset_user_settings(db, user_id)
    await db.commit()
    return settings_response(settings)
