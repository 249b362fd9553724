"""Authentication router: /api/v1/auth/* and /api/v1/admin/auth/*."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_admin, get_current_user
from learnhub.auth.jwt import create_access_token
from learnhub.auth.schemas import LoginRequest, RegisterRequest, TokenResponse, UserResponse
from learnhub.auth.service import AccountDisabledError, authenticate_user, register_user
from learnhub.config import get_settings
from learnhub.database import get_session
from learnhub.db.models import User

logger = structlog.get_logger()

router = APIRouter(prefix="/api/v1/auth", tags=["Authentication"])
admin_router = APIRouter(prefix="/api/v1/admin/auth", tags=["Admin"])


def _token_response(user: User) -> TokenResponse:
    settings = get_settings()
    return TokenResponse(
        access_token=create_access_token(user.id, user.role),
        token_type="bearer",
        expires_in=settings.jwt_access_token_expire_minutes * 60,
        user=UserResponse.model_validate(user),
    )


async def _login(db: AsyncSession, body: LoginRequest) -> User:
    try:
        user = await authenticate_user(db, body.email, body.password)
    except AccountDisabledError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    return user


@router.post("/register", response_model=TokenResponse, status_code=201)
async def register(
    body: RegisterRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Create a learner account and log it in."""
    try:
        user = await register_user(db, body.name, body.email, body.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return _token_response(user)


@router.post("/login", response_model=TokenResponse)
async def login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Exchange email + password for an access token."""
    user = await _login(db, body)
    await db.commit()
    logger.info("user_logged_in", user_id=user.id)
    return _token_response(user)


@router.get("/me", response_model=UserResponse)
async def me(user: User = Depends(get_current_user)) -> UserResponse:
    """The authenticated user."""
    return UserResponse.model_validate(user)


@admin_router.post("/login", response_model=TokenResponse)
async def admin_login(
    body: LoginRequest,
    db: AsyncSession = Depends(get_session),
) -> TokenResponse:
    """Login for the admin panel; learner accounts are refused."""
    user = await _login(db, body)
    if user.role != "admin":
        raise HTTPException(status_code=403, detail="Admin access required")
    await db.commit()
    logger.info("admin_logged_in", user_id=user.id)
    return _token_response(user)


@admin_router.get("/profile", response_model=UserResponse)
async def admin_profile(admin: User = Depends(get_current_admin)) -> UserResponse:
    """The authenticated admin."""
    return UserResponse.model_validate(admin)
