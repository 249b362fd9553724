"""User management business logic: own profile and admin user administration."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, func, or_, select, update

from learnhub.auth.password import hash_password, validate_password_strength, verify_password
from learnhub.auth.service import get_user_by_email
from learnhub.coins.pool import PoolAccountNotConfiguredError, get_pool_account_id
from learnhub.db.models import (
    CoinTransaction,
    ContentItem,
    Course,
    Doubt,
    Enrollment,
    Notification,
    NotificationDismissal,
    NotificationRead,
    NotificationRecipient,
    Thought,
    User,
    UserSettings,
)
from learnhub.pagination import count_rows
from learnhub.timeseries import count_by_month, start_of_month_window

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()


class InvalidCredentialsError(PermissionError):
    """Raised when a password confirmation does not match."""


# ---------------------------------------------------------------------------
# Own profile
# ---------------------------------------------------------------------------


async def get_enrollment_counts(db: AsyncSession, user_id: int) -> dict[str, int]:
    """Number of enrolled and completed courses."""
    result = await db.execute(
        select(
            func.count(Enrollment.id),
            func.count(Enrollment.id).filter(Enrollment.status == "completed"),
        ).where(Enrollment.user_id == user_id)
    )
    enrolled, completed = result.one()
    return {"enrolled_courses": enrolled, "completed_courses": completed}


async def _ensure_email_available(db: AsyncSession, email: str, user_id: int) -> None:
    existing = await get_user_by_email(db, email)
    if existing is not None and existing.id != user_id:
        msg = "Email already in use"
        raise ValueError(msg)


async def update_profile(
    db: AsyncSession,
    user: User,
    name: str | None = None,
    email: str | None = None,
    avatar_url: str | None = None,
) -> User:
    """
    Update profile fields.

    Raises:
        ValueError: If the new email belongs to another account.
    """
    if email is not None and email.lower() != user.email:
        await _ensure_email_available(db, email, user.id)
        user.email = email.lower().strip()
    if name is not None:
        user.name = name
    if avatar_url is not None:
        user.avatar_url = avatar_url

    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return user


async def change_password(db: AsyncSession, user: User, current_password: str, new_password: str) -> None:
    """
    Replace the password after confirming the current one.

    Raises:
        InvalidCredentialsError: If the current password is wrong.
        PasswordStrengthError: If the new password is too weak.
    """
    if not verify_password(current_password, user.password_hash):
        msg = "Current password is incorrect"
        raise InvalidCredentialsError(msg)
    validate_password_strength(new_password)
    user.password_hash = hash_password(new_password)
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("password_changed", user_id=user.id)


async def delete_own_account(db: AsyncSession, user: User, password: str) -> None:
    """
    Permanently delete the caller's account after a password confirmation.

    Raises:
        InvalidCredentialsError: If the password is wrong.
        ValueError: If the account is the coin pool.
    """
    if not verify_password(password, user.password_hash):
        msg = "Password is incorrect"
        raise InvalidCredentialsError(msg)
    await purge_user(db, user)


def _is_pool_account(user: User) -> bool:
    try:
        return user.id == get_pool_account_id()
    except PoolAccountNotConfiguredError:
        return False


async def purge_user(db: AsyncSession, user: User) -> None:
    """
    Hard-delete a user and every record that depends on them.

    Enrollments, settings, coin history, doubts, thoughts and notification
    receipts are removed; records the user merely acted on (answers, reviews,
    courses, uploads, sent notifications) are kept with the actor cleared.

    Raises:
        ValueError: If the user is the coin pool account.
    """
    if _is_pool_account(user):
        msg = "The coin pool account cannot be deleted"
        raise ValueError(msg)

    user_id = user.id

    # Keep course counters in step with the enrollments about to disappear
    enrolled_course_ids = list(
        (await db.execute(select(Enrollment.course_id).where(Enrollment.user_id == user_id))).scalars()
    )
    if enrolled_course_ids:
        await db.execute(
            update(Course)
            .where(Course.id.in_(enrolled_course_ids), Course.enrolled_count > 0)
            .values(enrolled_count=Course.enrolled_count - 1)
            .execution_options(synchronize_session=False)
        )

    doubt_ids = select(Doubt.id).where(Doubt.asked_by == user_id)
    thought_ids = select(Thought.id).where(Thought.submitted_by == user_id)
    await db.execute(
        update(CoinTransaction)
        .where(CoinTransaction.related_doubt_id.in_(doubt_ids))
        .values(related_doubt_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.execute(
        update(CoinTransaction)
        .where(CoinTransaction.related_thought_id.in_(thought_ids))
        .values(related_thought_id=None)
        .execution_options(synchronize_session=False)
    )

    for model, column in (
        (NotificationRead, NotificationRead.user_id),
        (NotificationDismissal, NotificationDismissal.user_id),
        (NotificationRecipient, NotificationRecipient.user_id),
        (CoinTransaction, CoinTransaction.user_id),
        (Enrollment, Enrollment.user_id),
        (UserSettings, UserSettings.user_id),
        (Doubt, Doubt.asked_by),
        (Thought, Thought.submitted_by),
    ):
        await db.execute(delete(model).where(column == user_id).execution_options(synchronize_session=False))

    for model, column in (
        (Doubt, Doubt.answered_by),
        (Doubt, Doubt.closed_by),
        (Thought, Thought.reviewed_by),
        (Course, Course.created_by),
        (ContentItem, ContentItem.uploaded_by),
        (Notification, Notification.sent_by),
    ):
        await db.execute(
            update(model)
            .where(column == user_id)
            .values({column.key: None})
            .execution_options(synchronize_session=False)
        )

    await db.delete(user)
    await db.flush()
    logger.info("user_deleted", user_id=user_id)


# ---------------------------------------------------------------------------
# Admin user management
# ---------------------------------------------------------------------------


async def list_users(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 20,
    *,
    search: str | None = None,
    role: str | None = None,
    status: str | None = None,
) -> tuple[list[tuple[User, int]], int]:
    """Users with their enrollment counts, newest first.

    ``status`` is ``active`` or ``suspended``; ``search`` matches name or email.
    """
    enrollment_count = (
        select(func.count(Enrollment.id)).where(Enrollment.user_id == User.id).scalar_subquery()
    )
    query = select(User, enrollment_count.label("enrollment_count"))
    if search:
        pattern = f"%{search}%"
        query = query.where(or_(User.name.ilike(pattern), User.email.ilike(pattern)))
    if role:
        query = query.where(User.role == role)
    if status == "active":
        query = query.where(User.is_active.is_(True))
    elif status == "suspended":
        query = query.where(User.is_active.is_(False))

    total = await count_rows(db, query)
    result = await db.execute(
        query.order_by(User.created_at.desc(), User.id.desc()).offset((page - 1) * per_page).limit(per_page)
    )
    return [(row[0], row[1]) for row in result.all()], total


async def get_user(db: AsyncSession, user_id: int) -> User | None:
    """Fetch a user by ID."""
    return await db.get(User, user_id)


async def get_user_enrollments(db: AsyncSession, user_id: int) -> list[tuple[Enrollment, Course]]:
    """All of a user's enrollments with their courses."""
    result = await db.execute(
        select(Enrollment, Course)
        .join(Course, Course.id == Enrollment.course_id)
        .where(Enrollment.user_id == user_id)
        .order_by(Enrollment.enrolled_at.desc())
    )
    return [(row[0], row[1]) for row in result.all()]


async def admin_update_user(db: AsyncSession, actor: User, user: User, fields: dict[str, Any]) -> User:
    """
    Update name, email, role or active flag of any user.

    Raises:
        ValueError: If the email is taken, an admin demotes or deactivates
            themselves, or the change would demote or deactivate the coin pool.
    """
    if user.id == actor.id and (fields.get("role") == "user" or fields.get("is_active") is False):
        msg = "You cannot demote or deactivate your own account"
        raise ValueError(msg)
    if _is_pool_account(user) and (fields.get("role") == "user" or fields.get("is_active") is False):
        msg = "The coin pool account must stay an active admin"
        raise ValueError(msg)

    email = fields.get("email")
    if email is not None and email.lower() != user.email:
        await _ensure_email_available(db, email, user.id)
        user.email = email.lower().strip()
    for key in ("name", "role", "is_active"):
        if fields.get(key) is not None:
            setattr(user, key, fields[key])

    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("user_updated_by_admin", user_id=user.id, admin_id=actor.id, fields=sorted(fields))
    return user


async def toggle_suspension(db: AsyncSession, actor: User, user: User) -> User:
    """
    Flip a user's active flag.

    Raises:
        ValueError: If an admin targets their own account or the coin pool.
    """
    if user.id == actor.id:
        msg = "You cannot suspend your own account"
        raise ValueError(msg)
    if _is_pool_account(user):
        msg = "The coin pool account cannot be suspended"
        raise ValueError(msg)
    user.is_active = not user.is_active
    user.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("user_suspension_toggled", user_id=user.id, admin_id=actor.id, is_active=user.is_active)
    return user


async def admin_delete_user(db: AsyncSession, actor: User, user: User) -> None:
    """
    Hard-delete another user.

    Raises:
        ValueError: If an admin targets their own account or the coin pool.
    """
    if user.id == actor.id:
        msg = "You cannot delete your own account"
        raise ValueError(msg)
    await purge_user(db, user)


async def get_user_stats(db: AsyncSession) -> dict[str, Any]:
    """Account totals and sign-ups per month over the last six months."""
    result = await db.execute(
        select(
            func.count(User.id),
            func.count(User.id).filter(User.is_active.is_(True)),
            func.count(User.id).filter(User.role == "admin"),
        )
    )
    total, active, admins = result.one()

    now = datetime.now(timezone.utc)
    since = start_of_month_window(now, 6)
    created = (await db.execute(select(User.created_at).where(User.created_at >= since))).scalars()

    return {
        "total_users": total,
        "active_users": active,
        "suspended_users": total - active,
        "admin_users": admins,
        "regular_users": total - admins,
        "users_by_month": count_by_month(created, now, 6),
    }
