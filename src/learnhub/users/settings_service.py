"""Per-user settings: lazily created defaults, validated deep-merge updates, admin stats.

Keys are camelCase because the documents are consumed as-is by the web client.
"""

from __future__ import annotations

import copy
from collections import Counter
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import select

from learnhub.db.models import UserSettings
from learnhub.pagination import paginate

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

SECTIONS = ("notifications", "privacy", "preferences", "security")

DEFAULT_SETTINGS: dict[str, dict[str, Any]] = {
    "notifications": {
        "email": {
            "enabled": True,
            "courseUpdates": True,
            "newContent": True,
            "systemAlerts": True,
            "marketing": False,
        },
        "push": {
            "enabled": True,
            "courseReminders": True,
            "assignments": True,
            "messages": True,
        },
        "sms": {
            "enabled": False,
            "urgentOnly": True,
        },
    },
    "privacy": {
        "profileVisibility": "students",
        "showEnrollments": True,
        "showProgress": True,
        "allowMessages": True,
        "dataSharing": False,
    },
    "preferences": {
        "language": "en",
        "timezone": "UTC",
        "darkMode": False,
        "autoBackup": True,
        "emailDigest": "weekly",
    },
    "security": {
        "twoFactorEnabled": False,
        "loginAlerts": True,
        "sessionTimeout": 30,  # minutes
    },
}

ALLOWED_VALUES: dict[str, frozenset[str]] = {
    "privacy.profileVisibility": frozenset({"public", "students", "private"}),
    "preferences.emailDigest": frozenset({"daily", "weekly", "monthly", "never"}),
}

SESSION_TIMEOUT_RANGE = (5, 1440)


class SettingsValidationError(ValueError):
    """Raised when a settings update contains an unknown key or a bad value."""


def default_section(section: str) -> dict[str, Any]:
    """A fresh copy of one section's defaults."""
    return copy.deepcopy(DEFAULT_SETTINGS[section])


def _check_value(path: str, default: Any, value: Any) -> None:  # noqa: ANN401
    if isinstance(default, bool):
        if not isinstance(value, bool):
            msg = f"{path} must be a boolean"
            raise SettingsValidationError(msg)
    elif isinstance(default, int):
        if isinstance(value, bool) or not isinstance(value, int):
            msg = f"{path} must be an integer"
            raise SettingsValidationError(msg)
    elif isinstance(default, str):
        if not isinstance(value, str) or not value.strip():
            msg = f"{path} must be a non-empty string"
            raise SettingsValidationError(msg)

    allowed = ALLOWED_VALUES.get(path)
    if allowed is not None and value not in allowed:
        msg = f"{path} must be one of {sorted(allowed)}"
        raise SettingsValidationError(msg)
    if path == "security.sessionTimeout":
        low, high = SESSION_TIMEOUT_RANGE
        if not low <= value <= high:
            msg = f"{path} must be between {low} and {high} minutes"
            raise SettingsValidationError(msg)


def deep_merge(defaults: dict[str, Any], current: dict[str, Any], patch: dict[str, Any], path: str) -> dict[str, Any]:
    """Merge ``patch`` into ``current`` following the shape of ``defaults``.

    Keys missing from ``current`` fall back to the defaults; keys the defaults
    do not know are rejected.
    """
    merged: dict[str, Any] = {}
    for key, default in defaults.items():
        existing = current.get(key, copy.deepcopy(default))
        if isinstance(default, dict):
            merged[key] = deep_merge(default, existing if isinstance(existing, dict) else {}, {}, f"{path}.{key}")
        else:
            merged[key] = existing

    for key, value in patch.items():
        key_path = f"{path}.{key}"
        if key not in defaults:
            msg = f"Unknown setting: {key_path}"
            raise SettingsValidationError(msg)
        default = defaults[key]
        if isinstance(default, dict):
            if not isinstance(value, dict):
                msg = f"{key_path} must be an object"
                raise SettingsValidationError(msg)
            merged[key] = deep_merge(default, merged[key], value, key_path)
        else:
            _check_value(key_path, default, value)
            merged[key] = value
    return merged


def settings_document(settings: UserSettings) -> dict[str, dict[str, Any]]:
    """All four sections, with defaults filled in for anything never stored."""
    return {
        section: deep_merge(DEFAULT_SETTINGS[section], getattr(settings, section) or {}, {}, section)
        for section in SECTIONS
    }


async def get_user_settings(db: AsyncSession, user_id: int) -> UserSettings:
    """Get user settings, creating defaults if they don't exist."""
    result = await db.execute(select(UserSettings).where(UserSettings.user_id == user_id))
    settings = result.scalar_one_or_none()

    if settings is None:
        now = datetime.now(timezone.utc)
        settings = UserSettings(
            user_id=user_id,
            notifications=default_section("notifications"),
            privacy=default_section("privacy"),
            preferences=default_section("preferences"),
            security=default_section("security"),
            created_at=now,
            updated_at=now,
        )
        db.add(settings)
        await db.flush()

    return settings


async def update_user_settings(
    db: AsyncSession,
    user_id: int,
    updates: dict[str, dict[str, Any] | None],
) -> UserSettings:
    """
    Deep-merge update user settings.

    Only the provided keys are updated; others remain unchanged. Sections other
    than the four known ones are ignored.

    Raises:
        SettingsValidationError: On unknown keys or invalid values.
    """
    settings = await get_user_settings(db, user_id)

    for section in SECTIONS:
        patch = updates.get(section)
        if patch is None:
            continue
        merged = deep_merge(DEFAULT_SETTINGS[section], getattr(settings, section) or {}, patch, section)
        setattr(settings, section, merged)

    settings.updated_at = datetime.now(timezone.utc)
    await db.flush()
    return settings


async def reset_user_settings(db: AsyncSession, user_id: int) -> UserSettings:
    """Restore every section to its defaults."""
    settings = await get_user_settings(db, user_id)
    for section in SECTIONS:
        setattr(settings, section, default_section(section))
    settings.updated_at = datetime.now(timezone.utc)
    await db.flush()
    logger.info("settings_reset", user_id=user_id)
    return settings


async def list_all_settings(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[UserSettings], int]:
    """Stored settings rows, most recently updated first."""
    query = select(UserSettings).order_by(UserSettings.updated_at.desc(), UserSettings.user_id)
    return await paginate(db, query, page, per_page)


async def get_settings_stats(db: AsyncSession) -> dict[str, Any]:
    """Adoption counts across stored settings."""
    result = await db.execute(select(UserSettings))
    rows = [settings_document(s) for s in result.scalars().all()]

    languages = Counter(doc["preferences"]["language"] for doc in rows)
    return {
        "total_users_with_settings": len(rows),
        "dark_mode_users": sum(1 for doc in rows if doc["preferences"]["darkMode"]),
        "two_factor_users": sum(1 for doc in rows if doc["security"]["twoFactorEnabled"]),
        "email_notifications_enabled": sum(1 for doc in rows if doc["notifications"]["email"]["enabled"]),
        "push_notifications_enabled": sum(1 for doc in rows if doc["notifications"]["push"]["enabled"]),
        "languages": [{"language": lang, "count": count} for lang, count in languages.most_common()],
    }
