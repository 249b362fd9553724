"""Notification audiences and their resolution to concrete recipients.

An audience is one of three variants:

* ``AllUsers``: every active account,
* ``RoleAudience``: every active account with a given role,
* ``ExplicitUsers``: a fixed list of user IDs.

Resolution happens once, when a notification is created (or its audience is
edited), and the resulting IDs are stored. Accounts created later are not
added retroactively.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Union

from sqlalchemy import select

from learnhub.db.models import User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

TARGET_AUDIENCES = ("all", "students", "instructors", "specific")

# Platform roles behind the role-based audience labels; staff accounts carry the admin role
AUDIENCE_ROLES = {
    "students": "user",
    "instructors": "admin",
}


@dataclass(frozen=True)
class AllUsers:
    """Every active account."""


@dataclass(frozen=True)
class RoleAudience:
    """Every active account with ``role``."""

    role: str


@dataclass(frozen=True)
class ExplicitUsers:
    """A fixed set of users."""

    user_ids: tuple[int, ...]


Audience = Union[AllUsers, RoleAudience, ExplicitUsers]


def parse_audience(target_audience: str, target_user_ids: list[int] | None = None) -> Audience:
    """
    Build the audience variant for an API label.

    Raises:
        ValueError: On an unknown label or a ``specific`` audience without users.
    """
    if target_audience == "all":
        return AllUsers()
    if target_audience in AUDIENCE_ROLES:
        return RoleAudience(role=AUDIENCE_ROLES[target_audience])
    if target_audience == "specific":
        ids = tuple(dict.fromkeys(target_user_ids or []))
        if not ids:
            msg = "Please select at least one user for a specific notification"
            raise ValueError(msg)
        return ExplicitUsers(user_ids=ids)
    msg = f"Invalid target audience: {target_audience}. Must be one of {TARGET_AUDIENCES}"
    raise ValueError(msg)


async def resolve_audience(db: AsyncSession, audience: Audience) -> list[int]:
    """Snapshot the recipient IDs of an audience, in ascending order.

    Unknown or deactivated IDs in an explicit list are dropped.
    """
    query = select(User.id).where(User.is_active.is_(True))
    if isinstance(audience, RoleAudience):
        query = query.where(User.role == audience.role)
    elif isinstance(audience, ExplicitUsers):
        query = query.where(User.id.in_(audience.user_ids))
    result = await db.execute(query.order_by(User.id))
    return list(result.scalars().all())
