"""Coin leaderboard: learners ranked by balance, earliest sign-up first on ties."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from sqlalchemy import func, select

from learnhub.db.models import Doubt, User
from learnhub.pagination import count_rows

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession


async def get_leaderboard(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 20,
    *,
    with_doubt_counts: bool = False,
) -> tuple[list[dict[str, Any]], int]:
    """
    Active learners ordered by coins descending, then account creation ascending.

    Admin accounts (including the coin pool) never appear. With
    ``with_doubt_counts`` each entry also carries the number of doubts asked
    and answered.
    """
    columns: list[Any] = [User.id, User.name, User.avatar_url, User.coins, User.created_at]
    if with_doubt_counts:
        columns.append(
            select(func.count(Doubt.id)).where(Doubt.asked_by == User.id).scalar_subquery().label("doubt_count")
        )
        columns.append(
            select(func.count(Doubt.id))
            .where(Doubt.asked_by == User.id, Doubt.status == "answered")
            .scalar_subquery()
            .label("answered_doubts")
        )

    query = select(*columns).where(User.role == "user", User.is_active.is_(True))
    total = await count_rows(db, query)

    offset = (page - 1) * per_page
    result = await db.execute(
        query.order_by(User.coins.desc(), User.created_at.asc(), User.id.asc()).offset(offset).limit(per_page)
    )

    entries: list[dict[str, Any]] = []
    for position, row in enumerate(result.all(), start=offset + 1):
        entry: dict[str, Any] = {
            "rank": position,
            "user_id": row.id,
            "name": row.name,
            "avatar_url": row.avatar_url,
            "coins": row.coins,
            "joined_at": row.created_at,
        }
        if with_doubt_counts:
            entry["doubt_count"] = row.doubt_count
            entry["answered_doubts"] = row.answered_doubts
        entries.append(entry)
    return entries, total
