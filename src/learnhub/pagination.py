"""Offset pagination shared by the list endpoints."""

from __future__ import annotations

from typing import Any

from sqlalchemy import Select, func, select
from sqlalchemy.ext.asyncio import AsyncSession


def total_pages(total: int, per_page: int) -> int:
    """Number of pages needed for ``total`` rows."""
    return (total + per_page - 1) // per_page if per_page > 0 else 0


async def count_rows(db: AsyncSession, query: Select[Any]) -> int:
    """Count the rows a query would return, ignoring its ordering."""
    subquery = query.order_by(None).subquery()
    total = await db.scalar(select(func.count()).select_from(subquery))
    return total or 0


async def paginate(
    db: AsyncSession,
    query: Select[Any],
    page: int,
    per_page: int,
) -> tuple[list[Any], int]:
    """Run ``query`` for one page of ORM entities.

    Returns:
        Tuple of (entities on this page, total matching rows).
    """
    total = await count_rows(db, query)
    result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
    return list(result.scalars().all()), total
