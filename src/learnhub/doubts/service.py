"""Doubt workflow: submission, moderation and the answer reward.

States::

    pending --answer--> answered --close--> closed
    pending --close---> closed

Answering is the only rewarded transition. The status change, the pool
transfer and the asker's notification run in the caller's transaction, and
the status change is a conditional UPDATE on ``status = 'pending'`` so a
doubt can be rewarded at most once.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, func, select, update

from learnhub.coins.ledger import get_earnings, transfer_from_pool
from learnhub.coins.pool import get_pool_account_id
from learnhub.db.models import CoinTransaction, Doubt, User
from learnhub.notifications.service import notify_user
from learnhub.pagination import paginate
from learnhub.timeseries import count_by_month, start_of_month_window

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

VALID_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"answered", "closed"}),
    "answered": frozenset({"closed"}),
    "closed": frozenset(),
}

SNIPPET_LENGTH = 50


class InvalidTransitionError(ValueError):
    """The doubt's current status does not allow the requested action."""


def validate_transition(current: str, target: str) -> None:
    """
    Check that a doubt may move from ``current`` to ``target``.

    Raises:
        InvalidTransitionError: If the transition is not allowed.
    """
    if target not in VALID_TRANSITIONS.get(current, frozenset()):
        msg = f"Doubt is already {current}"
        raise InvalidTransitionError(msg)


def _snippet(question: str) -> str:
    if len(question) <= SNIPPET_LENGTH:
        return question
    return question[:SNIPPET_LENGTH] + "..."


async def _current_status(db: AsyncSession, doubt_id: int) -> str | None:
    return await db.scalar(select(Doubt.status).where(Doubt.id == doubt_id))


# ---------------------------------------------------------------------------
# Learner operations
# ---------------------------------------------------------------------------


async def submit_doubt(db: AsyncSession, user_id: int, question: str) -> Doubt:
    """Create a pending doubt."""
    now = datetime.now(timezone.utc)
    doubt = Doubt(question=question.strip(), asked_by=user_id, status="pending", created_at=now, updated_at=now)
    db.add(doubt)
    await db.flush()
    logger.info("doubt_submitted", doubt_id=doubt.id, user_id=user_id)
    return doubt


async def get_doubt(db: AsyncSession, doubt_id: int) -> Doubt | None:
    """Fetch a doubt by ID."""
    return await db.get(Doubt, doubt_id)


async def list_user_doubts(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
    status: str | None = None,
) -> tuple[list[Doubt], int]:
    """A learner's own doubts, newest first."""
    query = select(Doubt).where(Doubt.asked_by == user_id)
    if status:
        query = query.where(Doubt.status == status)
    query = query.order_by(Doubt.created_at.desc(), Doubt.id.desc())
    return await paginate(db, query, page, per_page)


async def get_user_doubt_stats(db: AsyncSession, user_id: int) -> dict[str, int]:
    """Counts per status plus the learner's coin totals."""
    result = await db.execute(
        select(Doubt.status, func.count()).where(Doubt.asked_by == user_id).group_by(Doubt.status)
    )
    counts = {status: 0 for status in VALID_TRANSITIONS}
    for status, count in result:
        counts[status] = count

    balance = await db.scalar(select(User.coins).where(User.id == user_id))
    earnings = await get_earnings(db, user_id)
    return {
        "total": sum(counts.values()),
        **counts,
        "total_coins": balance or 0,
        "coins_from_doubts": earnings["from_doubts"],
    }


async def delete_doubt(db: AsyncSession, doubt: Doubt, user_id: int) -> None:
    """
    Delete a learner's own pending doubt.

    Raises:
        PermissionError: If the doubt belongs to someone else.
        ValueError: If it is no longer pending.
    """
    if doubt.asked_by != user_id:
        msg = "Not authorized to delete this doubt"
        raise PermissionError(msg)
    doubt_id = doubt.id
    result = await db.execute(
        delete(Doubt)
        .where(Doubt.id == doubt_id, Doubt.asked_by == user_id, Doubt.status == "pending")
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        msg = "Only pending doubts can be deleted"
        raise ValueError(msg)
    if doubt in db:
        db.expunge(doubt)
    logger.info("doubt_deleted", doubt_id=doubt_id, user_id=user_id)


# ---------------------------------------------------------------------------
# Admin operations
# ---------------------------------------------------------------------------


async def list_doubts(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 20,
    *,
    status: str | None = None,
    search: str | None = None,
) -> tuple[list[tuple[Doubt, User]], int]:
    """All doubts with their askers, newest first. ``search`` matches the question case-insensitively."""
    query = select(Doubt, User).join(User, User.id == Doubt.asked_by)
    if status:
        query = query.where(Doubt.status == status)
    if search:
        query = query.where(Doubt.question.ilike(f"%{search.strip()}%"))

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    result = await db.execute(
        query.order_by(Doubt.created_at.desc(), Doubt.id.desc()).offset((page - 1) * per_page).limit(per_page)
    )
    return [(doubt, asker) for doubt, asker in result.all()], total or 0


async def get_doubt_stats(db: AsyncSession, months: int = 6) -> dict[str, Any]:
    """Counts by status, monthly submissions and the most active askers."""
    result = await db.execute(select(Doubt.status, func.count()).group_by(Doubt.status))
    by_status = {status: 0 for status in VALID_TRANSITIONS}
    for status, count in result:
        by_status[status] = count

    now = datetime.now(timezone.utc)
    created = await db.execute(
        select(Doubt.created_at).where(Doubt.created_at >= start_of_month_window(now, months))
    )
    monthly = count_by_month(created.scalars().all(), now, months)

    doubt_count = func.count(Doubt.id).label("doubt_count")
    top = await db.execute(
        select(User.id, User.name, User.email, User.coins, doubt_count)
        .join(Doubt, Doubt.asked_by == User.id)
        .group_by(User.id, User.name, User.email, User.coins)
        .order_by(doubt_count.desc(), User.id.asc())
        .limit(10)
    )
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "monthly": monthly,
        "top_askers": [
            {
                "user_id": row.id,
                "name": row.name,
                "email": row.email,
                "coins": row.coins,
                "doubt_count": row.doubt_count,
            }
            for row in top
        ],
    }


async def answer_doubt(
    db: AsyncSession,
    doubt: Doubt,
    admin_id: int,
    *,
    title: str,
    description: str,
    url: str | None,
    reward: int,
) -> Doubt:
    """
    Answer a pending doubt, reward the asker and notify them.

    Nothing is committed here: if the reward cannot be paid the caller's
    rollback leaves the doubt pending.

    Raises:
        InvalidTransitionError: If the doubt is not pending (also when a
            concurrent request answered it first).
        PoolAccountNotConfiguredError: If no pool account is registered.
        InsufficientCoinsError: If the pool cannot cover the reward.
    """
    pool_account_id = get_pool_account_id()
    validate_transition(doubt.status, "answered")

    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(Doubt)
        .where(Doubt.id == doubt.id, Doubt.status == "pending")
        .values(
            status="answered",
            response_title=title,
            response_description=description,
            response_url=url,
            answered_by=admin_id,
            answered_at=now,
            updated_at=now,
        )
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await _current_status(db, doubt.id)
        msg = f"Doubt is already {current}"
        raise InvalidTransitionError(msg)

    if reward > 0:
        await transfer_from_pool(
            db, pool_account_id, doubt.asked_by, reward, "Doubt answered", related_doubt_id=doubt.id
        )

    await notify_user(
        db,
        doubt.asked_by,
        "Doubt Answered",
        f'Your doubt "{_snippet(doubt.question)}" has been answered!',
        type_="doubt",
        sent_by=admin_id,
        link=url,
        icon="help-circle",
    )
    await db.refresh(doubt)
    logger.info("doubt_answered", doubt_id=doubt.id, admin_id=admin_id, reward=reward)
    return doubt


async def close_doubt(db: AsyncSession, doubt: Doubt, admin_id: int) -> Doubt:
    """
    Close a doubt without reward and notify the asker.

    Raises:
        InvalidTransitionError: If the doubt is already closed.
    """
    validate_transition(doubt.status, "closed")

    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(Doubt)
        .where(Doubt.id == doubt.id, Doubt.status != "closed")
        .values(status="closed", closed_by=admin_id, closed_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        msg = "Doubt is already closed"
        raise InvalidTransitionError(msg)

    await notify_user(
        db,
        doubt.asked_by,
        "Doubt Closed",
        f'Your doubt "{_snippet(doubt.question)}" has been closed.',
        type_="doubt",
        priority="low",
        sent_by=admin_id,
        icon="help-circle",
    )
    await db.refresh(doubt)
    logger.info("doubt_closed", doubt_id=doubt.id, admin_id=admin_id)
    return doubt


async def admin_delete_doubt(db: AsyncSession, doubt: Doubt) -> None:
    """Delete any doubt, keeping its ledger entries but dropping their link."""
    doubt_id = doubt.id
    await db.execute(
        update(CoinTransaction)
        .where(CoinTransaction.related_doubt_id == doubt_id)
        .values(related_doubt_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(doubt)
    await db.flush()
    logger.info("doubt_deleted_by_admin", doubt_id=doubt_id)
