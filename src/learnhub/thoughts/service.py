"""Thought moderation: learners submit, admins approve (publish + reward) or reject."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import delete, func, or_, select, update

from learnhub.coins.ledger import get_earnings, transfer_from_pool
from learnhub.coins.pool import get_pool_account_id
from learnhub.db.models import CoinTransaction, Thought, User
from learnhub.notifications.service import create_notification
from learnhub.pagination import paginate
from learnhub.timeseries import count_by_month, start_of_month_window

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

STATUSES = ("pending", "approved", "rejected")
DEFAULT_APPROVAL_NOTES = "Approved and published as notification"


class ThoughtAlreadyReviewedError(ValueError):
    """Approve or reject on a thought that is no longer pending."""

    def __init__(self, status: str | None) -> None:
        super().__init__(f"Thought is already {status}")
        self.status = status


async def _claim_for_review(
    db: AsyncSession,
    thought: Thought,
    status: str,
    admin_id: int,
    notes: str | None,
) -> datetime:
    """Conditionally move a pending thought to ``status``."""
    if thought.status != "pending":
        raise ThoughtAlreadyReviewedError(thought.status)
    now = datetime.now(timezone.utc)
    result = await db.execute(
        update(Thought)
        .where(Thought.id == thought.id, Thought.status == "pending")
        .values(status=status, reviewed_by=admin_id, reviewed_at=now, review_notes=notes, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await db.scalar(select(Thought.status).where(Thought.id == thought.id))
        raise ThoughtAlreadyReviewedError(current)
    return now


# ---------------------------------------------------------------------------
# Learner operations
# ---------------------------------------------------------------------------


async def submit_thought(db: AsyncSession, user_id: int, title: str, message: str) -> Thought:
    """Create a pending thought."""
    now = datetime.now(timezone.utc)
    thought = Thought(
        title=title.strip(),
        message=message.strip(),
        submitted_by=user_id,
        status="pending",
        created_at=now,
        updated_at=now,
    )
    db.add(thought)
    await db.flush()
    logger.info("thought_submitted", thought_id=thought.id, user_id=user_id)
    return thought


async def get_thought(db: AsyncSession, thought_id: int) -> Thought | None:
    """Fetch a thought by ID."""
    return await db.get(Thought, thought_id)


async def list_user_thoughts(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
    status: str | None = None,
) -> tuple[list[Thought], int]:
    """A learner's own thoughts, newest first."""
    query = select(Thought).where(Thought.submitted_by == user_id)
    if status:
        query = query.where(Thought.status == status)
    query = query.order_by(Thought.created_at.desc(), Thought.id.desc())
    return await paginate(db, query, page, per_page)


async def get_user_thought_stats(db: AsyncSession, user_id: int) -> dict[str, int]:
    """Counts per status and coins earned from approved thoughts."""
    result = await db.execute(
        select(Thought.status, func.count()).where(Thought.submitted_by == user_id).group_by(Thought.status)
    )
    counts = dict.fromkeys(STATUSES, 0)
    for status, count in result:
        counts[status] = count
    earnings = await get_earnings(db, user_id)
    return {"total": sum(counts.values()), **counts, "coins_from_thoughts": earnings["from_thoughts"]}


async def delete_user_thought(db: AsyncSession, thought: Thought, user_id: int) -> None:
    """
    Delete a learner's own pending thought.

    Raises:
        PermissionError: If the thought belongs to someone else.
        ValueError: If it was already reviewed.
    """
    if thought.submitted_by != user_id:
        msg = "Not authorized to delete this thought"
        raise PermissionError(msg)
    thought_id = thought.id
    result = await db.execute(
        delete(Thought)
        .where(Thought.id == thought_id, Thought.submitted_by == user_id, Thought.status == "pending")
        .execution_options(synchronize_session=False)
    )
    if result.rowcount == 0:
        current = await db.scalar(select(Thought.status).where(Thought.id == thought_id))
        msg = f"Cannot delete {current or thought.status} thoughts"
        raise ValueError(msg)
    if thought in db:
        db.expunge(thought)
    logger.info("thought_deleted", thought_id=thought_id, user_id=user_id)


async def list_thoughts(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 20,
    *,
    status: str | None = None,
    search: str | None = None,
    sort: str = "newest",
) -> tuple[list[tuple[Thought, User]], int]:
    """Thoughts with their submitters. ``search`` matches title or message case-insensitively."""
    query = select(Thought, User).join(User, User.id == Thought.submitted_by)
    if status:
        query = query.where(Thought.status == status)
    if search:
        pattern = f"%{search.strip()}%"
        query = query.where(or_(Thought.title.ilike(pattern), Thought.message.ilike(pattern)))

    total = await db.scalar(select(func.count()).select_from(query.subquery()))
    if sort == "oldest":
        query = query.order_by(Thought.created_at.asc(), Thought.id.asc())
    else:
        query = query.order_by(Thought.created_at.desc(), Thought.id.desc())
    result = await db.execute(query.offset((page - 1) * per_page).limit(per_page))
    return [(thought, user) for thought, user in result.all()], total or 0


# ---------------------------------------------------------------------------
# Moderation
# ---------------------------------------------------------------------------


async def approve_thought(
    db: AsyncSession,
    thought: Thought,
    admin_id: int,
    *,
    target_audience: str = "all",
    target_user_ids: list[int] | None = None,
    priority: str = "medium",
    review_notes: str | None = None,
    reward: int,
) -> Thought:
    """
    Approve a pending thought: publish it as a notification and reward the submitter.

    Runs in the caller's transaction; any failure leaves the thought pending
    once the caller rolls back.

    Raises:
        ThoughtAlreadyReviewedError: If the thought is not pending.
        ValueError: If the audience is invalid.
        PoolAccountNotConfiguredError: If no pool account is registered.
        InsufficientCoinsError: If the pool cannot cover the reward.
    """
    pool_account_id = get_pool_account_id()
    notes = (review_notes or "").strip() or DEFAULT_APPROVAL_NOTES
    await _claim_for_review(db, thought, "approved", admin_id, notes)

    notification = await create_notification(
        db,
        title=thought.title,
        message=thought.message,
        type_="general",
        target_audience=target_audience,
        target_user_ids=target_user_ids,
        priority=priority,
        sent_by=admin_id,
        icon="lightbulb",
    )
    await db.execute(
        update(Thought)
        .where(Thought.id == thought.id)
        .values(notification_id=notification.id)
        .execution_options(synchronize_session=False)
    )

    if reward > 0:
        await transfer_from_pool(
            db,
            pool_account_id,
            thought.submitted_by,
            reward,
            f'Thought approved: "{thought.title}"',
            related_thought_id=thought.id,
        )

    await db.refresh(thought)
    logger.info("thought_approved", thought_id=thought.id, notification_id=notification.id, admin_id=admin_id)
    return thought


async def reject_thought(db: AsyncSession, thought: Thought, admin_id: int, review_notes: str) -> Thought:
    """
    Reject a pending thought. No notification, no reward.

    Raises:
        ValueError: If the notes are blank.
        ThoughtAlreadyReviewedError: If the thought is not pending.
    """
    notes = (review_notes or "").strip()
    if not notes:
        msg = "Please provide review notes explaining the rejection"
        raise ValueError(msg)
    await _claim_for_review(db, thought, "rejected", admin_id, notes)
    await db.refresh(thought)
    logger.info("thought_rejected", thought_id=thought.id, admin_id=admin_id)
    return thought


async def admin_delete_thought(db: AsyncSession, thought: Thought) -> None:
    """Delete a thought in any status. Its notification and ledger entries stay."""
    thought_id = thought.id
    await db.execute(
        update(CoinTransaction)
        .where(CoinTransaction.related_thought_id == thought_id)
        .values(related_thought_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(thought)
    await db.flush()
    logger.info("thought_deleted_by_admin", thought_id=thought_id)


async def get_thought_stats(db: AsyncSession, months: int = 6) -> dict[str, Any]:
    """Counts by status, monthly submissions and the top contributors."""
    result = await db.execute(select(Thought.status, func.count()).group_by(Thought.status))
    by_status = dict.fromkeys(STATUSES, 0)
    for status, count in result:
        by_status[status] = count

    now = datetime.now(timezone.utc)
    created = await db.execute(
        select(Thought.created_at).where(Thought.created_at >= start_of_month_window(now, months))
    )

    approved = func.count(Thought.id).label("approved_count")
    top = await db.execute(
        select(User.id, User.name, approved)
        .join(Thought, Thought.submitted_by == User.id)
        .where(Thought.status == "approved")
        .group_by(User.id, User.name)
        .order_by(approved.desc(), User.id.asc())
        .limit(10)
    )
    return {
        "total": sum(by_status.values()),
        "by_status": by_status,
        "monthly": count_by_month(created.scalars().all(), now, months),
        "top_contributors": [
            {"user_id": row.id, "name": row.name, "approved_count": row.approved_count} for row in top
        ],
    }
