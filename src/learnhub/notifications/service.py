"""Notification fan-out: creation with audience snapshots, per-user feeds, admin management.

Lifecycle: ``draft`` (saved, not delivered) and ``scheduled`` (delivered once
``scheduled_for`` passes) both end in ``sent``. Only ``sent`` notifications
appear in feeds, and a sent notification is immutable.
"""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import and_, delete, exists, func, insert, select, update

from learnhub.db.models import (
    Notification,
    NotificationDismissal,
    NotificationRead,
    NotificationRecipient,
    Thought,
)
from learnhub.notifications.audience import ExplicitUsers, parse_audience, resolve_audience
from learnhub.pagination import count_rows, paginate

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

logger = structlog.get_logger()

VALID_TYPES = ("general", "course", "system", "assignment", "announcement", "doubt")
VALID_PRIORITIES = ("low", "medium", "high", "urgent")
VALID_STATUSES = ("draft", "scheduled", "sent")


def _as_utc(value: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)


def _initial_status(draft: bool, scheduled_for: datetime | None, now: datetime) -> str:
    if draft:
        return "draft"
    if scheduled_for is not None and _as_utc(scheduled_for) > now:
        return "scheduled"
    return "sent"


async def _resolve_recipients(
    db: AsyncSession,
    target_audience: str,
    target_user_ids: list[int] | None,
) -> list[int]:
    audience = parse_audience(target_audience, target_user_ids)
    recipients = await resolve_audience(db, audience)
    if isinstance(audience, ExplicitUsers) and not recipients:
        msg = "None of the selected users exist"
        raise ValueError(msg)
    return recipients


async def _store_recipients(db: AsyncSession, notification_id: int, recipients: list[int]) -> int:
    await db.execute(delete(NotificationRecipient).where(NotificationRecipient.notification_id == notification_id))
    if recipients:
        await db.execute(
            insert(NotificationRecipient),
            [{"notification_id": notification_id, "user_id": uid} for uid in recipients],
        )
    return len(recipients)


# ---------------------------------------------------------------------------
# Creation
# ---------------------------------------------------------------------------


async def create_notification(
    db: AsyncSession,
    *,
    title: str,
    message: str,
    type_: str = "general",
    target_audience: str = "all",
    target_user_ids: list[int] | None = None,
    priority: str = "medium",
    sent_by: int | None = None,
    scheduled_for: datetime | None = None,
    link: str | None = None,
    icon: str | None = None,
    draft: bool = False,
    recipient_ids: list[int] | None = None,
) -> Notification:
    """
    Create a notification and snapshot its recipients.

    ``recipient_ids`` bypasses audience resolution and is stored as given;
    system messages about a user's own records use it so they reach
    suspended accounts too.

    Status is ``draft`` when requested, ``scheduled`` when ``scheduled_for`` is
    in the future, and ``sent`` otherwise.

    Raises:
        ValueError: On an invalid type, priority or audience.
    """
    if type_ not in VALID_TYPES:
        msg = f"Invalid notification type: {type_}. Must be one of {VALID_TYPES}"
        raise ValueError(msg)
    if priority not in VALID_PRIORITIES:
        msg = f"Invalid priority: {priority}. Must be one of {VALID_PRIORITIES}"
        raise ValueError(msg)

    now = datetime.now(timezone.utc)
    status = _initial_status(draft, scheduled_for, now)
    notification = Notification(
        title=title,
        message=message,
        type=type_,
        target_audience=target_audience,
        priority=priority,
        status=status,
        scheduled_for=scheduled_for,
        sent_at=now if status == "sent" else None,
        sent_by=sent_by,
        link=link,
        icon=icon,
        created_at=now,
        updated_at=now,
    )
    db.add(notification)
    await db.flush()

    if recipient_ids is None:
        recipient_ids = await _resolve_recipients(db, target_audience, target_user_ids)
    recipient_count = await _store_recipients(db, notification.id, recipient_ids)
    await db.flush()
    logger.info(
        "notification_created",
        notification_id=notification.id,
        status=status,
        target_audience=target_audience,
        recipients=recipient_count,
    )
    return notification


async def notify_user(
    db: AsyncSession,
    user_id: int,
    title: str,
    message: str,
    *,
    type_: str = "general",
    priority: str = "medium",
    sent_by: int | None = None,
    link: str | None = None,
    icon: str | None = None,
) -> Notification:
    """Send a notification to a single user right away, whether or not the account is active."""
    return await create_notification(
        db,
        title=title,
        message=message,
        type_=type_,
        target_audience="specific",
        target_user_ids=[user_id],
        recipient_ids=[user_id],
        priority=priority,
        sent_by=sent_by,
        link=link,
        icon=icon,
    )


# ---------------------------------------------------------------------------
# Admin management
# ---------------------------------------------------------------------------


async def get_notification(db: AsyncSession, notification_id: int) -> Notification | None:
    """Fetch a notification by ID."""
    return await db.get(Notification, notification_id)


async def list_notifications(
    db: AsyncSession,
    page: int = 1,
    per_page: int = 20,
    *,
    status: str | None = None,
    type_: str | None = None,
) -> tuple[list[Notification], int]:
    """All notifications, newest first."""
    query = select(Notification)
    if status:
        query = query.where(Notification.status == status)
    if type_:
        query = query.where(Notification.type == type_)
    query = query.order_by(Notification.created_at.desc(), Notification.id.desc())
    return await paginate(db, query, page, per_page)


async def get_delivery_counts(db: AsyncSession, notification_ids: list[int]) -> dict[int, dict[str, int]]:
    """Recipient and read counts per notification."""
    counts = {nid: {"recipient_count": 0, "read_count": 0} for nid in notification_ids}
    if not notification_ids:
        return counts

    recipients = await db.execute(
        select(NotificationRecipient.notification_id, func.count())
        .where(NotificationRecipient.notification_id.in_(notification_ids))
        .group_by(NotificationRecipient.notification_id)
    )
    for nid, count in recipients:
        counts[nid]["recipient_count"] = count

    reads = await db.execute(
        select(NotificationRead.notification_id, func.count())
        .where(NotificationRead.notification_id.in_(notification_ids))
        .group_by(NotificationRead.notification_id)
    )
    for nid, count in reads:
        counts[nid]["read_count"] = count
    return counts


async def update_notification(
    db: AsyncSession,
    notification: Notification,
    fields: dict[str, Any],
) -> Notification:
    """
    Edit a draft or scheduled notification.

    Changing the audience re-resolves the recipients; changing the schedule
    re-derives the status (a past date sends immediately).

    Raises:
        ValueError: If the notification was already sent or a value is invalid.
    """
    if notification.status == "sent":
        msg = "Cannot update sent notifications"
        raise ValueError(msg)
    if "type" in fields and fields["type"] not in VALID_TYPES:
        msg = f"Invalid notification type: {fields['type']}"
        raise ValueError(msg)
    if "priority" in fields and fields["priority"] not in VALID_PRIORITIES:
        msg = f"Invalid priority: {fields['priority']}"
        raise ValueError(msg)

    for key in ("title", "message", "type", "priority", "link", "icon"):
        if key in fields and fields[key] is not None:
            setattr(notification, key, fields[key])

    if "target_audience" in fields or "target_user_ids" in fields:
        target = fields.get("target_audience") or notification.target_audience
        recipients = await _resolve_recipients(db, target, fields.get("target_user_ids"))
        await _store_recipients(db, notification.id, recipients)
        notification.target_audience = target

    now = datetime.now(timezone.utc)
    if "scheduled_for" in fields:
        notification.scheduled_for = fields["scheduled_for"]
        if notification.status == "scheduled" or notification.scheduled_for is not None:
            notification.status = _initial_status(notification.status == "draft", notification.scheduled_for, now)
            if notification.status == "sent":
                notification.sent_at = now

    notification.updated_at = now
    await db.flush()
    return notification


async def send_now(db: AsyncSession, notification: Notification) -> Notification:
    """
    Deliver a draft or scheduled notification immediately.

    Raises:
        ValueError: If it was already sent.
    """
    if notification.status == "sent":
        msg = "Notification has already been sent"
        raise ValueError(msg)
    now = datetime.now(timezone.utc)
    notification.status = "sent"
    notification.sent_at = now
    notification.updated_at = now
    await db.flush()
    logger.info("notification_sent", notification_id=notification.id)
    return notification


async def delete_notification(db: AsyncSession, notification: Notification) -> None:
    """Delete a notification with its delivery state."""
    nid = notification.id
    for model in (NotificationRead, NotificationDismissal, NotificationRecipient):
        await db.execute(delete(model).where(model.notification_id == nid))
    await db.execute(
        update(Thought)
        .where(Thought.notification_id == nid)
        .values(notification_id=None)
        .execution_options(synchronize_session=False)
    )
    await db.delete(notification)
    await db.flush()
    logger.info("notification_deleted", notification_id=nid)


async def promote_due_notifications(
    db: AsyncSession,
    now: datetime | None = None,
    limit: int | None = None,
) -> int:
    """Flip scheduled notifications whose time has come to ``sent``, oldest due first.

    At most ``limit`` rows are promoted per call. Returns the count.
    """
    now = now or datetime.now(timezone.utc)
    due = (
        select(Notification.id)
        .where(Notification.status == "scheduled", Notification.scheduled_for <= now)
        .order_by(Notification.scheduled_for, Notification.id)
    )
    if limit is not None:
        due = due.limit(limit)
    result = await db.execute(
        update(Notification)
        .where(Notification.id.in_(due.scalar_subquery()), Notification.status == "scheduled")
        .values(status="sent", sent_at=now, updated_at=now)
        .execution_options(synchronize_session=False)
    )
    await db.flush()
    return result.rowcount


async def get_notification_stats(db: AsyncSession) -> dict[str, Any]:
    """Totals per status and type plus the average read rate of sent notifications."""
    by_status = dict.fromkeys(VALID_STATUSES, 0)
    for status, count in await db.execute(
        select(Notification.status, func.count()).group_by(Notification.status)
    ):
        by_status[status] = count

    by_type = [
        {"type": type_, "count": count}
        for type_, count in await db.execute(
            select(Notification.type, func.count()).group_by(Notification.type).order_by(func.count().desc())
        )
    ]

    sent_ids = list((await db.execute(select(Notification.id).where(Notification.status == "sent"))).scalars())
    delivery = await get_delivery_counts(db, sent_ids)
    rates = [
        c["read_count"] / c["recipient_count"] * 100 for c in delivery.values() if c["recipient_count"] > 0
    ]

    return {
        "total": sum(by_status.values()),
        "sent": by_status["sent"],
        "scheduled": by_status["scheduled"],
        "draft": by_status["draft"],
        "by_type": by_type,
        "average_read_rate": round(sum(rates) / len(rates), 2) if rates else 0.0,
    }


# ---------------------------------------------------------------------------
# Recipient feed
# ---------------------------------------------------------------------------


def _visible_to(user_id: int) -> list[Any]:
    """Conditions selecting the sent, undismissed notifications a user received."""
    return [
        Notification.status == "sent",
        exists().where(
            NotificationRecipient.notification_id == Notification.id,
            NotificationRecipient.user_id == user_id,
        ),
        ~exists().where(
            NotificationDismissal.notification_id == Notification.id,
            NotificationDismissal.user_id == user_id,
        ),
    ]


def _is_read(user_id: int) -> Any:  # noqa: ANN401
    return exists().where(
        NotificationRead.notification_id == Notification.id,
        NotificationRead.user_id == user_id,
    )


async def get_feed(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
    type_: str | None = None,
) -> tuple[list[tuple[Notification, datetime | None]], int]:
    """A user's notifications with their read time (None when unread), newest first."""
    query = (
        select(Notification, NotificationRead.read_at)
        .outerjoin(
            NotificationRead,
            and_(NotificationRead.notification_id == Notification.id, NotificationRead.user_id == user_id),
        )
        .where(*_visible_to(user_id))
    )
    if type_:
        query = query.where(Notification.type == type_)
    total = await count_rows(db, query)
    result = await db.execute(
        query.order_by(Notification.sent_at.desc(), Notification.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return [(row[0], row[1]) for row in result.all()], total


async def get_unread_count(db: AsyncSession, user_id: int) -> int:
    """Count of visible notifications the user has not read."""
    result = await db.execute(
        select(func.count()).select_from(Notification).where(*_visible_to(user_id), ~_is_read(user_id))
    )
    return result.scalar_one()


async def get_category_counts(db: AsyncSession, user_id: int) -> list[dict[str, Any]]:
    """Visible and unread counts per notification type."""
    result = await db.execute(
        select(
            Notification.type,
            func.count(),
            func.count().filter(~_is_read(user_id)),
        )
        .where(*_visible_to(user_id))
        .group_by(Notification.type)
        .order_by(Notification.type)
    )
    return [{"type": type_, "total": total, "unread": unread} for type_, total, unread in result]


async def _can_see(db: AsyncSession, user_id: int, notification_id: int) -> bool:
    found = await db.scalar(
        select(Notification.id).where(Notification.id == notification_id, *_visible_to(user_id))
    )
    return found is not None


async def mark_as_read(db: AsyncSession, user_id: int, notification_id: int) -> bool:
    """Record a read receipt. Idempotent. Returns False if the user cannot see the notification."""
    if not await _can_see(db, user_id, notification_id):
        return False
    already = await db.get(NotificationRead, (notification_id, user_id))
    if already is None:
        db.add(NotificationRead(notification_id=notification_id, user_id=user_id, read_at=datetime.now(timezone.utc)))
        await db.flush()
    return True


async def mark_all_as_read(db: AsyncSession, user_id: int) -> int:
    """Mark every visible unread notification as read. Returns count updated."""
    unread = list(
        (
            await db.execute(select(Notification.id).where(*_visible_to(user_id), ~_is_read(user_id)))
        ).scalars()
    )
    if unread:
        now = datetime.now(timezone.utc)
        await db.execute(
            insert(NotificationRead),
            [{"notification_id": nid, "user_id": user_id, "read_at": now} for nid in unread],
        )
        await db.flush()
    return len(unread)


async def dismiss(db: AsyncSession, user_id: int, notification_id: int) -> bool:
    """Hide a notification from the user's feed. Returns False if the user cannot see it."""
    if not await _can_see(db, user_id, notification_id):
        return False
    db.add(
        NotificationDismissal(
            notification_id=notification_id,
            user_id=user_id,
            dismissed_at=datetime.now(timezone.utc),
        )
    )
    await db.flush()
    return True
