"""Notification feed endpoints for recipients."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_user
from learnhub.database import get_session
from learnhub.db.models import User
from learnhub.notifications.schemas import (
    CategoryCount,
    FeedItemResponse,
    FeedResponse,
    NotificationType,
    UnreadCountResponse,
)
from learnhub.notifications.service import (
    dismiss,
    get_category_counts,
    get_feed,
    get_unread_count,
    mark_all_as_read,
    mark_as_read,
)

router = APIRouter(prefix="/api/v1/notifications", tags=["Notifications"])


@router.get("", response_model=FeedResponse)
async def list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    type: NotificationType | None = Query(None),  # noqa: A002
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> FeedResponse:
    """The user's notification feed (paginated, newest first)."""
    items, total = await get_feed(db, user.id, page, per_page, type)
    unread = await get_unread_count(db, user.id)
    return FeedResponse(
        notifications=[
            FeedItemResponse(
                id=n.id,
                title=n.title,
                message=n.message,
                type=n.type,
                priority=n.priority,
                link=n.link,
                icon=n.icon,
                sent_at=n.sent_at,
                read=read_at is not None,
                read_at=read_at,
            )
            for n, read_at in items
        ],
        total=total,
        unread_count=unread,
        page=page,
        per_page=per_page,
    )


@router.get("/unread-count", response_model=UnreadCountResponse)
async def unread_count(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> UnreadCountResponse:
    """Number of unread notifications."""
    return UnreadCountResponse(unread_count=await get_unread_count(db, user.id))


@router.get("/category-counts", response_model=list[CategoryCount])
async def category_counts(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> list[CategoryCount]:
    """Totals and unread counts per notification type."""
    return [CategoryCount(**c) for c in await get_category_counts(db, user.id)]


@router.post("/read-all")
async def mark_all_read(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, object]:
    """Mark all notifications as read."""
    count = await mark_all_as_read(db, user.id)
    await db.commit()
    return {"detail": f"Marked {count} notifications as read", "count": count}


@router.post("/{notification_id}/read")
async def mark_notification_read(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Mark a notification as read."""
    found = await mark_as_read(db, user.id, notification_id)
    if not found:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return {"detail": "Notification marked as read"}


@router.post("/{notification_id}/dismiss")
async def dismiss_notification(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Hide a notification from the feed."""
    found = await dismiss(db, user.id, notification_id)
    if not found:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return {"detail": "Notification dismissed"}


@router.delete("/{notification_id}")
async def delete_notification_for_me(
    notification_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Remove a notification from the feed. Other recipients are unaffected."""
    found = await dismiss(db, user.id, notification_id)
    if not found:
        raise HTTPException(status_code=404, detail="Notification not found")
    await db.commit()
    return {"detail": "Notification removed"}
