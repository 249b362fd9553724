"""Admin notification management: /api/v1/admin/notifications/*."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_admin
from learnhub.database import get_session
from learnhub.db.models import Notification, User
from learnhub.notifications.schemas import (
    NotificationCreateRequest,
    NotificationListResponse,
    NotificationResponse,
    NotificationStatus,
    NotificationType,
    NotificationUpdateRequest,
)
from learnhub.notifications.service import (
    create_notification,
    delete_notification,
    get_delivery_counts,
    get_notification,
    get_notification_stats,
    list_notifications,
    send_now,
    update_notification,
)

router = APIRouter(prefix="/api/v1/admin/notifications", tags=["Admin"])


async def _responses(db: AsyncSession, notifications: list[Notification]) -> list[NotificationResponse]:
    counts = await get_delivery_counts(db, [n.id for n in notifications])
    return [
        NotificationResponse.model_validate(n).model_copy(update=counts[n.id])
        for n in notifications
    ]


async def _get_or_404(db: AsyncSession, notification_id: int) -> Notification:
    notification = await get_notification(db, notification_id)
    if notification is None:
        raise HTTPException(status_code=404, detail="Notification not found")
    return notification


@router.get("", response_model=NotificationListResponse)
async def admin_list_notifications(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: NotificationStatus | None = Query(None),
    type: NotificationType | None = Query(None),  # noqa: A002
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> NotificationListResponse:
    """All notifications with delivery counts."""
    notifications, total = await list_notifications(db, page, per_page, status=status, type_=type)
    return NotificationListResponse(
        notifications=await _responses(db, notifications),
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("", response_model=NotificationResponse, status_code=201)
async def admin_create_notification(
    body: NotificationCreateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> NotificationResponse:
    """Compose a notification; it is sent now unless drafted or scheduled."""
    try:
        notification = await create_notification(
            db,
            title=body.title,
            message=body.message,
            type_=body.type,
            target_audience=body.target_audience,
            target_user_ids=body.target_user_ids,
            priority=body.priority,
            sent_by=admin.id,
            scheduled_for=body.scheduled_for,
            link=body.link,
            icon=body.icon,
            draft=body.draft,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return (await _responses(db, [notification]))[0]


@router.get("/stats")
async def admin_notification_stats(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Totals per status and type with the average read rate."""
    return await get_notification_stats(db)


@router.get("/{notification_id}", response_model=NotificationResponse)
async def admin_get_notification(
    notification_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> NotificationResponse:
    """A notification with delivery counts."""
    notification = await _get_or_404(db, notification_id)
    return (await _responses(db, [notification]))[0]


@router.put("/{notification_id}", response_model=NotificationResponse)
async def admin_update_notification(
    notification_id: int,
    body: NotificationUpdateRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> NotificationResponse:
    """Edit a notification that has not been sent yet."""
    notification = await _get_or_404(db, notification_id)
    try:
        notification = await update_notification(db, notification, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return (await _responses(db, [notification]))[0]


@router.post("/{notification_id}/send", response_model=NotificationResponse)
async def admin_send_notification(
    notification_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> NotificationResponse:
    """Deliver a draft or scheduled notification now."""
    notification = await _get_or_404(db, notification_id)
    try:
        notification = await send_now(db, notification)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return (await _responses(db, [notification]))[0]


@router.delete("/{notification_id}")
async def admin_delete_notification(
    notification_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Delete a notification for everyone."""
    notification = await _get_or_404(db, notification_id)
    await delete_notification(db, notification)
    await db.commit()
    return {"detail": "Notification deleted"}
