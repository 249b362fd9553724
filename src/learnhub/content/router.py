"""Admin content library: /api/v1/admin/content/*."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_admin
from learnhub.content.schemas import (
    ContentCreateRequest,
    ContentListResponse,
    ContentResponse,
    ContentStatus,
    ContentType,
    ContentUpdateRequest,
)
from learnhub.content.service import (
    create_content,
    delete_content,
    get_content,
    get_content_stats,
    increment_counter,
    list_content,
    update_content,
)
from learnhub.database import get_session
from learnhub.db.models import ContentItem, User

router = APIRouter(prefix="/api/v1/admin/content", tags=["Admin"])


async def _get_or_404(db: AsyncSession, content_id: int) -> ContentItem:
    item = await get_content(db, content_id)
    if item is None:
        raise HTTPException(status_code=404, detail="Content not found")
    return item


@router.get("", response_model=ContentListResponse)
async def admin_list_content(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    type: ContentType | None = Query(None),  # noqa: A002
    status: ContentStatus | None = Query(None),
    course_id: int | None = Query(None),
    search: str | None = Query(None, max_length=200),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> ContentListResponse:
    """Filter the content library."""
    items, total = await list_content(
        db, page, per_page, type_=type, status=status, course_id=course_id, search=search
    )
    return ContentListResponse(
        content=[ContentResponse.model_validate(i) for i in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.post("", response_model=ContentResponse, status_code=201)
async def admin_create_content(
    body: ContentCreateRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> ContentResponse:
    """Add a content item."""
    try:
        item = await create_content(db, admin.id, body.model_dump())
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ContentResponse.model_validate(item)


@router.get("/stats")
async def admin_content_stats(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Library totals."""
    return await get_content_stats(db)


@router.get("/{content_id}", response_model=ContentResponse)
async def admin_get_content(
    content_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> ContentResponse:
    """A single content item."""
    return ContentResponse.model_validate(await _get_or_404(db, content_id))


@router.put("/{content_id}", response_model=ContentResponse)
async def admin_update_content(
    content_id: int,
    body: ContentUpdateRequest,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> ContentResponse:
    """Edit a content item."""
    item = await _get_or_404(db, content_id)
    try:
        item = await update_content(db, item, body.model_dump(exclude_unset=True))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return ContentResponse.model_validate(item)


@router.delete("/{content_id}")
async def admin_delete_content(
    content_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Remove a content item."""
    item = await _get_or_404(db, content_id)
    await delete_content(db, item)
    await db.commit()
    return {"detail": "Content deleted successfully"}


@router.post("/{content_id}/view")
async def record_view(
    content_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, int]:
    """Count a view."""
    views = await increment_counter(db, content_id, "views")
    if views is None:
        raise HTTPException(status_code=404, detail="Content not found")
    await db.commit()
    return {"views": views}


@router.post("/{content_id}/download")
async def record_download(
    content_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, int]:
    """Count a download."""
    downloads = await increment_counter(db, content_id, "downloads")
    if downloads is None:
        raise HTTPException(status_code=404, detail="Content not found")
    await db.commit()
    return {"downloads": downloads}
