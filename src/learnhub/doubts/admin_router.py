"""Admin doubt moderation: /api/v1/admin/doubts/*."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_admin
from learnhub.coins.ledger import awarded_for_doubts
from learnhub.coins.router import leaderboard_response
from learnhub.coins.schemas import LeaderboardResponse
from learnhub.config import get_settings
from learnhub.database import get_session
from learnhub.db.models import Doubt, User
from learnhub.doubts.router import doubt_response
from learnhub.doubts.schemas import DoubtAnswerRequest, DoubtListResponse, DoubtResponse, DoubtStatus
from learnhub.doubts.service import (
    admin_delete_doubt,
    answer_doubt,
    close_doubt,
    get_doubt,
    get_doubt_stats,
    list_doubts,
)

router = APIRouter(prefix="/api/v1/admin/doubts", tags=["Admin"])


async def _get_or_404(db: AsyncSession, doubt_id: int) -> Doubt:
    doubt = await get_doubt(db, doubt_id)
    if doubt is None:
        raise HTTPException(status_code=404, detail="Doubt not found")
    return doubt


async def _detail(db: AsyncSession, doubt: Doubt) -> DoubtResponse:
    asker = await db.get(User, doubt.asked_by)
    awarded = await awarded_for_doubts(db, [doubt.id])
    return doubt_response(doubt, awarded.get(doubt.id, 0), asker)


@router.get("", response_model=DoubtListResponse)
async def admin_list_doubts(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: DoubtStatus | None = Query(None),
    search: str | None = Query(None, max_length=200),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> DoubtListResponse:
    """All doubts with askers, newest first."""
    rows, total = await list_doubts(db, page, per_page, status=status, search=search)
    awarded = await awarded_for_doubts(db, [d.id for d, _ in rows])
    return DoubtListResponse(
        doubts=[doubt_response(d, awarded.get(d.id, 0), asker) for d, asker in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/stats")
async def admin_doubt_stats(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Counts by status, monthly submissions and top askers."""
    return await get_doubt_stats(db)


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def admin_doubt_leaderboard(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """Coin leaderboard with doubt and answered counts."""
    return await leaderboard_response(db, page, per_page, with_doubt_counts=True)


@router.get("/{doubt_id}", response_model=DoubtResponse)
async def admin_get_doubt(
    doubt_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> DoubtResponse:
    """A single doubt."""
    return await _detail(db, await _get_or_404(db, doubt_id))


@router.post("/{doubt_id}/answer", response_model=DoubtResponse)
async def admin_answer_doubt(
    doubt_id: int,
    body: DoubtAnswerRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> DoubtResponse:
    """Answer a pending doubt and reward the asker."""
    doubt = await _get_or_404(db, doubt_id)
    try:
        doubt = await answer_doubt(
            db,
            doubt,
            admin.id,
            title=body.title,
            description=body.description,
            url=body.url,
            reward=get_settings().doubt_reward_coins,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return await _detail(db, doubt)


@router.post("/{doubt_id}/close", response_model=DoubtResponse)
async def admin_close_doubt(
    doubt_id: int,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> DoubtResponse:
    """Close a doubt without reward."""
    doubt = await _get_or_404(db, doubt_id)
    try:
        doubt = await close_doubt(db, doubt, admin.id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return await _detail(db, doubt)


@router.delete("/{doubt_id}")
async def admin_remove_doubt(
    doubt_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Delete a doubt in any status."""
    doubt = await _get_or_404(db, doubt_id)
    await admin_delete_doubt(db, doubt)
    await db.commit()
    return {"detail": "Doubt deleted successfully"}
