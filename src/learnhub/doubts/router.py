"""Learner doubt endpoints: /api/v1/doubts/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_user
from learnhub.coins.ledger import awarded_for_doubts
from learnhub.coins.router import leaderboard_response
from learnhub.coins.schemas import LeaderboardResponse
from learnhub.database import get_session
from learnhub.db.models import Doubt, User
from learnhub.doubts.schemas import (
    DoubtAnswer,
    DoubtCreateRequest,
    DoubtListResponse,
    DoubtResponse,
    DoubtStatus,
    MyDoubtStatsResponse,
)
from learnhub.doubts.service import (
    delete_doubt,
    get_doubt,
    get_user_doubt_stats,
    list_user_doubts,
    submit_doubt,
)

router = APIRouter(prefix="/api/v1/doubts", tags=["Doubts"])


def doubt_response(doubt: Doubt, coins_awarded: int = 0, asker: User | None = None) -> DoubtResponse:
    """Build a DoubtResponse, embedding the answer when there is one."""
    answer = None
    if doubt.response_title is not None:
        answer = DoubtAnswer(
            title=doubt.response_title,
            description=doubt.response_description or "",
            url=doubt.response_url,
        )
    return DoubtResponse(
        id=doubt.id,
        question=doubt.question,
        status=doubt.status,
        asked_by=doubt.asked_by,
        asker_name=asker.name if asker else None,
        asker_email=asker.email if asker else None,
        response=answer,
        answered_by=doubt.answered_by,
        answered_at=doubt.answered_at,
        closed_by=doubt.closed_by,
        closed_at=doubt.closed_at,
        coins_awarded=coins_awarded,
        created_at=doubt.created_at,
        updated_at=doubt.updated_at,
    )


@router.post("", response_model=DoubtResponse, status_code=201)
async def ask_doubt(
    body: DoubtCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DoubtResponse:
    """Submit a question for the admins."""
    doubt = await submit_doubt(db, user.id, body.question)
    await db.commit()
    return doubt_response(doubt)


@router.get("/my-doubts", response_model=DoubtListResponse)
async def my_doubts(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: DoubtStatus | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> DoubtListResponse:
    """Own doubts, newest first."""
    doubts, total = await list_user_doubts(db, user.id, page, per_page, status)
    awarded = await awarded_for_doubts(db, [d.id for d in doubts])
    return DoubtListResponse(
        doubts=[doubt_response(d, awarded.get(d.id, 0)) for d in doubts],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/my-stats", response_model=MyDoubtStatsResponse)
async def my_doubt_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MyDoubtStatsResponse:
    """Own doubt counts and coin totals."""
    return MyDoubtStatsResponse(**await get_user_doubt_stats(db, user.id))


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def doubt_leaderboard(
    page: int = Query(1, ge=1),
    per_page: int = Query(10, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """Learners ranked by coin balance."""
    return await leaderboard_response(db, page, per_page)


@router.delete("/{doubt_id}")
async def delete_my_doubt(
    doubt_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Withdraw a pending doubt."""
    doubt = await get_doubt(db, doubt_id)
    if doubt is None:
        raise HTTPException(status_code=404, detail="Doubt not found")
    try:
        await delete_doubt(db, doubt, user.id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"detail": "Doubt deleted successfully"}
