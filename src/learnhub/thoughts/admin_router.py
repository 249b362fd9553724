"""Admin thought moderation: /api/v1/admin/thoughts/*."""

from __future__ import annotations

from typing import Any, Literal

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_admin
from learnhub.coins.ledger import awarded_for_thoughts
from learnhub.config import get_settings
from learnhub.database import get_session
from learnhub.db.models import Thought, User
from learnhub.thoughts.router import thought_response
from learnhub.thoughts.schemas import (
    ThoughtApproveRequest,
    ThoughtListResponse,
    ThoughtRejectRequest,
    ThoughtResponse,
    ThoughtStatus,
)
from learnhub.thoughts.service import (
    admin_delete_thought,
    approve_thought,
    get_thought,
    get_thought_stats,
    list_thoughts,
    reject_thought,
)

router = APIRouter(prefix="/api/v1/admin/thoughts", tags=["Admin"])


async def _get_or_404(db: AsyncSession, thought_id: int) -> Thought:
    thought = await get_thought(db, thought_id)
    if thought is None:
        raise HTTPException(status_code=404, detail="Thought not found")
    return thought


async def _detail(db: AsyncSession, thought: Thought) -> ThoughtResponse:
    submitter = await db.get(User, thought.submitted_by)
    awarded = await awarded_for_thoughts(db, [thought.id])
    return thought_response(thought, awarded.get(thought.id, 0), submitter)


@router.get("", response_model=ThoughtListResponse)
async def admin_list_thoughts(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: ThoughtStatus | None = Query(None),
    search: str | None = Query(None, max_length=200),
    sort: Literal["newest", "oldest"] = Query("newest"),
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> ThoughtListResponse:
    """All thoughts with submitters."""
    rows, total = await list_thoughts(db, page, per_page, status=status, search=search, sort=sort)
    awarded = await awarded_for_thoughts(db, [t.id for t, _ in rows])
    return ThoughtListResponse(
        thoughts=[thought_response(t, awarded.get(t.id, 0), u) for t, u in rows],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/stats")
async def admin_thought_stats(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, Any]:
    """Counts by status, monthly submissions and top contributors."""
    return await get_thought_stats(db)


@router.get("/{thought_id}", response_model=ThoughtResponse)
async def admin_get_thought(
    thought_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> ThoughtResponse:
    """A single thought."""
    return await _detail(db, await _get_or_404(db, thought_id))


@router.post("/{thought_id}/approve", response_model=ThoughtResponse)
async def admin_approve_thought(
    thought_id: int,
    body: ThoughtApproveRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> ThoughtResponse:
    """Publish a thought as a notification and reward its author."""
    thought = await _get_or_404(db, thought_id)
    try:
        thought = await approve_thought(
            db,
            thought,
            admin.id,
            target_audience=body.target_audience,
            target_user_ids=body.target_user_ids,
            priority=body.priority,
            review_notes=body.review_notes,
            reward=get_settings().thought_reward_coins,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return await _detail(db, thought)


@router.post("/{thought_id}/reject", response_model=ThoughtResponse)
async def admin_reject_thought(
    thought_id: int,
    body: ThoughtRejectRequest,
    admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> ThoughtResponse:
    """Reject a thought with review notes."""
    thought = await _get_or_404(db, thought_id)
    try:
        thought = await reject_thought(db, thought, admin.id, body.review_notes)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return await _detail(db, thought)


@router.delete("/{thought_id}")
async def admin_remove_thought(
    thought_id: int,
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Delete a thought in any status."""
    thought = await _get_or_404(db, thought_id)
    await admin_delete_thought(db, thought)
    await db.commit()
    return {"detail": "Thought deleted successfully"}
