"""Learner thought endpoints: /api/v1/thoughts/*."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_user
from learnhub.coins.ledger import awarded_for_thoughts
from learnhub.database import get_session
from learnhub.db.models import Thought, User
from learnhub.thoughts.schemas import (
    MyThoughtStatsResponse,
    ThoughtCreateRequest,
    ThoughtListResponse,
    ThoughtResponse,
    ThoughtStatus,
)
from learnhub.thoughts.service import (
    delete_user_thought,
    get_thought,
    get_user_thought_stats,
    list_thoughts,
    list_user_thoughts,
    submit_thought,
)

router = APIRouter(prefix="/api/v1/thoughts", tags=["Thoughts"])


def thought_response(thought: Thought, coins_awarded: int = 0, submitter: User | None = None) -> ThoughtResponse:
    """Build a ThoughtResponse with optional submitter details."""
    return ThoughtResponse(
        id=thought.id,
        title=thought.title,
        message=thought.message,
        status=thought.status,
        submitted_by=thought.submitted_by,
        submitter_name=submitter.name if submitter else None,
        submitter_email=submitter.email if submitter else None,
        reviewed_by=thought.reviewed_by,
        reviewed_at=thought.reviewed_at,
        review_notes=thought.review_notes,
        notification_id=thought.notification_id,
        coins_awarded=coins_awarded,
        created_at=thought.created_at,
        updated_at=thought.updated_at,
    )


@router.post("", response_model=ThoughtResponse, status_code=201)
async def share_thought(
    body: ThoughtCreateRequest,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ThoughtResponse:
    """Submit a thought for review."""
    thought = await submit_thought(db, user.id, body.title, body.message)
    await db.commit()
    return thought_response(thought)


@router.get("/approved", response_model=ThoughtListResponse)
async def approved_thoughts(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    search: str | None = Query(None, max_length=200),
    db: AsyncSession = Depends(get_session),
) -> ThoughtListResponse:
    """Published thoughts, newest first."""
    rows, total = await list_thoughts(db, page, per_page, status="approved", search=search)
    return ThoughtListResponse(
        thoughts=[
            thought_response(t).model_copy(update={"submitter_name": u.name}) for t, u in rows
        ],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/my-thoughts", response_model=ThoughtListResponse)
async def my_thoughts(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    status: ThoughtStatus | None = Query(None),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> ThoughtListResponse:
    """Own thoughts, newest first."""
    thoughts, total = await list_user_thoughts(db, user.id, page, per_page, status)
    awarded = await awarded_for_thoughts(db, [t.id for t in thoughts])
    return ThoughtListResponse(
        thoughts=[thought_response(t, awarded.get(t.id, 0)) for t in thoughts],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/my-stats", response_model=MyThoughtStatsResponse)
async def my_thought_stats(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> MyThoughtStatsResponse:
    """Own thought counts."""
    return MyThoughtStatsResponse(**await get_user_thought_stats(db, user.id))


@router.delete("/{thought_id}")
async def delete_my_thought(
    thought_id: int,
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> dict[str, str]:
    """Withdraw a pending thought."""
    thought = await get_thought(db, thought_id)
    if thought is None:
        raise HTTPException(status_code=404, detail="Thought not found")
    try:
        await delete_user_thought(db, thought, user.id)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e)) from e
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e)) from e
    await db.commit()
    return {"detail": "Thought deleted successfully"}
