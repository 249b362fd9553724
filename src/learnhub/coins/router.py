"""Coin routes: own balance and history, the public leaderboard, pool administration."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.auth.dependencies import get_current_admin, get_current_user
from learnhub.coins.leaderboard import get_leaderboard
from learnhub.coins.ledger import find_balance_mismatches, get_balance, get_earnings, get_transactions
from learnhub.coins.pool import get_pool_account_id
from learnhub.coins.schemas import (
    BalanceMismatch,
    BalanceResponse,
    CoinTransactionListResponse,
    CoinTransactionResponse,
    LeaderboardEntry,
    LeaderboardResponse,
    PoolBalanceResponse,
    ReconciliationResponse,
)
from learnhub.database import get_session
from learnhub.db.models import User

router = APIRouter(prefix="/api/v1", tags=["Coins"])
admin_router = APIRouter(prefix="/api/v1/admin/coins", tags=["Admin"])


async def leaderboard_response(
    db: AsyncSession,
    page: int,
    per_page: int,
    *,
    with_doubt_counts: bool = False,
) -> LeaderboardResponse:
    """Build a LeaderboardResponse page."""
    entries, total = await get_leaderboard(db, page, per_page, with_doubt_counts=with_doubt_counts)
    return LeaderboardResponse(
        leaderboard=[LeaderboardEntry(**e) for e in entries],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/coins", response_model=BalanceResponse)
async def my_balance(
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> BalanceResponse:
    """Own coin balance and where it came from."""
    earnings = await get_earnings(db, user.id)
    return BalanceResponse(
        coins=user.coins,
        total_earned=earnings["total"],
        from_doubts=earnings["from_doubts"],
        from_thoughts=earnings["from_thoughts"],
    )


@router.get("/coins/transactions", response_model=CoinTransactionListResponse)
async def my_transactions(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(get_current_user),
    db: AsyncSession = Depends(get_session),
) -> CoinTransactionListResponse:
    """Own ledger entries, newest first."""
    transactions, total = await get_transactions(db, user.id, page, per_page)
    return CoinTransactionListResponse(
        transactions=[CoinTransactionResponse.model_validate(t) for t in transactions],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/leaderboard", response_model=LeaderboardResponse)
async def leaderboard(
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_session),
) -> LeaderboardResponse:
    """Public ranking of learners by coins."""
    return await leaderboard_response(db, page, per_page)


@admin_router.get("/pool", response_model=PoolBalanceResponse)
async def pool_balance(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> PoolBalanceResponse:
    """Coins left in the reward pool."""
    pool_id = get_pool_account_id()
    coins = await get_balance(db, pool_id)
    if coins is None:
        raise HTTPException(status_code=503, detail="Coin pool account is missing")
    return PoolBalanceResponse(pool_account_id=pool_id, coins=coins)


@admin_router.get("/reconcile", response_model=ReconciliationResponse)
async def reconcile(
    _admin: User = Depends(get_current_admin),
    db: AsyncSession = Depends(get_session),
) -> ReconciliationResponse:
    """Compare every stored balance with its transaction log."""
    mismatches = await find_balance_mismatches(db)
    return ReconciliationResponse(
        consistent=not mismatches,
        mismatches=[BalanceMismatch(**m) for m in mismatches],
    )
