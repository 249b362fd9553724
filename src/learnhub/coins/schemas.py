"""Response schemas for balances, transaction history and the leaderboard."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel


class BalanceResponse(BaseModel):
    """A user's coin balance with earnings breakdown."""

    coins: int
    total_earned: int
    from_doubts: int
    from_thoughts: int


class CoinTransactionResponse(BaseModel):
    """One ledger entry."""

    model_config = {"from_attributes": True}

    id: int
    amount: int
    kind: str
    reason: str
    related_doubt_id: int | None = None
    related_thought_id: int | None = None
    created_at: datetime


class CoinTransactionListResponse(BaseModel):
    """Paginated ledger entries, newest first."""

    transactions: list[CoinTransactionResponse]
    total: int
    page: int
    per_page: int


class LeaderboardEntry(BaseModel):
    """A ranked learner."""

    rank: int
    user_id: int
    name: str
    avatar_url: str | None = None
    coins: int
    joined_at: datetime
    doubt_count: int | None = None
    answered_doubts: int | None = None


class LeaderboardResponse(BaseModel):
    """Paginated leaderboard."""

    leaderboard: list[LeaderboardEntry]
    total: int
    page: int
    per_page: int


class PoolBalanceResponse(BaseModel):
    """The reward pool's balance."""

    pool_account_id: int
    coins: int


class BalanceMismatch(BaseModel):
    """A user whose stored balance disagrees with their ledger."""

    user_id: int
    email: str
    balance: int
    ledger_sum: int
    difference: int


class ReconciliationResponse(BaseModel):
    """Result of a ledger consistency check."""

    consistent: bool
    mismatches: list[BalanceMismatch]
