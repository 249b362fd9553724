"""Coin ledger: balances, the append-only transaction log, and pool transfers.

A user's ``coins`` column is a denormalized total; the transaction log is the
source of truth and every balance change goes through this module together
with the matching log entries. Nothing here commits: the caller's unit of work
(e.g. answering a doubt) and the transfer succeed or roll back as one.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any

import structlog
from sqlalchemy import func, select, update

from learnhub.coins.pool import PoolAccountNotConfiguredError
from learnhub.db.models import CoinTransaction, User

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession
    from sqlalchemy.orm import InstrumentedAttribute

logger = structlog.get_logger()


class CoinLedgerError(Exception):
    """Base class for ledger failures that abort the surrounding action."""


class InsufficientCoinsError(CoinLedgerError):
    """The pool balance cannot cover the requested transfer."""


@dataclass(frozen=True)
class TransferResult:
    """Balances after a completed pool transfer."""

    amount: int
    pool_balance: int
    user_balance: int


async def transfer_from_pool(
    db: AsyncSession,
    pool_account_id: int,
    to_user_id: int,
    amount: int,
    reason: str,
    *,
    related_doubt_id: int | None = None,
    related_thought_id: int | None = None,
) -> TransferResult:
    """Move ``amount`` coins from the pool account to a user.

    The pool debit is a conditional UPDATE (``coins >= amount``), so concurrent
    rewards can never drive the pool negative.

    Raises:
        ValueError: amount is not positive or the target is the pool itself.
        LookupError: the target user does not exist.
        PoolAccountNotConfiguredError: the pool account row is missing.
        InsufficientCoinsError: the pool cannot cover the amount.
    """
    if amount <= 0:
        msg = "Transfer amount must be positive"
        raise ValueError(msg)
    if to_user_id == pool_account_id:
        msg = "Cannot transfer coins to the pool account"
        raise ValueError(msg)

    recipient = await db.get(User, to_user_id)
    if recipient is None:
        msg = f"User {to_user_id} not found"
        raise LookupError(msg)

    debit = await db.execute(
        update(User)
        .where(User.id == pool_account_id, User.coins >= amount)
        .values(coins=User.coins - amount)
        .execution_options(synchronize_session=False)
    )
    if debit.rowcount == 0:
        pool_exists = await db.scalar(select(User.id).where(User.id == pool_account_id))
        if pool_exists is None:
            msg = f"Coin pool account {pool_account_id} does not exist"
            raise PoolAccountNotConfiguredError(msg)
        msg = "Insufficient coins in the admin pool"
        raise InsufficientCoinsError(msg)

    await db.execute(
        update(User)
        .where(User.id == to_user_id)
        .values(coins=User.coins + amount)
        .execution_options(synchronize_session=False)
    )

    now = datetime.now(timezone.utc)
    db.add_all(
        [
            CoinTransaction(
                user_id=pool_account_id,
                amount=-amount,
                kind="spent",
                reason=f"Transferred to {recipient.name}: {reason}",
                related_doubt_id=related_doubt_id,
                related_thought_id=related_thought_id,
                created_at=now,
            ),
            CoinTransaction(
                user_id=to_user_id,
                amount=amount,
                kind="earned",
                reason=reason,
                related_doubt_id=related_doubt_id,
                related_thought_id=related_thought_id,
                created_at=now,
            ),
        ]
    )
    await db.flush()

    # Refresh any copies of both rows already loaded into this session
    refreshed = await db.execute(
        select(User)
        .where(User.id.in_([pool_account_id, to_user_id]))
        .execution_options(populate_existing=True)
    )
    balances = {u.id: u.coins for u in refreshed.scalars()}

    logger.info(
        "coins_transferred",
        from_user_id=pool_account_id,
        to_user_id=to_user_id,
        amount=amount,
        reason=reason,
        pool_balance=balances[pool_account_id],
    )
    return TransferResult(
        amount=amount,
        pool_balance=balances[pool_account_id],
        user_balance=balances[to_user_id],
    )


async def get_balance(db: AsyncSession, user_id: int) -> int | None:
    """Current balance, or None if the user does not exist."""
    return await db.scalar(select(User.coins).where(User.id == user_id))


async def get_transactions(
    db: AsyncSession,
    user_id: int,
    page: int = 1,
    per_page: int = 20,
) -> tuple[list[CoinTransaction], int]:
    """A user's transaction log, newest first."""
    total = await db.scalar(
        select(func.count()).select_from(CoinTransaction).where(CoinTransaction.user_id == user_id)
    )
    result = await db.execute(
        select(CoinTransaction)
        .where(CoinTransaction.user_id == user_id)
        .order_by(CoinTransaction.created_at.desc(), CoinTransaction.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    return list(result.scalars().all()), total or 0


async def get_earnings(db: AsyncSession, user_id: int) -> dict[str, int]:
    """Total earned coins, split by source."""
    result = await db.execute(
        select(
            func.coalesce(func.sum(CoinTransaction.amount), 0),
            func.coalesce(
                func.sum(CoinTransaction.amount).filter(CoinTransaction.related_doubt_id.is_not(None)), 0
            ),
            func.coalesce(
                func.sum(CoinTransaction.amount).filter(CoinTransaction.related_thought_id.is_not(None)), 0
            ),
        ).where(CoinTransaction.user_id == user_id, CoinTransaction.amount > 0)
    )
    total, from_doubts, from_thoughts = result.one()
    return {"total": int(total), "from_doubts": int(from_doubts), "from_thoughts": int(from_thoughts)}


async def _awarded_totals(
    db: AsyncSession,
    column: InstrumentedAttribute[Any],
    entity_ids: list[int],
) -> dict[int, int]:
    if not entity_ids:
        return {}
    result = await db.execute(
        select(column, func.sum(CoinTransaction.amount))
        .where(column.in_(entity_ids), CoinTransaction.amount > 0)
        .group_by(column)
    )
    return {row[0]: int(row[1]) for row in result}


async def awarded_for_doubts(db: AsyncSession, doubt_ids: list[int]) -> dict[int, int]:
    """Coins credited to askers per doubt, derived from the ledger."""
    return await _awarded_totals(db, CoinTransaction.related_doubt_id, doubt_ids)


async def awarded_for_thoughts(db: AsyncSession, thought_ids: list[int]) -> dict[int, int]:
    """Coins credited to submitters per thought, derived from the ledger."""
    return await _awarded_totals(db, CoinTransaction.related_thought_id, thought_ids)


async def find_balance_mismatches(db: AsyncSession) -> list[dict[str, Any]]:
    """Users whose stored balance differs from the sum of their transaction log."""
    ledger_sum = func.coalesce(func.sum(CoinTransaction.amount), 0)
    result = await db.execute(
        select(User.id, User.email, User.coins, ledger_sum.label("ledger_sum"))
        .outerjoin(CoinTransaction, CoinTransaction.user_id == User.id)
        .group_by(User.id, User.email, User.coins)
        .having(User.coins != ledger_sum)
        .order_by(User.id)
    )
    return [
        {
            "user_id": row.id,
            "email": row.email,
            "balance": row.coins,
            "ledger_sum": int(row.ledger_sum),
            "difference": row.coins - int(row.ledger_sum),
        }
        for row in result
    ]
