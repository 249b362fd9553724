"""arq worker for periodic maintenance jobs.

Promotes scheduled notifications once they are due and checks the coin
ledger against stored balances.

Usage: arq learnhub.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from learnhub.coins.ledger import find_balance_mismatches
from learnhub.config import get_settings
from learnhub.database import close_db, init_db, session_scope
from learnhub.notifications.service import promote_due_notifications

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Open the database engine for the worker process."""
    settings = get_settings()
    await init_db(settings.database_url)
    ctx["batch_size"] = settings.notification_dispatch_batch_size
    logger.info("Maintenance worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Dispose of the database engine."""
    await close_db()
    logger.info("Maintenance worker shut down")


async def dispatch_scheduled_notifications(ctx: dict) -> int:  # type: ignore[type-arg]
    """Deliver scheduled notifications that are due (every minute)."""
    batch_size = ctx.get("batch_size", 500)
    promoted = 0
    async with session_scope() as session:
        while True:
            count = await promote_due_notifications(session, limit=batch_size)
            await session.commit()
            promoted += count
            if count < batch_size:
                break
    if promoted:
        logger.info("Delivered %d scheduled notifications", promoted)
    return promoted


async def reconcile_coin_ledger(ctx: dict) -> int:  # type: ignore[type-arg]
    """Log accounts whose balance disagrees with their transaction log (hourly)."""
    async with session_scope() as session:
        mismatches = await find_balance_mismatches(session)
    for m in mismatches:
        logger.error(
            "Coin balance mismatch for user %s: balance=%s ledger=%s",
            m["user_id"],
            m["balance"],
            m["ledger_sum"],
        )
    return len(mismatches)


class WorkerSettings:
    """arq worker settings for the maintenance jobs."""

    functions = [dispatch_scheduled_notifications, reconcile_coin_ledger]
    cron_jobs = [
        cron(dispatch_scheduled_notifications, second={0}, run_at_startup=True),
        cron(reconcile_coin_ledger, minute={5}, second={0}),
    ]
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    on_startup = startup
    on_shutdown = shutdown
    max_jobs = 4
    job_timeout = 300
