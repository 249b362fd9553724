"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI
from sqlalchemy.exc import SQLAlchemyError

from learnhub.auth.router import admin_router as admin_auth_router
from learnhub.auth.router import router as auth_router
from learnhub.coins.pool import (
    PoolAccountNotConfiguredError,
    clear_pool_account,
    seed_pool_account,
    set_pool_account,
)
from learnhub.coins.router import admin_router as admin_coins_router
from learnhub.coins.router import router as coins_router
from learnhub.config import Settings, get_settings
from learnhub.content.router import router as admin_content_router
from learnhub.courses.admin_router import router as admin_courses_router
from learnhub.courses.router import router as courses_router
from learnhub.courses.seed import seed_sample_courses
from learnhub.dashboard.router import analytics_router
from learnhub.dashboard.router import router as dashboard_router
from learnhub.database import close_db, init_db, session_scope
from learnhub.doubts.admin_router import router as admin_doubts_router
from learnhub.doubts.router import router as doubts_router
from learnhub.health.router import router as health_router
from learnhub.middleware import setup_middleware
from learnhub.notifications.admin_router import router as admin_notifications_router
from learnhub.notifications.router import router as notifications_router
from learnhub.redis_client import close_redis, init_redis
from learnhub.thoughts.admin_router import router as admin_thoughts_router
from learnhub.thoughts.router import router as thoughts_router
from learnhub.users.admin_router import router as admin_users_router
from learnhub.users.admin_router import settings_router as admin_settings_router
from learnhub.users.router import router as profile_router

logger = structlog.get_logger()


async def bootstrap_data(settings: Settings) -> None:
    """Seed the coin pool account (and optionally the sample catalog), then register the pool."""
    async with session_scope() as db:
        pool = await seed_pool_account(db, settings)
        if settings.seed_sample_data:
            await seed_sample_courses(db, pool.id)
        await db.commit()
    set_pool_account(pool.id)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    try:
        await bootstrap_data(settings)
    except (SQLAlchemyError, PoolAccountNotConfiguredError):
        logger.error("pool_account_seed_failed", exc_info=True)

    yield

    clear_pool_account()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="LearnHub API",
        description="Backend API for LearnHub, a learning platform with courses, Q&A and coin rewards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(courses_router)
    app.include_router(profile_router)
    app.include_router(coins_router)
    app.include_router(doubts_router)
    app.include_router(thoughts_router)
    app.include_router(notifications_router)

    app.include_router(admin_auth_router)
    app.include_router(admin_courses_router)
    app.include_router(admin_users_router)
    app.include_router(admin_settings_router)
    app.include_router(admin_coins_router)
    app.include_router(admin_doubts_router)
    app.include_router(admin_thoughts_router)
    app.include_router(admin_notifications_router)
    app.include_router(admin_content_router)
    app.include_router(dashboard_router)
    app.include_router(analytics_router)

    return app


app = create_app()
