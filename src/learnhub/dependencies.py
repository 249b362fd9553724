"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

import redis.asyncio as aioredis

from learnhub.redis_client import get_optional_redis


async def get_redis_dep() -> AsyncGenerator[aioredis.Redis | None, None]:
    """Yield the Redis client, or None when Redis is not initialized."""
    yield get_optional_redis()
