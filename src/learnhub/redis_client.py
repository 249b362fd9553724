"""Redis client shared by the rate limiter and the dashboard cache.

Every key the API writes lives under ``learnhub:`` so the arq queue can share
the same database.
"""

import redis.asyncio as redis

KEY_PREFIX = "learnhub"

_client: redis.Redis | None = None


def redis_key(*parts: object) -> str:
    """Namespaced key, e.g. ``redis_key("ratelimit", ip)`` -> ``learnhub:ratelimit:<ip>``."""
    return ":".join([KEY_PREFIX, *(str(p) for p in parts)])


async def init_redis(url: str) -> None:
    """Create the client. Connections are opened lazily on first use."""
    global _client  # noqa: PLW0603
    _client = redis.from_url(  # type: ignore[no-untyped-call]
        url,
        encoding="utf-8",
        decode_responses=True,
        max_connections=20,
        health_check_interval=30,
    )


async def close_redis() -> None:
    global _client  # noqa: PLW0603
    if _client is not None:
        await _client.aclose()
        _client = None


def get_redis() -> redis.Redis:
    """The shared client; raises RuntimeError before ``init_redis``."""
    if _client is None:
        msg = "Redis not initialized. Call init_redis() first."
        raise RuntimeError(msg)
    return _client


def get_optional_redis() -> redis.Redis | None:
    """The shared client, or None when this process runs without Redis (tests, CLI scripts)."""
    return _client
