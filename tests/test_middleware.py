"""Tests for middleware: request ID, rate limiting and error format."""

from unittest.mock import AsyncMock, MagicMock

import pytest
import redis.asyncio as aioredis
from httpx import AsyncClient


@pytest.mark.asyncio
async def test_request_id_generated(client: AsyncClient) -> None:
    response = await client.get("/health")
    assert "x-request-id" in response.headers
    assert len(response.headers["x-request-id"]) == 36


@pytest.mark.asyncio
async def test_request_id_propagated(client: AsyncClient) -> None:
    response = await client.get("/health", headers={"X-Request-Id": "custom-id-123"})
    assert response.headers["x-request-id"] == "custom-id-123"


@pytest.mark.asyncio
async def test_no_rate_limit_headers_without_redis(client: AsyncClient) -> None:
    response = await client.get("/api/v1/courses")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers


@pytest.mark.asyncio
async def test_not_found_is_json(client: AsyncClient) -> None:
    response = await client.get("/api/v1/nonexistent")
    assert response.status_code == 404
    assert response.json() == {"detail": "Not Found"}


@pytest.mark.asyncio
async def test_validation_error_format(client: AsyncClient) -> None:
    response = await client.post("/api/v1/auth/login", json={"email": "not-an-email"})
    assert response.status_code == 422
    data = response.json()
    assert data["detail"] == "Validation error"
    assert isinstance(data["errors"], list)
    assert {"loc", "msg", "type"} <= set(data["errors"][0])


def _fake_redis(count: int) -> MagicMock:
    pipe = MagicMock()
    pipe.execute = AsyncMock(return_value=[count, True])
    redis = MagicMock()
    redis.pipeline.return_value = pipe
    return redis


@pytest.mark.asyncio
async def test_rate_limit_headers(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    redis = _fake_redis(3)
    monkeypatch.setattr("learnhub.middleware.rate_limit.get_optional_redis", lambda: redis)
    response = await client.get("/api/v1/courses")
    assert response.status_code == 200
    assert response.headers["x-ratelimit-limit"] == "100"
    assert response.headers["x-ratelimit-remaining"] == "97"
    key = redis.pipeline.return_value.incr.call_args.args[0]
    assert key.startswith("learnhub:ratelimit:api:")


@pytest.mark.asyncio
async def test_login_has_its_own_budget(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr("learnhub.middleware.rate_limit.get_optional_redis", lambda: _fake_redis(11))
    response = await client.post("/api/v1/auth/login", json={"email": "a@example.com", "password": "x"})
    assert response.status_code == 429
    assert response.headers["retry-after"] == "60"
    assert response.headers["x-ratelimit-limit"] == "10"

    browsing = await client.get("/api/v1/courses")
    assert browsing.status_code == 200


@pytest.mark.asyncio
async def test_redis_errors_do_not_block_requests(client: AsyncClient, monkeypatch: pytest.MonkeyPatch) -> None:
    redis = _fake_redis(1)
    redis.pipeline.return_value.execute.side_effect = aioredis.RedisError("down")
    monkeypatch.setattr("learnhub.middleware.rate_limit.get_optional_redis", lambda: redis)
    response = await client.get("/api/v1/courses")
    assert response.status_code == 200
    assert "x-ratelimit-limit" not in response.headers
