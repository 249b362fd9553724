"""Integration tests for the admin dashboard and analytics."""

import json
from typing import Any
from unittest.mock import AsyncMock

import pytest
import redis.asyncio as aioredis
from httpx import AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession

from learnhub.dashboard.service import DASHBOARD_CACHE_KEY, get_dashboard_stats
from learnhub.db.models import User
from tests.conftest import auth_headers, create_user

COURSE = {
    "description": "A course",
    "instructor": "Grace Hopper",
    "duration": "4 weeks",
    "level": "beginner",
}


async def _course(client: AsyncClient, admin: User, title: str, price: float, category: str) -> dict[str, Any]:
    response = await client.post(
        "/api/v1/admin/courses",
        json={**COURSE, "title": title, "price": price, "category": category},
        headers=auth_headers(admin),
    )
    assert response.status_code == 201
    return response.json()


async def _enroll(client: AsyncClient, user: User, course: dict[str, Any]) -> dict[str, Any]:
    response = await client.post(f"/api/v1/courses/{course['id']}/enroll", headers=auth_headers(user))
    assert response.status_code == 201
    return response.json()


@pytest.mark.asyncio
async def test_dashboard_stats(client: AsyncClient, admin_user: User, learner: User) -> None:
    python = await _course(client, admin_user, "Python", 40, "Programming")
    art = await _course(client, admin_user, "Drawing", 10.5, "Art")
    await _enroll(client, learner, python)
    await _enroll(client, learner, art)

    response = await client.get("/api/v1/admin/dashboard/stats", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()
    assert data["total_users"] == 3
    assert data["total_courses"] == 2
    assert data["total_enrollments"] == 2
    assert data["total_revenue"] == 50.5
    assert data["revenue_this_month"] == 50.5
    assert data["users_this_month"] == 3
    assert data["pool_coin_balance"] == 10000
    assert data["growth_rates"] == {"users": 100.0, "enrollments": 100.0, "revenue": 100.0}


@pytest.mark.asyncio
async def test_dashboard_requires_admin(user_client: AsyncClient) -> None:
    response = await user_client.get("/api/v1/admin/dashboard/stats")
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_recent_activity(client: AsyncClient, admin_user: User, learner: User) -> None:
    course = await _course(client, admin_user, "Python", 40, "Programming")
    await _enroll(client, learner, course)

    response = await client.get("/api/v1/admin/dashboard/activity", params={"limit": 20}, headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()
    assert data["count"] == len(data["activity"])
    messages = [a["message"] for a in data["activity"]]
    assert f"{learner.name} enrolled in Python" in messages
    assert 'New course "Python" published by Staff Admin' in messages
    assert f"{learner.name} joined the platform" in messages
    timestamps = [a["timestamp"] for a in data["activity"]]
    assert timestamps == sorted(timestamps, reverse=True)

    limited = await client.get("/api/v1/admin/dashboard/activity", params={"limit": 2}, headers=auth_headers(admin_user))
    assert limited.json()["count"] == 2


@pytest.mark.asyncio
async def test_performance_metrics(client: AsyncClient, admin_user: User, learner: User) -> None:
    first = await _course(client, admin_user, "First", 0, "General")
    second = await _course(client, admin_user, "Second", 0, "General")
    enrollment = await _enroll(client, learner, first)
    await _enroll(client, learner, second)
    await client.patch(
        f"/api/v1/profile/enrollments/{enrollment['id']}",
        json={"progress": 100, "rating": 5},
        headers=auth_headers(learner),
    )

    response = await client.get("/api/v1/admin/dashboard/metrics", headers=auth_headers(admin_user))
    data = response.json()
    assert data["completion_rate"] == 50.0
    assert data["average_rating"] == 5.0
    assert data["retention_rate"] == round(1 / 3 * 100, 2)
    assert data["popular_courses"][0]["id"] == first["id"]


@pytest.mark.asyncio
async def test_analytics_endpoints(client: AsyncClient, admin_user: User, learner: User) -> None:
    python = await _course(client, admin_user, "Python", 40, "Programming")
    sql = await _course(client, admin_user, "SQL", 20, "Programming")
    drawing = await _course(client, admin_user, "Drawing", 10, "Art")
    other = await create_user(name="Other", email="other@example.com")
    await _enroll(client, learner, python)
    await _enroll(client, other, python)
    await _enroll(client, learner, sql)
    await _enroll(client, learner, drawing)
    headers = auth_headers(admin_user)

    overview = (await client.get("/api/v1/admin/analytics/overview", params={"period": 7}, headers=headers)).json()
    assert overview["period"] == "7 days"
    assert overview["revenue"] == 110.0
    assert overview["new_enrollments"] == 4
    assert overview["new_users"] == 4
    assert overview["active_courses"] == 3

    revenue = (await client.get("/api/v1/admin/analytics/revenue", headers=headers)).json()
    assert revenue["total"] == 110.0
    assert revenue["transactions"] == 4
    assert revenue["average"] == 27.5
    assert revenue["by_category"] == {"Programming": 100.0, "Art": 10.0}
    assert sum(day["revenue"] for day in revenue["by_date"]) == 110.0

    users = (await client.get("/api/v1/admin/analytics/users", headers=headers)).json()
    assert users["new_users"] == 4
    assert users["active_users"] == 2

    courses = (await client.get("/api/v1/admin/analytics/courses", headers=headers)).json()
    assert courses["top_by_enrollment"][0]["title"] == "Python"
    assert courses["top_by_revenue"][0] == {"id": python["id"], "title": "Python", "enrollments": 2, "revenue": 80.0}
    assert courses["completion_stats"] == {"active": 4}

    enrollments = (await client.get("/api/v1/admin/analytics/enrollments", headers=headers)).json()
    assert enrollments["total"] == 4
    assert enrollments["by_status"] == {"active": 4}
    assert enrollments["average_progress"] == 0.0


@pytest.mark.asyncio
async def test_analytics_period_validation(admin_client: AsyncClient) -> None:
    response = await admin_client.get("/api/v1/admin/analytics/overview", params={"period": 0})
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_stats_served_from_cache(db_session: AsyncSession) -> None:
    cached = {"total_users": 42}
    redis = AsyncMock()
    redis.get.return_value = json.dumps(cached)

    assert await get_dashboard_stats(db_session, redis, 10) == cached
    redis.setex.assert_not_called()


@pytest.mark.asyncio
async def test_stats_cached_on_miss(db_session: AsyncSession) -> None:
    redis = AsyncMock()
    redis.get.return_value = None

    stats = await get_dashboard_stats(db_session, redis, 10)
    assert stats["total_users"] == 1
    redis.setex.assert_awaited_once()
    key, ttl, payload = redis.setex.await_args.args
    assert key == DASHBOARD_CACHE_KEY
    assert ttl == 10
    assert json.loads(payload) == stats


@pytest.mark.asyncio
async def test_stats_survive_redis_errors(db_session: AsyncSession) -> None:
    redis = AsyncMock()
    redis.get.side_effect = aioredis.RedisError("down")
    redis.setex.side_effect = aioredis.RedisError("down")

    stats = await get_dashboard_stats(db_session, redis, 10)
    assert stats["pool_coin_balance"] == 10000
