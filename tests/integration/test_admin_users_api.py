"""Integration tests for admin user management."""

import pytest
from httpx import AsyncClient

from learnhub.coins.pool import get_pool_account_id
from learnhub.db.models import User
from tests.conftest import auth_headers, create_user


@pytest.mark.asyncio
async def test_list_and_filter_users(client: AsyncClient, admin_user: User, learner: User) -> None:
    await create_user(name="Suspended Sam", email="sam@example.com", is_active=False)
    headers = auth_headers(admin_user)

    everyone = await client.get("/api/v1/admin/users", headers=headers)
    assert everyone.status_code == 200
    # learner, suspended user, staff admin and the pool account
    assert everyone.json()["total"] == 4

    learners = await client.get("/api/v1/admin/users", params={"role": "user"}, headers=headers)
    assert learners.json()["total"] == 2

    suspended = await client.get("/api/v1/admin/users", params={"status": "suspended"}, headers=headers)
    assert [u["email"] for u in suspended.json()["users"]] == ["sam@example.com"]

    search = await client.get("/api/v1/admin/users", params={"search": "LEARNER@"}, headers=headers)
    assert [u["id"] for u in search.json()["users"]] == [learner.id]


@pytest.mark.asyncio
async def test_user_detail(client: AsyncClient, admin_user: User, learner: User) -> None:
    response = await client.get(f"/api/v1/admin/users/{learner.id}", headers=auth_headers(admin_user))
    assert response.status_code == 200
    assert response.json()["user"]["email"] == learner.email
    assert response.json()["enrollments"] == []

    missing = await client.get("/api/v1/admin/users/9999", headers=auth_headers(admin_user))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_update_user_role(client: AsyncClient, admin_user: User, learner: User) -> None:
    response = await client.put(
        f"/api/v1/admin/users/{learner.id}", json={"role": "admin"}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 200
    assert response.json()["role"] == "admin"


@pytest.mark.asyncio
async def test_admin_cannot_demote_self(client: AsyncClient, admin_user: User) -> None:
    response = await client.put(
        f"/api/v1/admin/users/{admin_user.id}", json={"role": "user"}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_suspension_blocks_access(client: AsyncClient, admin_user: User, learner: User) -> None:
    headers = auth_headers(admin_user)
    suspended = await client.patch(f"/api/v1/admin/users/{learner.id}/suspend", headers=headers)
    assert suspended.status_code == 200
    assert suspended.json()["is_active"] is False

    me = await client.get("/api/v1/auth/me", headers=auth_headers(learner))
    assert me.status_code == 401
    assert me.json()["detail"] == "User account is deactivated"

    restored = await client.patch(f"/api/v1/admin/users/{learner.id}/suspend", headers=headers)
    assert restored.json()["is_active"] is True

    self_suspend = await client.patch(f"/api/v1/admin/users/{admin_user.id}/suspend", headers=headers)
    assert self_suspend.status_code == 400


@pytest.mark.asyncio
async def test_delete_user(client: AsyncClient, admin_user: User, learner: User) -> None:
    headers = auth_headers(admin_user)
    response = await client.delete(f"/api/v1/admin/users/{learner.id}", headers=headers)
    assert response.status_code == 200
    gone = await client.get(f"/api/v1/admin/users/{learner.id}", headers=headers)
    assert gone.status_code == 404


@pytest.mark.asyncio
async def test_pool_account_cannot_be_deleted(client: AsyncClient, admin_user: User) -> None:
    response = await client.delete(f"/api/v1/admin/users/{get_pool_account_id()}", headers=auth_headers(admin_user))
    assert response.status_code == 400
    assert response.json()["detail"] == "The coin pool account cannot be deleted"


@pytest.mark.asyncio
async def test_user_stats(client: AsyncClient, admin_user: User, learner: User) -> None:
    response = await client.get("/api/v1/admin/users/stats", headers=auth_headers(admin_user))
    assert response.status_code == 200
    data = response.json()
    assert data["total_users"] == 3
    assert data["admin_users"] == 2
    assert data["regular_users"] == 1
    assert len(data["users_by_month"]) == 6


@pytest.mark.asyncio
async def test_pool_account_role_and_status_are_locked(client: AsyncClient, admin_user: User) -> None:
    headers = auth_headers(admin_user)
    pool_id = get_pool_account_id()

    demoted = await client.put(f"/api/v1/admin/users/{pool_id}", json={"role": "user"}, headers=headers)
    assert demoted.status_code == 400
    assert demoted.json()["detail"] == "The coin pool account must stay an active admin"

    deactivated = await client.put(f"/api/v1/admin/users/{pool_id}", json={"is_active": False}, headers=headers)
    assert deactivated.status_code == 400

    suspended = await client.patch(f"/api/v1/admin/users/{pool_id}/suspend", headers=headers)
    assert suspended.status_code == 400
    assert suspended.json()["detail"] == "The coin pool account cannot be suspended"

    pool = await client.get(f"/api/v1/admin/users/{pool_id}", headers=headers)
    assert pool.json()["user"]["role"] == "admin"
    assert pool.json()["user"]["is_active"] is True
    leaderboard = await client.get("/api/v1/leaderboard")
    assert pool_id not in [e["user_id"] for e in leaderboard.json()["leaderboard"]]
