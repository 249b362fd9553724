"""Integration tests for the own-profile endpoints."""

import pytest
from httpx import AsyncClient

from learnhub.db.models import User
from tests.conftest import TEST_PASSWORD, auth_headers, create_user


@pytest.mark.asyncio
async def test_get_profile(user_client: AsyncClient, learner: User) -> None:
    response = await user_client.get("/api/v1/profile")
    assert response.status_code == 200
    data = response.json()
    assert data["id"] == learner.id
    assert data["stats"] == {"enrolled_courses": 0, "completed_courses": 0}


@pytest.mark.asyncio
async def test_update_profile(user_client: AsyncClient) -> None:
    response = await user_client.put(
        "/api/v1/profile",
        json={"name": "  Renamed  ", "email": "Renamed@Example.com", "avatar_url": "https://cdn.example.com/a.png"},
    )
    assert response.status_code == 200
    data = response.json()
    assert data["name"] == "Renamed"
    assert data["email"] == "renamed@example.com"
    assert data["avatar_url"] == "https://cdn.example.com/a.png"


@pytest.mark.asyncio
async def test_update_profile_email_taken(user_client: AsyncClient) -> None:
    await create_user(name="Taken", email="taken@example.com")
    response = await user_client.put("/api/v1/profile", json={"email": "taken@example.com"})
    assert response.status_code == 400
    assert response.json()["detail"] == "Email already in use"


@pytest.mark.asyncio
async def test_avatar_must_be_http_url(user_client: AsyncClient) -> None:
    response = await user_client.post("/api/v1/profile/avatar", json={"avatar_url": "file:///etc/passwd"})
    assert response.status_code == 422

    ok = await user_client.post("/api/v1/profile/avatar", json={"avatar_url": "http://img.example.com/me.jpg"})
    assert ok.status_code == 200
    assert ok.json()["avatar_url"] == "http://img.example.com/me.jpg"


@pytest.mark.asyncio
async def test_change_password(client: AsyncClient, learner: User) -> None:
    headers = auth_headers(learner)
    wrong = await client.put(
        "/api/v1/profile/change-password",
        json={"current_password": "NotMyPass1", "new_password": "BrandNew22"},
        headers=headers,
    )
    assert wrong.status_code == 401

    weak = await client.put(
        "/api/v1/profile/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "short"},
        headers=headers,
    )
    assert weak.status_code == 400

    ok = await client.put(
        "/api/v1/profile/change-password",
        json={"current_password": TEST_PASSWORD, "new_password": "BrandNew22"},
        headers=headers,
    )
    assert ok.status_code == 200

    login = await client.post("/api/v1/auth/login", json={"email": learner.email, "password": "BrandNew22"})
    assert login.status_code == 200


@pytest.mark.asyncio
async def test_delete_own_account(client: AsyncClient, learner: User) -> None:
    headers = auth_headers(learner)
    wrong = await client.request("DELETE", "/api/v1/profile", json={"password": "Nope12345"}, headers=headers)
    assert wrong.status_code == 401

    response = await client.request("DELETE", "/api/v1/profile", json={"password": TEST_PASSWORD}, headers=headers)
    assert response.status_code == 200
    assert response.json() == {"detail": "Account deleted"}

    me = await client.get("/api/v1/auth/me", headers=headers)
    assert me.status_code == 401
