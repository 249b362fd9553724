"""Integration tests for user settings: defaults, deep merge and admin management."""

import pytest
from httpx import AsyncClient

from learnhub.db.models import User
from tests.conftest import auth_headers


@pytest.mark.asyncio
async def test_defaults_on_first_access(user_client: AsyncClient) -> None:
    response = await user_client.get("/api/v1/profile/settings")
    assert response.status_code == 200
    data = response.json()
    assert data["privacy"]["profileVisibility"] == "students"
    assert data["preferences"]["language"] == "en"
    assert data["security"]["sessionTimeout"] == 30
    assert data["notifications"]["sms"]["enabled"] is False


@pytest.mark.asyncio
async def test_deep_merge_update(user_client: AsyncClient) -> None:
    first = await user_client.put(
        "/api/v1/profile/settings",
        json={"notifications": {"email": {"marketing": True}}, "preferences": {"darkMode": True}},
    )
    assert first.status_code == 200

    second = await user_client.put("/api/v1/profile/settings", json={"preferences": {"language": "de"}})
    assert second.status_code == 200
    data = second.json()
    assert data["preferences"]["darkMode"] is True
    assert data["preferences"]["language"] == "de"
    assert data["notifications"]["email"]["marketing"] is True
    assert data["notifications"]["email"]["enabled"] is True

    reloaded = await user_client.get("/api/v1/profile/settings")
    assert reloaded.json()["preferences"] == data["preferences"]


@pytest.mark.asyncio
async def test_invalid_settings_rejected(user_client: AsyncClient) -> None:
    unknown = await user_client.put("/api/v1/profile/settings", json={"privacy": {"favouriteColour": "red"}})
    assert unknown.status_code == 400
    assert unknown.json()["detail"] == "Unknown setting: privacy.favouriteColour"

    timeout = await user_client.put("/api/v1/profile/settings", json={"security": {"sessionTimeout": 100000}})
    assert timeout.status_code == 400

    visibility = await user_client.put(
        "/api/v1/profile/settings", json={"privacy": {"profileVisibility": "everyone"}}
    )
    assert visibility.status_code == 400

    untouched = await user_client.get("/api/v1/profile/settings")
    assert untouched.json()["security"]["sessionTimeout"] == 30


@pytest.mark.asyncio
async def test_admin_manages_user_settings(client: AsyncClient, admin_user: User, learner: User) -> None:
    headers = auth_headers(admin_user)
    updated = await client.put(
        f"/api/v1/admin/settings/{learner.id}",
        json={"security": {"twoFactorEnabled": True}, "preferences": {"darkMode": True}},
        headers=headers,
    )
    assert updated.status_code == 200
    assert updated.json()["security"]["twoFactorEnabled"] is True

    stats = await client.get("/api/v1/admin/settings/stats", headers=headers)
    assert stats.status_code == 200
    assert stats.json()["two_factor_users"] == 1
    assert stats.json()["dark_mode_users"] == 1

    listing = await client.get("/api/v1/admin/settings", headers=headers)
    assert listing.json()["total"] == 1
    assert listing.json()["settings"][0]["user_id"] == learner.id

    reset = await client.post(f"/api/v1/admin/settings/{learner.id}/reset", headers=headers)
    assert reset.status_code == 200
    assert reset.json()["security"]["twoFactorEnabled"] is False

    missing = await client.get("/api/v1/admin/settings/9999", headers=headers)
    assert missing.status_code == 404
