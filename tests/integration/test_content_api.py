"""Integration tests for the admin content library."""

from typing import Any

import pytest
from httpx import AsyncClient

from learnhub.db.models import User
from tests.conftest import auth_headers

VIDEO = {
    "title": "Lecture 1",
    "type": "video",
    "url": "https://cdn.example.com/lecture1.mp4",
    "size_bytes": 1000,
    "duration": "12:30",
    "description": "Variables and types",
    "tags": ["Python", " basics ", "python"],
}


async def _upload(client: AsyncClient, admin: User, **overrides: Any) -> dict[str, Any]:
    response = await client.post("/api/v1/admin/content", json={**VIDEO, **overrides}, headers=auth_headers(admin))
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_create_content(client: AsyncClient, admin_user: User) -> None:
    item = await _upload(client, admin_user)
    assert item["uploaded_by"] == admin_user.id
    assert item["status"] == "published"
    assert item["tags"] == ["python", "basics"]
    assert item["views"] == 0
    assert item["downloads"] == 0


@pytest.mark.asyncio
async def test_create_content_validation(client: AsyncClient, admin_user: User) -> None:
    headers = auth_headers(admin_user)
    bad_url = await client.post("/api/v1/admin/content", json={**VIDEO, "url": "lecture.mp4"}, headers=headers)
    assert bad_url.status_code == 422

    bad_type = await client.post("/api/v1/admin/content", json={**VIDEO, "type": "hologram"}, headers=headers)
    assert bad_type.status_code == 422

    missing_course = await client.post("/api/v1/admin/content", json={**VIDEO, "course_id": 9999}, headers=headers)
    assert missing_course.status_code == 400
    assert missing_course.json()["detail"] == "Course 9999 does not exist"


@pytest.mark.asyncio
async def test_list_filters(client: AsyncClient, admin_user: User) -> None:
    await _upload(client, admin_user)
    await _upload(client, admin_user, title="Slides", type="pdf", description="Lecture slides", status="draft")
    await _upload(client, admin_user, title="Cover", type="image", description=None)
    headers = auth_headers(admin_user)

    everything = await client.get("/api/v1/admin/content", headers=headers)
    assert everything.json()["total"] == 3
    assert [c["title"] for c in everything.json()["content"]] == ["Cover", "Slides", "Lecture 1"]

    pdfs = await client.get("/api/v1/admin/content", params={"type": "pdf"}, headers=headers)
    assert [c["title"] for c in pdfs.json()["content"]] == ["Slides"]

    drafts = await client.get("/api/v1/admin/content", params={"status": "draft"}, headers=headers)
    assert drafts.json()["total"] == 1

    search = await client.get("/api/v1/admin/content", params={"search": "lecture"}, headers=headers)
    assert {c["title"] for c in search.json()["content"]} == {"Lecture 1", "Slides"}


@pytest.mark.asyncio
async def test_attach_to_course(client: AsyncClient, admin_user: User) -> None:
    headers = auth_headers(admin_user)
    course = await client.post(
        "/api/v1/admin/courses",
        json={
            "title": "Python",
            "description": "d",
            "instructor": "i",
            "duration": "1 week",
            "category": "Programming",
        },
        headers=headers,
    )
    course_id = course.json()["id"]
    item = await _upload(client, admin_user, course_id=course_id)
    await _upload(client, admin_user, title="Unattached")

    listing = await client.get("/api/v1/admin/content", params={"course_id": course_id}, headers=headers)
    assert [c["id"] for c in listing.json()["content"]] == [item["id"]]

    await client.delete(f"/api/v1/admin/courses/{course_id}", headers=headers)
    detached = await client.get(f"/api/v1/admin/content/{item['id']}", headers=headers)
    assert detached.status_code == 200
    assert detached.json()["course_id"] is None


@pytest.mark.asyncio
async def test_update_content(client: AsyncClient, admin_user: User) -> None:
    item = await _upload(client, admin_user)
    headers = auth_headers(admin_user)

    response = await client.put(
        f"/api/v1/admin/content/{item['id']}",
        json={"title": "Lecture 1 (remastered)", "status": "archived", "url": None},
        headers=headers,
    )
    assert response.status_code == 200
    data = response.json()
    assert data["title"] == "Lecture 1 (remastered)"
    assert data["status"] == "archived"
    assert data["url"] == VIDEO["url"]

    missing = await client.put("/api/v1/admin/content/9999", json={"title": "x"}, headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_view_and_download_counters(client: AsyncClient, admin_user: User) -> None:
    item = await _upload(client, admin_user)
    headers = auth_headers(admin_user)

    for expected in (1, 2):
        view = await client.post(f"/api/v1/admin/content/{item['id']}/view", headers=headers)
        assert view.json() == {"views": expected}
    download = await client.post(f"/api/v1/admin/content/{item['id']}/download", headers=headers)
    assert download.json() == {"downloads": 1}

    missing = await client.post("/api/v1/admin/content/9999/view", headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_stats_and_delete(client: AsyncClient, admin_user: User) -> None:
    video = await _upload(client, admin_user)
    await _upload(client, admin_user, title="Slides", type="pdf", size_bytes=500)
    headers = auth_headers(admin_user)
    await client.post(f"/api/v1/admin/content/{video['id']}/view", headers=headers)

    stats = (await client.get("/api/v1/admin/content/stats", headers=headers)).json()
    assert stats["total"] == 2
    assert stats["total_size_bytes"] == 1500
    assert stats["total_views"] == 1
    assert stats["total_downloads"] == 0
    assert stats["by_type"] == {"video": 1, "pdf": 1}
    assert stats["by_status"] == {"published": 2}

    deleted = await client.delete(f"/api/v1/admin/content/{video['id']}", headers=headers)
    assert deleted.json() == {"detail": "Content deleted successfully"}
    assert (await client.get(f"/api/v1/admin/content/{video['id']}", headers=headers)).status_code == 404


@pytest.mark.asyncio
async def test_content_requires_admin(user_client: AsyncClient) -> None:
    response = await user_client.get("/api/v1/admin/content")
    assert response.status_code == 403
