"""Integration tests for the course catalog, admin course management and enrollment."""

from typing import Any

import pytest
from httpx import AsyncClient

from learnhub.db.models import User
from tests.conftest import auth_headers, create_user

COURSE = {
    "title": "Intro to Python",
    "description": "Learn the basics",
    "instructor": "Grace Hopper",
    "duration": "6 weeks",
    "price": 49.99,
    "category": "Programming",
    "level": "beginner",
}


async def _create_course(client: AsyncClient, admin: User, **overrides: Any) -> dict[str, Any]:
    response = await client.post(
        "/api/v1/admin/courses", json={**COURSE, **overrides}, headers=auth_headers(admin)
    )
    assert response.status_code == 201, response.text
    return response.json()


@pytest.mark.asyncio
async def test_public_catalog_only_lists_published(client: AsyncClient, admin_user: User) -> None:
    await _create_course(client, admin_user, title="Published")
    await _create_course(client, admin_user, title="Hidden", status="draft")

    response = await client.get("/api/v1/courses")
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 1
    assert [c["title"] for c in data["courses"]] == ["Published"]


@pytest.mark.asyncio
async def test_catalog_filters(client: AsyncClient, admin_user: User) -> None:
    await _create_course(client, admin_user, title="Python Basics", category="Programming")
    await _create_course(client, admin_user, title="Watercolour", category="Art", level="advanced")

    by_category = await client.get("/api/v1/courses", params={"category": "Art"})
    assert [c["title"] for c in by_category.json()["courses"]] == ["Watercolour"]

    by_level = await client.get("/api/v1/courses", params={"level": "advanced"})
    assert by_level.json()["total"] == 1

    by_search = await client.get("/api/v1/courses", params={"search": "python"})
    assert [c["title"] for c in by_search.json()["courses"]] == ["Python Basics"]


@pytest.mark.asyncio
async def test_draft_course_detail_is_hidden(client: AsyncClient, admin_user: User) -> None:
    course = await _create_course(client, admin_user, status="draft")
    response = await client.get(f"/api/v1/courses/{course['id']}")
    assert response.status_code == 404

    admin_view = await client.get(f"/api/v1/admin/courses/{course['id']}", headers=auth_headers(admin_user))
    assert admin_view.status_code == 200
    assert admin_view.json()["status"] == "draft"


@pytest.mark.asyncio
async def test_create_course_validation(client: AsyncClient, admin_user: User) -> None:
    response = await client.post(
        "/api/v1/admin/courses", json={**COURSE, "title": "   "}, headers=auth_headers(admin_user)
    )
    assert response.status_code == 422

    negative = await client.post(
        "/api/v1/admin/courses", json={**COURSE, "price": -1}, headers=auth_headers(admin_user)
    )
    assert negative.status_code == 422


@pytest.mark.asyncio
async def test_update_and_delete_course(client: AsyncClient, admin_user: User) -> None:
    course = await _create_course(client, admin_user)
    headers = auth_headers(admin_user)

    updated = await client.put(
        f"/api/v1/admin/courses/{course['id']}", json={"price": 10, "status": "archived"}, headers=headers
    )
    assert updated.status_code == 200
    assert updated.json()["price"] == 10
    assert updated.json()["status"] == "archived"
    assert updated.json()["title"] == COURSE["title"]

    deleted = await client.delete(f"/api/v1/admin/courses/{course['id']}", headers=headers)
    assert deleted.status_code == 200
    missing = await client.get(f"/api/v1/admin/courses/{course['id']}", headers=headers)
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_enroll_once(client: AsyncClient, admin_user: User, learner: User) -> None:
    course = await _create_course(client, admin_user)

    response = await client.post(f"/api/v1/courses/{course['id']}/enroll", headers=auth_headers(learner))
    assert response.status_code == 201
    enrollment = response.json()
    assert enrollment["status"] == "active"
    assert enrollment["progress"] == 0
    assert enrollment["course"]["title"] == COURSE["title"]

    again = await client.post(f"/api/v1/courses/{course['id']}/enroll", headers=auth_headers(learner))
    assert again.status_code == 400
    assert again.json()["detail"] == "Already enrolled in this course"

    detail = await client.get(f"/api/v1/courses/{course['id']}")
    assert detail.json()["enrolled_count"] == 1


@pytest.mark.asyncio
async def test_enroll_requires_auth(client: AsyncClient, admin_user: User) -> None:
    course = await _create_course(client, admin_user)
    response = await client.post(f"/api/v1/courses/{course['id']}/enroll")
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_enroll_in_draft_course(client: AsyncClient, admin_user: User, learner: User) -> None:
    course = await _create_course(client, admin_user, status="draft")
    response = await client.post(f"/api/v1/courses/{course['id']}/enroll", headers=auth_headers(learner))
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_progress_completion_and_rating(client: AsyncClient, admin_user: User, learner: User) -> None:
    course = await _create_course(client, admin_user)
    headers = auth_headers(learner)
    enrollment = (await client.post(f"/api/v1/courses/{course['id']}/enroll", headers=headers)).json()
    url = f"/api/v1/profile/enrollments/{enrollment['id']}"

    partial = await client.patch(url, json={"progress": 40, "completed_lesson": "lesson-1"}, headers=headers)
    assert partial.status_code == 200
    assert partial.json()["progress"] == 40
    assert partial.json()["completed_lessons"] == ["lesson-1"]
    assert partial.json()["certificate_issued"] is False

    done = await client.patch(url, json={"progress": 100, "rating": 4}, headers=headers)
    assert done.status_code == 200
    data = done.json()
    assert data["status"] == "completed"
    assert data["certificate_issued"] is True
    assert data["completed_at"] is not None

    detail = await client.get(f"/api/v1/courses/{course['id']}")
    assert detail.json()["rating"] == 4.0

    profile = await client.get("/api/v1/profile", headers=headers)
    assert profile.json()["stats"] == {"enrolled_courses": 1, "completed_courses": 1}


@pytest.mark.asyncio
async def test_cannot_update_someone_elses_enrollment(
    client: AsyncClient, admin_user: User, learner: User
) -> None:
    course = await _create_course(client, admin_user)
    enrollment = (
        await client.post(f"/api/v1/courses/{course['id']}/enroll", headers=auth_headers(learner))
    ).json()
    other = await create_user(name="Other", email="other@example.com")

    response = await client.patch(
        f"/api/v1/profile/enrollments/{enrollment['id']}", json={"progress": 50}, headers=auth_headers(other)
    )
    assert response.status_code == 403

    missing = await client.patch(
        "/api/v1/profile/enrollments/9999", json={"progress": 50}, headers=auth_headers(other)
    )
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_my_enrollments_list(client: AsyncClient, admin_user: User, learner: User) -> None:
    first = await _create_course(client, admin_user, title="First")
    second = await _create_course(client, admin_user, title="Second")
    headers = auth_headers(learner)
    for course in (first, second):
        await client.post(f"/api/v1/courses/{course['id']}/enroll", headers=headers)

    response = await client.get("/api/v1/profile/enrollments", headers=headers)
    assert response.status_code == 200
    data = response.json()
    assert data["total"] == 2
    assert {e["course"]["title"] for e in data["enrollments"]} == {"First", "Second"}
