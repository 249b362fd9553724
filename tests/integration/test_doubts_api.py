"""Integration tests for the doubt workflow and its coin reward."""

from typing import Any

import pytest
from httpx import AsyncClient
from sqlalchemy import func, select, update

from learnhub.coins.pool import get_pool_account_id
from learnhub.database import session_scope
from learnhub.db.models import CoinTransaction, Doubt, NotificationRecipient, User
from learnhub.doubts.service import delete_doubt
from tests.conftest import auth_headers, balance_of, create_user

ANSWER = {
    "title": "Use a generator",
    "description": "Yield items lazily instead of building a list.",
    "url": "https://docs.example.com/generators",
}


async def _ask(client: AsyncClient, user: User, question: str = "How do generators work?") -> dict[str, Any]:
    response = await client.post("/api/v1/doubts", json={"question": question}, headers=auth_headers(user))
    assert response.status_code == 201, response.text
    return response.json()


async def _set_pool_balance(coins: int) -> None:
    async with session_scope() as session:
        await session.execute(update(User).where(User.id == get_pool_account_id()).values(coins=coins))
        await session.commit()


async def _ledger_count() -> int:
    async with session_scope() as session:
        return await session.scalar(select(func.count(CoinTransaction.id))) or 0


@pytest.mark.asyncio
async def test_ask_doubt(client: AsyncClient, learner: User) -> None:
    doubt = await _ask(client, learner, "  Why is my loop slow?  ")
    assert doubt["question"] == "Why is my loop slow?"
    assert doubt["status"] == "pending"
    assert doubt["asked_by"] == learner.id
    assert doubt["coins_awarded"] == 0
    assert doubt["response"] is None


@pytest.mark.asyncio
async def test_blank_question_rejected(user_client: AsyncClient) -> None:
    response = await user_client.post("/api/v1/doubts", json={"question": "    "})
    assert response.status_code == 422

    too_long = await user_client.post("/api/v1/doubts", json={"question": "x" * 1001})
    assert too_long.status_code == 422


@pytest.mark.asyncio
async def test_answer_rewards_and_notifies(client: AsyncClient, learner: User, admin_user: User) -> None:
    doubt = await _ask(client, learner)
    pool_before = await balance_of(get_pool_account_id())

    response = await client.post(
        f"/api/v1/admin/doubts/{doubt['id']}/answer", json=ANSWER, headers=auth_headers(admin_user)
    )
    assert response.status_code == 200, response.text
    data = response.json()
    assert data["status"] == "answered"
    assert data["answered_by"] == admin_user.id
    assert data["answered_at"] is not None
    assert data["response"] == ANSWER
    assert data["coins_awarded"] == 10
    assert data["asker_email"] == learner.email

    assert await balance_of(learner.id) == 10
    assert await balance_of(get_pool_account_id()) == pool_before - 10

    feed = await client.get("/api/v1/notifications", headers=auth_headers(learner))
    items = feed.json()["notifications"]
    assert [n["title"] for n in items] == ["Doubt Answered"]
    assert items[0]["type"] == "doubt"
    assert items[0]["link"] == ANSWER["url"]
    assert items[0]["message"] == 'Your doubt "How do generators work?" has been answered!'

    transactions = await client.get("/api/v1/coins/transactions", headers=auth_headers(learner))
    entry = transactions.json()["transactions"][0]
    assert entry["amount"] == 10
    assert entry["kind"] == "earned"
    assert entry["related_doubt_id"] == doubt["id"]


@pytest.mark.asyncio
async def test_answer_twice_rewards_once(client: AsyncClient, learner: User, admin_user: User) -> None:
    doubt = await _ask(client, learner)
    url = f"/api/v1/admin/doubts/{doubt['id']}/answer"
    first = await client.post(url, json=ANSWER, headers=auth_headers(admin_user))
    assert first.status_code == 200

    second = await client.post(url, json=ANSWER, headers=auth_headers(admin_user))
    assert second.status_code == 400
    assert second.json()["detail"] == "Doubt is already answered"
    assert await balance_of(learner.id) == 10


@pytest.mark.asyncio
async def test_answer_without_url(client: AsyncClient, learner: User, admin_user: User) -> None:
    doubt = await _ask(client, learner)
    response = await client.post(
        f"/api/v1/admin/doubts/{doubt['id']}/answer",
        json={"title": "Short answer", "description": "See lesson 3", "url": ""},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 200
    assert response.json()["response"]["url"] is None


@pytest.mark.asyncio
async def test_answer_with_bad_url(client: AsyncClient, learner: User, admin_user: User) -> None:
    doubt = await _ask(client, learner)
    response = await client.post(
        f"/api/v1/admin/doubts/{doubt['id']}/answer",
        json={**ANSWER, "url": "not a url"},
        headers=auth_headers(admin_user),
    )
    assert response.status_code == 422


@pytest.mark.asyncio
async def test_drained_pool_leaves_doubt_pending(client: AsyncClient, learner: User, admin_user: User) -> None:
    doubt = await _ask(client, learner)
    await _set_pool_balance(5)
    ledger_before = await _ledger_count()

    response = await client.post(
        f"/api/v1/admin/doubts/{doubt['id']}/answer", json=ANSWER, headers=auth_headers(admin_user)
    )
    assert response.status_code == 409
    assert response.json()["detail"] == "Insufficient coins in the admin pool"

    detail = await client.get(f"/api/v1/admin/doubts/{doubt['id']}", headers=auth_headers(admin_user))
    assert detail.json()["status"] == "pending"
    assert detail.json()["response"] is None
    assert await balance_of(learner.id) == 0
    assert await balance_of(get_pool_account_id()) == 5
    assert await _ledger_count() == ledger_before

    feed = await client.get("/api/v1/notifications", headers=auth_headers(learner))
    assert feed.json()["total"] == 0


@pytest.mark.asyncio
async def test_close_pending_and_answered(client: AsyncClient, learner: User, admin_user: User) -> None:
    headers = auth_headers(admin_user)
    pending = await _ask(client, learner, "First question?")
    closed = await client.post(f"/api/v1/admin/doubts/{pending['id']}/close", headers=headers)
    assert closed.status_code == 200
    assert closed.json()["status"] == "closed"
    assert closed.json()["closed_by"] == admin_user.id
    assert closed.json()["coins_awarded"] == 0

    again = await client.post(f"/api/v1/admin/doubts/{pending['id']}/close", headers=headers)
    assert again.status_code == 400
    assert again.json()["detail"] == "Doubt is already closed"

    answer_closed = await client.post(f"/api/v1/admin/doubts/{pending['id']}/answer", json=ANSWER, headers=headers)
    assert answer_closed.status_code == 400

    answered = await _ask(client, learner, "Second question?")
    await client.post(f"/api/v1/admin/doubts/{answered['id']}/answer", json=ANSWER, headers=headers)
    closed_after_answer = await client.post(f"/api/v1/admin/doubts/{answered['id']}/close", headers=headers)
    assert closed_after_answer.status_code == 200
    assert closed_after_answer.json()["coins_awarded"] == 10
    assert await balance_of(learner.id) == 10


@pytest.mark.asyncio
async def test_owner_deletes_pending_doubt(client: AsyncClient, learner: User, admin_user: User) -> None:
    doubt = await _ask(client, learner)
    other = await create_user(name="Other", email="other@example.com")

    forbidden = await client.delete(f"/api/v1/doubts/{doubt['id']}", headers=auth_headers(other))
    assert forbidden.status_code == 403
    assert forbidden.json()["detail"] == "Not authorized to delete this doubt"

    response = await client.delete(f"/api/v1/doubts/{doubt['id']}", headers=auth_headers(learner))
    assert response.status_code == 200
    assert response.json() == {"detail": "Doubt deleted successfully"}

    missing = await client.delete(f"/api/v1/doubts/{doubt['id']}", headers=auth_headers(learner))
    assert missing.status_code == 404


@pytest.mark.asyncio
async def test_answered_doubt_cannot_be_withdrawn(client: AsyncClient, learner: User, admin_user: User) -> None:
    doubt = await _ask(client, learner)
    await client.post(f"/api/v1/admin/doubts/{doubt['id']}/answer", json=ANSWER, headers=auth_headers(admin_user))
    response = await client.delete(f"/api/v1/doubts/{doubt['id']}", headers=auth_headers(learner))
    assert response.status_code == 400
    assert response.json()["detail"] == "Only pending doubts can be deleted"


@pytest.mark.asyncio
async def test_admin_delete_keeps_ledger(client: AsyncClient, learner: User, admin_user: User) -> None:
    doubt = await _ask(client, learner)
    headers = auth_headers(admin_user)
    await client.post(f"/api/v1/admin/doubts/{doubt['id']}/answer", json=ANSWER, headers=headers)

    response = await client.delete(f"/api/v1/admin/doubts/{doubt['id']}", headers=headers)
    assert response.status_code == 200
    assert (await client.get(f"/api/v1/admin/doubts/{doubt['id']}", headers=headers)).status_code == 404

    coins = await client.get("/api/v1/coins", headers=auth_headers(learner))
    assert coins.json()["coins"] == 10
    assert coins.json()["total_earned"] == 10
    transactions = await client.get("/api/v1/coins/transactions", headers=auth_headers(learner))
    assert transactions.json()["transactions"][0]["related_doubt_id"] is None


@pytest.mark.asyncio
async def test_my_doubts_and_stats(client: AsyncClient, learner: User, admin_user: User) -> None:
    first = await _ask(client, learner, "One?")
    await _ask(client, learner, "Two?")
    await client.post(f"/api/v1/admin/doubts/{first['id']}/answer", json=ANSWER, headers=auth_headers(admin_user))
    headers = auth_headers(learner)

    mine = await client.get("/api/v1/doubts/my-doubts", headers=headers)
    assert mine.status_code == 200
    assert mine.json()["total"] == 2
    assert [d["question"] for d in mine.json()["doubts"]] == ["Two?", "One?"]
    assert mine.json()["doubts"][1]["coins_awarded"] == 10

    only_pending = await client.get("/api/v1/doubts/my-doubts", params={"status": "pending"}, headers=headers)
    assert only_pending.json()["total"] == 1

    stats = await client.get("/api/v1/doubts/my-stats", headers=headers)
    assert stats.json() == {
        "total": 2,
        "pending": 1,
        "answered": 1,
        "closed": 0,
        "total_coins": 10,
        "coins_from_doubts": 10,
    }


@pytest.mark.asyncio
async def test_admin_list_search_and_stats(client: AsyncClient, learner: User, admin_user: User) -> None:
    await _ask(client, learner, "What is a Decorator?")
    await _ask(client, learner, "How do I read files?")
    headers = auth_headers(admin_user)

    listing = await client.get("/api/v1/admin/doubts", params={"search": "decorator"}, headers=headers)
    assert listing.status_code == 200
    doubts = listing.json()["doubts"]
    assert len(doubts) == 1
    assert doubts[0]["asker_name"] == learner.name

    stats = await client.get("/api/v1/admin/doubts/stats", headers=headers)
    data = stats.json()
    assert data["total"] == 2
    assert data["by_status"] == {"pending": 2, "answered": 0, "closed": 0}
    assert data["top_askers"][0]["user_id"] == learner.id
    assert data["top_askers"][0]["doubt_count"] == 2
    assert data["monthly"][-1]["count"] == 2

    board = await client.get("/api/v1/admin/doubts/leaderboard", headers=headers)
    entry = board.json()["leaderboard"][0]
    assert entry["user_id"] == learner.id
    assert entry["doubt_count"] == 2
    assert entry["answered_doubts"] == 0


@pytest.mark.asyncio
async def test_missing_pool_returns_503(client: AsyncClient, learner: User, admin_user: User) -> None:
    from learnhub.coins.pool import clear_pool_account, set_pool_account

    doubt = await _ask(client, learner)
    pool_id = get_pool_account_id()
    clear_pool_account()
    try:
        response = await client.post(
            f"/api/v1/admin/doubts/{doubt['id']}/answer", json=ANSWER, headers=auth_headers(admin_user)
        )
    finally:
        set_pool_account(pool_id)
    assert response.status_code == 503
    assert response.json()["detail"] == "Coin pool account is not configured"


@pytest.mark.asyncio
async def test_suspended_asker_still_answered_and_closed(
    client: AsyncClient, learner: User, admin_user: User
) -> None:
    to_answer = await _ask(client, learner)
    to_close = await _ask(client, learner, "What is a coroutine?")
    admin = auth_headers(admin_user)
    suspended = await client.patch(f"/api/v1/admin/users/{learner.id}/suspend", headers=admin)
    assert suspended.status_code == 200, suspended.text

    answered = await client.post(f"/api/v1/admin/doubts/{to_answer['id']}/answer", json=ANSWER, headers=admin)
    assert answered.status_code == 200, answered.text
    assert answered.json()["status"] == "answered"
    assert await balance_of(learner.id) == 10

    closed = await client.post(f"/api/v1/admin/doubts/{to_close['id']}/close", headers=admin)
    assert closed.status_code == 200, closed.text
    assert closed.json()["status"] == "closed"

    async with session_scope() as session:
        delivered = await session.scalar(
            select(func.count()).select_from(NotificationRecipient).where(NotificationRecipient.user_id == learner.id)
        )
    assert delivered == 2


@pytest.mark.asyncio
async def test_delete_with_stale_pending_copy_is_rejected(
    client: AsyncClient, learner: User, admin_user: User
) -> None:
    doubt = await _ask(client, learner)
    async with session_scope() as session:
        stale = await session.get(Doubt, doubt["id"])
    assert stale is not None and stale.status == "pending"

    answered = await client.post(
        f"/api/v1/admin/doubts/{doubt['id']}/answer", json=ANSWER, headers=auth_headers(admin_user)
    )
    assert answered.status_code == 200

    async with session_scope() as session:
        with pytest.raises(ValueError, match="Only pending doubts can be deleted"):
            await delete_doubt(session, stale, learner.id)

    async with session_scope() as session:
        kept = await session.get(Doubt, doubt["id"])
    assert kept is not None
    assert kept.status == "answered"
