"""Contest and leaderboard API tests."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest
from httpx import AsyncClient

from rocket.competition.contest_engine import Contest, ContestRegistration, ContestStatus
from rocket.day_utils import utcnow
from tests.conftest import TEST_USER_ID, auth_headers
from tests.fakes import FakeStore, RecordingRedis

pytestmark = pytest.mark.asyncio

CONTEST_ID = "cn_oura_sleep_week_score"


def _upcoming() -> Contest:
    now = utcnow()
    return Contest(
        id=CONTEST_ID,
        name="Oura Sleep Week",
        start_date=now + timedelta(days=3),
        registration_end_date=now + timedelta(days=2),
        duration_days=7,
    )


def _running() -> Contest:
    now = utcnow()
    return Contest(
        id=CONTEST_ID,
        name="Oura Sleep Week",
        start_date=now - timedelta(days=1),
        registration_end_date=now - timedelta(days=2),
        duration_days=7,
    )


class TestRegistration:
    async def test_register_and_cancel(self, authed_client: AsyncClient, store: FakeStore):
        store.add_contest(_upcoming())
        store.set_credits(TEST_USER_ID, 1)

        response = await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/register")
        assert response.status_code == 201
        data = response.json()
        assert data["status"] == "pending"
        assert data["credits_remaining"] == 0
        assert data["verifications_required"] == 8

        response = await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/register")
        assert response.status_code == 403
        assert response.json()["detail"] == "Already registered for this contest"

        response = await authed_client.delete(f"/api/v1/contests/{CONTEST_ID}/registration")
        assert response.status_code == 200
        assert response.json() == {"contest_id": CONTEST_ID, "status": "cancelled", "refunded": True}
        assert await store.get_credit_balance(TEST_USER_ID) == 1

    async def test_registration_closed(self, authed_client: AsyncClient, store: FakeStore):
        store.add_contest(_running())
        store.set_credits(TEST_USER_ID, 1)

        response = await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/register")
        assert response.status_code == 403
        assert response.json()["detail"] == "Registration for this contest has closed"
        assert await store.get_credit_balance(TEST_USER_ID) == 1

    async def test_no_credits(self, authed_client: AsyncClient, store: FakeStore):
        store.add_contest(_upcoming())
        response = await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/register")
        assert response.status_code == 403
        assert response.json()["detail"] == "No entry credits available"

    async def test_unknown_contest(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/contests/nope/register")
        assert response.status_code == 404

    async def test_publishes_registration(
        self, authed_client: AsyncClient, store: FakeStore, redis_recorder: RecordingRedis
    ):
        store.add_contest(_upcoming())
        store.set_credits(TEST_USER_ID, 1)
        await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/register")

        message = json.loads(redis_recorder.published[0][1])
        assert message["event"] == "contest_registered"
        assert message["contest_id"] == CONTEST_ID


class TestVerifications:
    async def test_pending_contest_rejects_verification(self, authed_client: AsyncClient, store: FakeStore):
        store.add_contest(_upcoming())
        store.set_credits(TEST_USER_ID, 1)
        await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/register")

        response = await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/verifications")
        assert response.status_code == 409
        assert response.json()["detail"] == "This action is no longer available"

    async def test_eight_verifications_complete(self, authed_client: AsyncClient, store: FakeStore):
        store.add_contest(_running())
        store.seed_registration(ContestRegistration(
            contest_id=CONTEST_ID,
            user_id=TEST_USER_ID,
            status=ContestStatus.PENDING,
            registered_at=utcnow() - timedelta(days=3),
            credit_consumed=True,
        ))

        for expected in range(1, 8):
            response = await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/verifications")
            assert response.status_code == 200
            assert response.json()["status"] == "active"
            assert response.json()["verification_count"] == expected

        response = await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/verifications")
        data = response.json()
        assert data["status"] == "completed"
        assert data["completed"] is True
        assert data["completed_at"] is not None

        response = await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/verifications")
        assert response.status_code == 409
        registration = await store.get_registration(CONTEST_ID, TEST_USER_ID)
        assert registration.verification_count == 8

        response = await authed_client.get("/api/v1/contests/mine")
        contests = response.json()["contests"]
        assert len(contests) == 1
        assert contests[0]["status"] == "completed"
        assert contests[0]["days_until_start"] is None


class TestMyContests:
    async def test_pending_counters(self, authed_client: AsyncClient, store: FakeStore):
        store.add_contest(_upcoming())
        store.set_credits(TEST_USER_ID, 1)
        await authed_client.post(f"/api/v1/contests/{CONTEST_ID}/register")

        response = await authed_client.get("/api/v1/contests/mine")
        item = response.json()["contests"][0]
        assert item["status"] == "pending"
        assert item["days_until_start"] == 3
        assert item["days_remaining"] == 7

    async def test_empty(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/contests/mine")
        assert response.json() == {"contests": []}


class TestLeaderboardAPI:
    async def test_global(self, authed_client: AsyncClient, store: FakeStore):
        now = utcnow()
        store.grant(TEST_USER_ID, 300, now)
        store.grant("user-2", 200, now)
        store.grant("user-3", 100, now)

        response = await authed_client.get("/api/v1/leaderboard/global")
        assert response.status_code == 200
        data = response.json()
        assert data["total_players"] == 3
        assert [e["status"] for e in data["entries"]] == ["Legend", "Hero", "Commander"]
        assert [e["multiplier"] for e in data["entries"]] == [5, 2, 1]
        assert data["me"]["rank"] == 1
        assert data["me"]["is_top_tier"] is True

    async def test_limit_keeps_my_rank(self, client: AsyncClient, store: FakeStore):
        now = utcnow()
        for i in range(5):
            store.grant(f"user-{i}", 100 - i, now)

        response = await client.get(
            "/api/v1/leaderboard/global", params={"limit": 2}, headers=auth_headers("user-4")
        )
        data = response.json()
        assert len(data["entries"]) == 2
        assert data["me"]["rank"] == 5

    async def test_community_requires_id(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/leaderboard/community")
        assert response.status_code == 400

    async def test_community_requires_membership(self, authed_client: AsyncClient):
        response = await authed_client.get(
            "/api/v1/leaderboard/community", params={"community_id": "club-1"}
        )
        assert response.status_code == 403

    async def test_community_board(self, authed_client: AsyncClient, store: FakeStore):
        now = utcnow()
        store.add_member("club-1", TEST_USER_ID)
        store.add_member("club-1", "user-2")
        store.grant(TEST_USER_ID, 10, now)
        store.grant("user-2", 20, now)
        store.grant("user-9", 999, now)

        response = await authed_client.get(
            "/api/v1/leaderboard/community", params={"community_id": "club-1"}
        )
        data = response.json()
        assert data["community_id"] == "club-1"
        assert [e["user_id"] for e in data["entries"]] == ["user-2", TEST_USER_ID]

    async def test_unknown_scope(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/leaderboard/galaxy")
        assert response.status_code == 422

    async def test_empty_month(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/leaderboard/global")
        assert response.json()["entries"] == []
        assert response.json()["me"] is None
