"""Progression API tests: streak, boosts, tiers, activities, levels."""

from __future__ import annotations

import json
from datetime import timedelta

import pytest
from httpx import AsyncClient

from rocket.day_utils import utcnow
from rocket.gamification.activities import ActivityKind
from rocket.gamification.progression import ActivityProgress
from tests.conftest import TEST_USER_ID
from tests.fakes import FakeStore, RecordingRedis


def _progress(activity_id: str, kind: ActivityKind, count: int, required: int) -> ActivityProgress:
    return ActivityProgress(
        activity_id=activity_id,
        user_id=TEST_USER_ID,
        kind=kind,
        count_completed=count,
        count_required=required,
        started_at=utcnow() - timedelta(days=30),
    )


class TestStreakAPI:
    @pytest.mark.asyncio
    async def test_requires_auth(self, client: AsyncClient):
        response = await client.get("/api/v1/streak")
        assert response.status_code in (401, 403)

    @pytest.mark.asyncio
    async def test_invalid_token(self, client: AsyncClient):
        response = await client.get("/api/v1/streak", headers={"Authorization": "Bearer nope"})
        assert response.status_code == 401

    @pytest.mark.asyncio
    async def test_new_user_streak(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/streak")
        assert response.status_code == 200
        data = response.json()
        assert data["current_length"] == 0
        assert data["next_milestone_days"] == 3
        assert data["next_milestone_reward"] == 5


class TestBoostsAPI:
    @pytest.mark.asyncio
    async def test_catalog(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/boosts")
        assert response.status_code == 200
        data = response.json()
        assert len(data["boosts"]) == 45
        assert data["boosts_today"] == 0
        assert data["max_daily_boosts"] == 3
        assert 1 <= data["days_until_reset"] <= 7

        sunlight = next(b for b in data["boosts"] if b["id"] == "sleep-t1-1")
        assert sunlight["name"] == "Morning Sunlight"
        assert sunlight["unlocked"] is True
        wind_down = next(b for b in data["boosts"] if b["id"] == "sleep-t2-1")
        assert wind_down["unlocked"] is False

    @pytest.mark.asyncio
    async def test_boost_advances_streak_and_pays(
        self, authed_client: AsyncClient, store: FakeStore, redis_recorder: RecordingRedis
    ):
        first = await authed_client.post("/api/v1/boosts/sleep-t1-4/complete")
        assert first.status_code == 200
        assert first.json()["fp_earned"] == 4
        assert first.json()["boosts_today"] == 1
        assert first.json()["streak"]["current_length"] == 1
        assert first.json()["streak"]["changed"] is True

        second = await authed_client.post("/api/v1/boosts/mindset-t1-2/complete")
        assert second.json()["streak"]["changed"] is False
        assert second.json()["boosts_today"] == 2

        assert await store.get_total_fuel_points(TEST_USER_ID) == 6
        events = [json.loads(m)["event"] for _, m in redis_recorder.published]
        assert events == ["boost_completed", "streak_advanced", "boost_completed"]

    @pytest.mark.asyncio
    async def test_repeat_this_week_is_cooldown(self, authed_client: AsyncClient):
        await authed_client.post("/api/v1/boosts/sleep-t1-1/complete")
        response = await authed_client.post("/api/v1/boosts/sleep-t1-1/complete")

        assert response.status_code == 200
        assert response.json()["status"] == "cooldown"
        assert response.json()["activity_id"] == "sleep-t1-1"

    @pytest.mark.asyncio
    async def test_daily_limit(self, authed_client: AsyncClient, store: FakeStore):
        for boost_id in ("sleep-t1-1", "mindset-t1-1", "exercise-t1-1"):
            response = await authed_client.post(f"/api/v1/boosts/{boost_id}/complete")
            assert response.status_code == 200

        response = await authed_client.post("/api/v1/boosts/nutrition-t1-1/complete")
        assert response.status_code == 200
        assert response.json()["status"] == "already_completed_today"
        assert await store.get_total_fuel_points(TEST_USER_ID) == 3

    @pytest.mark.asyncio
    async def test_locked_tier_two(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/boosts/biohacking-t2-1/complete")
        assert response.status_code == 403
        assert "tier 2" in response.json()["detail"]

    @pytest.mark.asyncio
    async def test_unknown_boost(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/boosts/astrology-t1-1/complete")
        assert response.status_code == 404


class TestTiersAPI:
    @pytest.mark.asyncio
    async def test_tier_progression(self, authed_client: AsyncClient, store: FakeStore):
        response = await authed_client.get("/api/v1/tiers/Mindset")
        assert response.json() == {"category": "Mindset", "kind": "challenge", "tier_unlocked": 0}

        store.seed_completed(TEST_USER_ID, "mb0", "mc1", "mc2")
        response = await authed_client.get("/api/v1/tiers/Mindset")
        assert response.json()["tier_unlocked"] == 2

        response = await authed_client.get("/api/v1/tiers/Mindset", params={"kind": "quest"})
        assert response.json()["tier_unlocked"] == 1

    @pytest.mark.asyncio
    async def test_unknown_category(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/tiers/Astrology")
        assert response.status_code == 404


class TestActivitiesAPI:
    @pytest.mark.asyncio
    async def test_catalog_with_unlock_flags(self, authed_client: AsyncClient):
        response = await authed_client.get("/api/v1/activities", params={"kind": "challenge"})
        assert response.status_code == 200
        items = {a["id"]: a for a in response.json()["activities"]}
        assert items["mb0"]["unlocked"] is True
        assert items["mc1"]["unlocked"] is False
        assert all(a["kind"] == "challenge" for a in items.values())

    @pytest.mark.asyncio
    async def test_start_and_record(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/activities/mb0/start")
        assert response.status_code == 201
        assert response.json()["count_required"] == 21

        response = await authed_client.post("/api/v1/activities/mb0/complete")
        assert response.status_code == 200
        assert response.json()["status"] == "recorded"
        assert response.json()["progress"]["count_completed"] == 1

    @pytest.mark.asyncio
    async def test_second_completion_same_day(self, authed_client: AsyncClient, store: FakeStore):
        store.seed_progress(_progress("mb0", ActivityKind.CHALLENGE, 4, 21))
        await authed_client.post("/api/v1/activities/mb0/complete")

        response = await authed_client.post("/api/v1/activities/mb0/complete")
        assert response.status_code == 200
        assert response.json()["status"] == "already_completed_today"
        assert (await store.get_activity_progress(TEST_USER_ID, "mb0")).count_completed == 5

    @pytest.mark.asyncio
    async def test_locked_activity(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/activities/mc1/start")
        assert response.status_code == 403
        assert response.json()["detail"] == "Tier 1 Mindset challenges are locked"

    @pytest.mark.asyncio
    async def test_completion_pays_and_publishes(
        self, authed_client: AsyncClient, store: FakeStore, redis_recorder: RecordingRedis
    ):
        store.seed_progress(_progress("mb0", ActivityKind.CHALLENGE, 20, 21))
        response = await authed_client.post("/api/v1/activities/mb0/complete")

        data = response.json()
        assert data["status"] == "completed"
        assert data["fp_earned"] == 50
        assert data["progress"]["percent"] == 100.0
        assert data["progress"]["completed_at"] is not None

        message = json.loads(redis_recorder.published[0][1])
        assert message["event"] == "activity_completed"
        assert message["fuel_points"] == 50

        response = await authed_client.post("/api/v1/activities/mb0/complete")
        assert response.status_code == 409
        assert response.json()["detail"] == "This action is no longer available"

    @pytest.mark.asyncio
    async def test_weekly_cooldown(self, authed_client: AsyncClient, store: FakeStore):
        store.seed_progress(_progress("mq1", ActivityKind.QUEST, 2, 12))
        store.seed_completion(TEST_USER_ID, "mq1", utcnow() - timedelta(days=2))

        response = await authed_client.post("/api/v1/activities/mq1/complete")
        assert response.status_code == 200
        assert response.json()["status"] == "cooldown"
        assert response.json()["days_remaining"] == 5

        response = await authed_client.get("/api/v1/activities/mq1/window")
        assert response.json() == {"activity_id": "mq1", "days_until_next_window": 5, "is_open": False}

    @pytest.mark.asyncio
    async def test_cancel(self, authed_client: AsyncClient, store: FakeStore):
        await authed_client.post("/api/v1/activities/mb0/start")
        response = await authed_client.delete("/api/v1/activities/mb0")
        assert response.status_code == 204
        assert await store.get_activity_progress(TEST_USER_ID, "mb0") is None

        response = await authed_client.delete("/api/v1/activities/mb0")
        assert response.status_code == 404

    @pytest.mark.asyncio
    async def test_unknown_activity(self, authed_client: AsyncClient):
        response = await authed_client.post("/api/v1/activities/zzz/start")
        assert response.status_code == 404


class TestLevelsAPI:
    @pytest.mark.asyncio
    async def test_level_curve(self, client: AsyncClient):
        response = await client.get("/api/v1/levels/3")
        assert response.json() == {"level": 3, "next_level_points": 40}

    @pytest.mark.asyncio
    async def test_level_out_of_range(self, client: AsyncClient):
        response = await client.get("/api/v1/levels/0")
        assert response.status_code == 422

    @pytest.mark.asyncio
    async def test_my_level(self, authed_client: AsyncClient, store: FakeStore):
        store.grant(TEST_USER_ID, 50, utcnow())
        response = await authed_client.get("/api/v1/level")
        data = response.json()
        assert data["total_fp"] == 50
        assert data["level"] == 3
        assert data["fp_into_level"] == 2
