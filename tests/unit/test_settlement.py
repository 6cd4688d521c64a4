"""Settlement job tests: contest payouts/cancellations and monthly prizes."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from rocket.competition.contest_engine import Contest, ContestRegistration, ContestStatus
from rocket.competition.contest_prizes import LEGEND_POOL_SHARE
from rocket.competition.leaderboard import LeaderboardStatus
from rocket.competition.leaderboard_service import get_leaderboard
from rocket.competition.settlement_worker import (
    settle_contests,
    settle_finished_contests,
    settle_month,
    settle_monthly_leaderboards,
)
from rocket.day_utils import utcnow
from rocket.events.dispatcher import EventDispatcher, EventType
from rocket.store.interfaces import LeaderboardScope
from tests.fakes import FakeStore, RecordingRedis

pytestmark = pytest.mark.asyncio

START = datetime(2026, 10, 1, 13, 0, tzinfo=timezone.utc)


def _registration(contest_id: str, user_id: str, completed: bool = False) -> ContestRegistration:
    return ContestRegistration(
        contest_id=contest_id,
        user_id=user_id,
        status=ContestStatus.COMPLETED if completed else ContestStatus.ACTIVE,
        verification_count=8 if completed else 3,
        registered_at=START - timedelta(days=2),
        completed_at=START + timedelta(days=4) if completed else None,
        credit_consumed=True,
    )


class TestSettleContests:
    @pytest.fixture
    def store(self) -> FakeStore:
        store = FakeStore()
        store.add_contest(Contest(
            id="cn_oura_sleep_week_score",
            start_date=START,
            registration_end_date=START - timedelta(days=1),
            duration_days=7,
        ))
        for user_id, completed in [("a", True), ("b", True), ("c", False), ("d", False)]:
            store.seed_registration(_registration("cn_oura_sleep_week_score", user_id, completed))

        store.add_contest(Contest(
            id="cn_hoka_running_strava",
            start_date=START,
            registration_end_date=START - timedelta(days=1),
            duration_days=7,
        ))
        for user_id in ("a", "e"):
            store.seed_registration(_registration("cn_hoka_running_strava", user_id))
        return store

    async def test_pays_completed_players(self, store):
        count, _ = await settle_finished_contests(store, START + timedelta(days=8))

        assert count == 2
        assert await store.get_total_fuel_points("b") == 150
        assert await store.get_total_fuel_points("c") == 0
        assert "cn_oura_sleep_week_score" in await store.list_completed_activity_ids("a")

    async def test_cancels_under_min_players_with_refund(self, store):
        _, events = await settle_finished_contests(store, START + timedelta(days=8))

        assert await store.get_credit_balance("e") == 1
        registration = await store.get_registration("cn_hoka_running_strava", "e")
        assert registration.status == ContestStatus.CANCELLED
        cancelled = [e for e in events if e.type == EventType.CONTEST_CANCELLED]
        assert {e.user_id for e in cancelled} == {"a", "e"}
        assert all(e.payload["contest_id"] == "cn_hoka_running_strava" for e in cancelled)

    async def test_running_contest_not_settled(self, store):
        count, _ = await settle_finished_contests(store, START + timedelta(days=3))
        assert count == 0
        assert store.state.settled == {}

    async def test_settles_once(self, store):
        await settle_finished_contests(store, START + timedelta(days=8))
        count, _ = await settle_finished_contests(store, START + timedelta(days=9))
        assert count == 0
        assert await store.get_total_fuel_points("a") == 150


class TestSettleMonth:
    """October 2026 settled on November 3rd."""

    NOW = datetime(2026, 11, 3, 12, 0, tzinfo=timezone.utc)
    OCTOBER = datetime(2026, 10, 15, 12, 0, tzinfo=timezone.utc)

    @pytest.fixture
    def store(self) -> FakeStore:
        store = FakeStore()
        for i in range(10):
            store.grant(f"u{i:02d}", 1000 - i * 10, self.OCTOBER)
        # Outside the month: ignored
        store.grant("u09", 5000, datetime(2026, 11, 2, 12, 0, tzinfo=timezone.utc))
        store.grant("u09", 5000, datetime(2026, 9, 30, 12, 0, tzinfo=timezone.utc))

        store.set_plan("u00", "pro")  # Legend
        store.set_plan("u01", "pro_annual")  # Hero
        store.set_plan("u02", "free")  # Hero, not eligible
        store.set_plan("u09", "pro")  # Commander
        store.add_member("club-1", "u05")
        store.add_member("club-1", "u08")
        return store

    async def test_snapshots_and_prizes(self, store):
        summary = await settle_month(store, self.NOW)

        assert summary == {
            "year": 2026,
            "month": 10,
            "ranked": 10,
            "communities": 1,
            "prizes_awarded": 2,
        }
        assert store.state.prizes == {
            ("u00", 2026, 10): ("Legend", 5),
            ("u01", 2026, 10): ("Hero", 2),
        }

        snap = store.state.snapshots[("global", 2026, 10, "u09")]
        assert snap.rank == 10
        assert snap.total_fp == 910
        assert snap.status == "Commander"

        club = store.state.snapshots[("community:club-1", 2026, 10, "u05")]
        assert club.rank == 1
        assert club.status == "Legend"

    async def test_prizes_are_idempotent(self, store):
        await settle_month(store, self.NOW)
        summary = await settle_month(store, self.NOW)
        assert summary["prizes_awarded"] == 0
        assert len(store.state.prizes) == 2

    async def test_empty_month(self):
        summary = await settle_month(FakeStore(), self.NOW)
        assert summary["ranked"] == 0
        assert summary["prizes_awarded"] == 0


class TestLeaderboardService:
    NOW = datetime(2026, 10, 20, 12, 0, tzinfo=timezone.utc)

    async def test_global_board(self):
        store = FakeStore()
        for i in range(20):
            store.grant(f"u{i:02d}", 500 - i, self.NOW - timedelta(days=1))
        store.grant("u19", 10_000, datetime(2026, 9, 20, tzinfo=timezone.utc))

        board = await get_leaderboard(store, LeaderboardScope.GLOBAL, user_id="u12", now=self.NOW, limit=5)

        assert board["total_players"] == 20
        assert board["legend_threshold"] == 2
        assert board["hero_threshold"] == 10
        assert len(board["entries"]) == 5
        assert board["entries"][0]["status"] == "Legend"
        assert board["entries"][2]["status"] == "Hero"
        assert board["me"]["rank"] == 13
        assert board["me"]["status"] == "Commander"
        assert board["me"]["next_tier_progress"] == pytest.approx(76.92)
        assert board["me"]["is_top_tier"] is False

    async def test_community_board(self):
        store = FakeStore()
        store.grant("a", 100, self.NOW)
        store.grant("b", 50, self.NOW)
        store.grant("outsider", 900, self.NOW)
        store.add_member("club-1", "a")
        store.add_member("club-1", "b")

        board = await get_leaderboard(
            store, LeaderboardScope.COMMUNITY, community_id="club-1", user_id="b", now=self.NOW
        )
        assert [e["user_id"] for e in board["entries"]] == ["a", "b"]
        assert board["me"]["status"] == "Commander"

    async def test_empty_board(self):
        board = await get_leaderboard(FakeStore(), LeaderboardScope.GLOBAL, now=self.NOW)
        assert board["total_players"] == 0
        assert board["entries"] == []
        assert board["me"] is None


class TestContestPrizeTiers:
    """Ten players, all finishers, ranked by fuel points earned during the contest."""

    CONTEST_ID = "cn_oura_sleep_week_score"
    SETTLED_AT = START + timedelta(days=8)

    @pytest.fixture
    def store(self) -> FakeStore:
        store = FakeStore()
        store.now = self.SETTLED_AT
        store.add_contest(Contest(
            id=self.CONTEST_ID,
            start_date=START,
            registration_end_date=START - timedelta(days=1),
            duration_days=7,
        ))
        for i in range(10):
            user_id = f"p{i}"
            store.seed_registration(_registration(self.CONTEST_ID, user_id, completed=True))
            store.set_credits(user_id, 0)
            store.grant(user_id, 100 - i * 10, START + timedelta(days=2))
        # Earned outside the contest window: not counted
        store.grant("p9", 10_000, START - timedelta(days=3))
        store.grant("p9", 10_000, START + timedelta(days=7, hours=1))
        return store

    async def test_finishers_get_tiers(self, store):
        await settle_finished_contests(store, self.SETTLED_AT)

        legend = await store.get_contest_result(self.CONTEST_ID, "p0")
        assert legend.rank == 1
        assert legend.status == LeaderboardStatus.LEGEND
        assert legend.multiplier == 5
        assert legend.pool_share == pytest.approx(LEGEND_POOL_SHARE * 10)

        hero = await store.get_contest_result(self.CONTEST_ID, "p4")
        assert hero.status == LeaderboardStatus.HERO
        assert hero.multiplier == 2
        assert hero.pool_share == 0.0

        commander = await store.get_contest_result(self.CONTEST_ID, "p9")
        assert commander.rank == 10
        assert commander.fuel_points == 10
        assert commander.status == LeaderboardStatus.COMMANDER
        assert commander.multiplier == 1

    async def test_hero_and_above_get_credit_back(self, store):
        await settle_finished_contests(store, self.SETTLED_AT)

        for i in range(5):
            assert await store.get_credit_balance(f"p{i}") == 1
        for i in range(5, 10):
            assert await store.get_credit_balance(f"p{i}") == 0

    async def test_base_reward_still_paid(self, store):
        await settle_finished_contests(store, self.SETTLED_AT)

        contest_rows = [e for e in store.ledger_for("p9") if e.source == "contest"]
        assert [e.amount for e in contest_rows] == [150]

    async def test_settled_events(self, store):
        _, events = await settle_finished_contests(store, self.SETTLED_AT)

        settled = {e.user_id: e.payload for e in events if e.type == EventType.CONTEST_SETTLED}
        assert len(settled) == 10
        assert settled["p0"]["status"] == "Legend"
        assert settled["p0"]["credit_refunded"] is True
        assert settled["p7"]["status"] == "Commander"
        assert settled["p7"]["credit_refunded"] is False

    async def test_non_finishers_are_not_ranked(self, store):
        store.seed_registration(_registration(self.CONTEST_ID, "quitter"))
        await settle_finished_contests(store, self.SETTLED_AT)

        assert await store.get_contest_result(self.CONTEST_ID, "quitter") is None
        # The quitter's credit still feeds the pool
        legend = await store.get_contest_result(self.CONTEST_ID, "p0")
        assert legend.pool_share == pytest.approx(LEGEND_POOL_SHARE * 11)


class _Session:
    async def __aenter__(self) -> _Session:
        return self

    async def __aexit__(self, *exc) -> bool:
        return False


class TestArqEntryPoints:
    async def test_settle_contests_job_dispatches_events(self):
        store = FakeStore()
        started = utcnow() - timedelta(days=10)
        store.add_contest(Contest(
            id="cn_hoka_running_strava",
            start_date=started,
            registration_end_date=started - timedelta(days=1),
            duration_days=7,
        ))
        store.seed_registration(_registration("cn_hoka_running_strava", "lonely"))

        redis = RecordingRedis()
        ctx = {
            "session_factory": _Session,
            "store_factory": lambda _session: store,
            "dispatcher": EventDispatcher(redis, "pubsub:progression"),
        }
        assert await settle_contests(ctx) == 1
        assert len(redis.published) == 1
        assert await store.get_credit_balance("lonely") == 1

    async def test_monthly_job(self):
        store = FakeStore()
        ctx = {"session_factory": _Session, "store_factory": lambda _session: store}
        summary = await settle_monthly_leaderboards(ctx)
        assert summary["ranked"] == 0
