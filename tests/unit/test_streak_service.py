"""Streak service tests: persistence, milestone payouts, no double pay."""

from datetime import date, datetime, timedelta, timezone

import pytest

from rocket.events.dispatcher import EventType
from rocket.gamification.streak_service import get_streak_summary, record_qualifying_action
from rocket.gamification.streaks import UserStreak
from tests.fakes import FakeStore

pytestmark = pytest.mark.asyncio

# Noon in New York
DAY1 = datetime(2026, 10, 16, 16, 0, tzinfo=timezone.utc)


async def test_first_action_starts_streak():
    store = FakeStore()
    update = await record_qualifying_action(store, "u1", DAY1)

    assert update.changed is True
    assert update.streak.current_length == 1
    assert update.reward is None
    assert [e.type for e in update.events] == [EventType.STREAK_ADVANCED]
    assert (await store.get_user_streak("u1")).last_qualifying_date == date(2026, 10, 16)
    assert store.commits == 1


async def test_three_days_pay_five():
    store = FakeStore()
    for i in range(3):
        update = await record_qualifying_action(store, "u1", DAY1 + timedelta(days=i))

    assert update.streak.current_length == 3
    assert update.reward == 5
    assert [e.type for e in update.events] == [EventType.STREAK_ADVANCED, EventType.STREAK_MILESTONE]
    assert await store.get_total_fuel_points("u1") == 5
    assert store.ledger_for("u1")[0].source == "streak_milestone"


async def test_repeat_action_same_day_does_not_pay_twice():
    store = FakeStore()
    await store.set_user_streak("u1", UserStreak("u1", 2, date(2026, 10, 15)))
    first = await record_qualifying_action(store, "u1", DAY1)
    second = await record_qualifying_action(store, "u1", DAY1 + timedelta(hours=3))

    assert first.reward == 5
    assert second.changed is False
    assert second.reward is None
    assert second.events == []
    assert await store.get_total_fuel_points("u1") == 5


async def test_day_twenty_one_pays_hundred():
    store = FakeStore()
    await store.set_user_streak("u1", UserStreak("u1", 20, date(2026, 10, 15)))
    update = await record_qualifying_action(store, "u1", DAY1)

    assert update.streak.current_length == 21
    assert update.reward == 100
    assert update.next_milestone.days_remaining == 21
    assert update.next_milestone.reward == 200


async def test_missed_day_resets():
    store = FakeStore()
    await store.set_user_streak("u1", UserStreak("u1", 9, date(2026, 10, 13)))
    update = await record_qualifying_action(store, "u1", DAY1)

    assert update.streak.current_length == 1
    assert update.events[0].payload == {"previous_length": 9, "current_length": 1}


async def test_summary():
    store = FakeStore()
    await store.set_user_streak("u1", UserStreak("u1", 5, date(2026, 10, 16)))
    summary = await get_streak_summary(store, "u1")

    assert summary["current_length"] == 5
    assert summary["next_milestone_days"] == 2
    assert summary["next_milestone_reward"] == 10
    assert summary["progress"] == 50.0


async def test_summary_for_new_user():
    summary = await get_streak_summary(FakeStore(), "nobody")
    assert summary["current_length"] == 0
    assert summary["last_qualifying_date"] is None
    assert summary["next_milestone_days"] == 3
