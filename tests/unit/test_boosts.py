"""Boost rules: catalog, weekly reset, tier 2 unlock, daily limit."""

from datetime import datetime, timedelta, timezone

import pytest

from rocket.errors import (
    AlreadyCompletedTodayError,
    CooldownActiveError,
    NotEligibleError,
    NotFoundError,
)
from rocket.gamification.boosts import (
    BOOSTS,
    CATEGORIES,
    BoostCompletion,
    boost_week_start,
    check_boost,
    days_until_reset,
    get_boost,
)

# Noon in New York on Sunday 2026-10-18
SUNDAY = datetime(2026, 10, 18, 16, 0, tzinfo=timezone.utc)
WEDNESDAY = SUNDAY + timedelta(days=3)


def _done(boost_id: str, at: datetime) -> BoostCompletion:
    return BoostCompletion(user_id="u1", boost_id=boost_id, completed_at=at)


class TestCatalog:
    def test_nine_boosts_per_category(self):
        assert len(BOOSTS) == 45
        for category in CATEGORIES:
            tiers = sorted(b.tier for b in BOOSTS.values() if b.category == category)
            assert tiers == [1] * 6 + [2] * 3

    def test_fuel_points_follow_position(self):
        assert get_boost("sleep-t1-1").name == "Morning Sunlight"
        assert get_boost("sleep-t1-1").fuel_points == 1
        assert get_boost("sleep-t1-6").fuel_points == 6
        assert get_boost("sleep-t2-1").fuel_points == 7
        assert get_boost("sleep-t2-3").name == "Progressive Relaxation"
        assert get_boost("sleep-t2-3").fuel_points == 9

    def test_unknown_boost(self):
        with pytest.raises(NotFoundError):
            get_boost("sleep-t3-1")


class TestWeeklyReset:
    def test_week_starts_sunday_midnight_new_york(self):
        # 00:00 EDT is 04:00 UTC
        expected = datetime(2026, 10, 18, 4, 0, tzinfo=timezone.utc)
        assert boost_week_start(SUNDAY) == expected
        assert boost_week_start(WEDNESDAY) == expected

    def test_late_saturday_in_new_york_is_previous_week(self):
        # 02:00 UTC Sunday is still Saturday evening in New York
        late_saturday = datetime(2026, 10, 18, 2, 0, tzinfo=timezone.utc)
        assert boost_week_start(late_saturday) == datetime(2026, 10, 11, 4, 0, tzinfo=timezone.utc)
        assert days_until_reset(late_saturday) == 1

    @pytest.mark.parametrize(
        ("offset", "expected"),
        [(0, 7), (1, 6), (3, 4), (6, 1)],
    )
    def test_days_until_reset(self, offset, expected):
        assert days_until_reset(SUNDAY + timedelta(days=offset)) == expected


class TestCheckBoost:
    def test_first_boost_allowed(self):
        check_boost(get_boost("sleep-t1-1"), [], SUNDAY)

    def test_tier_two_locked_without_tier_one(self):
        with pytest.raises(NotEligibleError):
            check_boost(get_boost("sleep-t2-1"), [], WEDNESDAY)

    def test_tier_one_in_other_category_does_not_unlock(self):
        week = [_done("mindset-t1-1", SUNDAY)]
        with pytest.raises(NotEligibleError):
            check_boost(get_boost("sleep-t2-1"), week, WEDNESDAY)

    def test_tier_one_in_same_category_unlocks(self):
        week = [_done("sleep-t1-3", SUNDAY)]
        check_boost(get_boost("sleep-t2-1"), week, WEDNESDAY)

    def test_repeat_within_week(self):
        week = [_done("sleep-t1-1", SUNDAY)]
        with pytest.raises(CooldownActiveError) as exc_info:
            check_boost(get_boost("sleep-t1-1"), week, WEDNESDAY)
        assert exc_info.value.days_remaining == 4

    def test_daily_limit(self):
        week = [
            _done("sleep-t1-1", WEDNESDAY - timedelta(hours=3)),
            _done("mindset-t1-1", WEDNESDAY - timedelta(hours=2)),
            _done("exercise-t1-1", WEDNESDAY - timedelta(hours=1)),
        ]
        with pytest.raises(AlreadyCompletedTodayError) as exc_info:
            check_boost(get_boost("nutrition-t1-1"), week, WEDNESDAY)
        assert exc_info.value.activity_id == "nutrition-t1-1"

    def test_yesterdays_boosts_do_not_count_toward_today(self):
        yesterday = WEDNESDAY - timedelta(days=1)
        week = [
            _done("sleep-t1-1", yesterday),
            _done("mindset-t1-1", yesterday),
            _done("exercise-t1-1", yesterday),
        ]
        check_boost(get_boost("nutrition-t1-1"), week, WEDNESDAY)
