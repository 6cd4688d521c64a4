"""Contest lifecycle tests: transitions, registration checks, derived status."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from rocket.competition.contest_engine import (
    REASON_ALREADY_REGISTERED,
    REASON_COMMUNITY_ONLY,
    REASON_CONTEST_FULL,
    REASON_NO_CREDITS,
    REASON_REGISTRATION_CLOSED,
    VALID_TRANSITIONS,
    Contest,
    ContestRegistration,
    ContestStatus,
    check_registration,
    days_remaining,
    days_until_start,
    derive_status,
    ensure_cancellable,
    is_settleable,
    validate_transition,
)
from rocket.errors import InvalidStateError, NotEligibleError

START = datetime(2026, 11, 2, 12, 0, tzinfo=timezone.utc)

CONTEST = Contest(
    id="cn_oura_sleep_week_score",
    start_date=START,
    registration_end_date=START - timedelta(days=1),
    duration_days=7,
    max_players=10,
)


def _check(contest: Contest = CONTEST, now: datetime | None = None, **overrides) -> None:
    kwargs = {
        "credits": 1,
        "registrant_count": 0,
        "already_registered": False,
        "member_of_community": True,
    }
    kwargs.update(overrides)
    check_registration(contest, "u1", now or START - timedelta(days=3), **kwargs)


class TestTransitions:
    def test_structure(self):
        assert set(VALID_TRANSITIONS) == set(ContestStatus)

    def test_terminal_states(self):
        assert VALID_TRANSITIONS[ContestStatus.COMPLETED] == []
        assert VALID_TRANSITIONS[ContestStatus.CANCELLED] == []

    def test_valid_path(self):
        validate_transition(ContestStatus.PENDING, ContestStatus.ACTIVE)
        validate_transition(ContestStatus.ACTIVE, ContestStatus.COMPLETED)

    def test_skipping_active_rejected(self):
        with pytest.raises(InvalidStateError, match="Invalid transition"):
            validate_transition(ContestStatus.PENDING, ContestStatus.COMPLETED)

    def test_cancel_only_from_pending_or_active(self):
        ensure_cancellable(ContestStatus.PENDING)
        ensure_cancellable(ContestStatus.ACTIVE)
        with pytest.raises(InvalidStateError):
            ensure_cancellable(ContestStatus.COMPLETED)
        with pytest.raises(InvalidStateError):
            ensure_cancellable(ContestStatus.CANCELLED)


class TestCheckRegistration:
    """Each precondition surfaces its own user-facing reason."""

    def test_eligible(self):
        _check()

    def test_already_registered(self):
        with pytest.raises(NotEligibleError) as exc_info:
            _check(already_registered=True)
        assert exc_info.value.reason == REASON_ALREADY_REGISTERED

    def test_registration_closed(self):
        with pytest.raises(NotEligibleError) as exc_info:
            _check(now=CONTEST.registration_end_date + timedelta(seconds=1))
        assert exc_info.value.reason == REASON_REGISTRATION_CLOSED

    def test_closed_exactly_at_deadline(self):
        with pytest.raises(NotEligibleError, match="closed"):
            _check(now=CONTEST.registration_end_date)

    def test_contest_full(self):
        with pytest.raises(NotEligibleError) as exc_info:
            _check(registrant_count=10)
        assert exc_info.value.reason == REASON_CONTEST_FULL

    def test_community_only(self):
        contest = Contest(
            id="c2",
            start_date=START,
            registration_end_date=START,
            duration_days=7,
            community_id="club-1",
        )
        with pytest.raises(NotEligibleError) as exc_info:
            _check(contest, member_of_community=False)
        assert exc_info.value.reason == REASON_COMMUNITY_ONLY

    def test_no_credits(self):
        with pytest.raises(NotEligibleError) as exc_info:
            _check(credits=0)
        assert exc_info.value.reason == REASON_NO_CREDITS

    def test_free_contest_needs_no_credits(self):
        free = Contest(
            id="free",
            start_date=START,
            registration_end_date=START,
            duration_days=7,
            entry_fee_credits=0,
        )
        _check(free, credits=0)

    def test_duplicate_checked_before_window(self):
        with pytest.raises(NotEligibleError) as exc_info:
            _check(now=START + timedelta(days=1), already_registered=True)
        assert exc_info.value.reason == REASON_ALREADY_REGISTERED


class TestDeriveStatus:
    def _registration(self, **kwargs) -> ContestRegistration:
        return ContestRegistration(contest_id=CONTEST.id, user_id="u1", **kwargs)

    def test_pending_before_start(self):
        assert derive_status(self._registration(), CONTEST, START - timedelta(hours=1)) == ContestStatus.PENDING

    def test_active_after_start(self):
        assert derive_status(self._registration(), CONTEST, START) == ContestStatus.ACTIVE

    def test_completed_when_verified(self):
        registration = self._registration(verification_count=8, completed_at=START + timedelta(days=3))
        assert derive_status(registration, CONTEST, START + timedelta(days=4)) == ContestStatus.COMPLETED

    def test_cancelled_is_sticky(self):
        registration = self._registration(status=ContestStatus.CANCELLED)
        assert derive_status(registration, CONTEST, START + timedelta(days=1)) == ContestStatus.CANCELLED


class TestDayCounters:
    def test_days_until_start_rounds_up(self):
        assert days_until_start(CONTEST, START - timedelta(days=2, hours=1)) == 3

    def test_days_until_start_none_once_started(self):
        assert days_until_start(CONTEST, START) is None

    def test_days_remaining_before_start_is_full_duration(self):
        assert days_remaining(CONTEST, START - timedelta(days=5)) == 7

    def test_days_remaining_during_and_after(self):
        assert days_remaining(CONTEST, START + timedelta(days=2, hours=3)) == 5
        assert days_remaining(CONTEST, START + timedelta(days=30)) == 0

    def test_end_date_and_settleable(self):
        assert CONTEST.end_date == START + timedelta(days=7)
        assert not is_settleable(CONTEST, START + timedelta(days=6))
        assert is_settleable(CONTEST, START + timedelta(days=7))
