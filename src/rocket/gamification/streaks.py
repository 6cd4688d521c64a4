"""Burn streak calculator: continuation, reset and milestone bonuses.

Pure functions over immutable inputs; persistence lives in streak_service.

Milestones:
  3 days  → 5 FP
  7 days  → 10 FP
  21 days → 100 FP
  then every further 21-day cycle (42, 63, ...) → 200 FP
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import date, datetime

from rocket.day_utils import to_reference_date

MILESTONE_REWARDS: dict[int, int] = {3: 5, 7: 10, 21: 100}
CYCLE_LENGTH = 21
CYCLE_REWARD = 200


@dataclass(frozen=True)
class UserStreak:
    user_id: str
    current_length: int = 0
    last_qualifying_date: date | None = None


@dataclass(frozen=True)
class Milestone:
    days_remaining: int
    reward: int


def advance_streak(current: UserStreak, action_at: datetime | date) -> UserStreak:
    """Apply one qualifying action to a streak.

    - same reference day as the last qualifying action → unchanged
    - the following calendar day → length + 1
    - any skipped day (or no previous action) → reset to 1
    An action dated before the last qualifying day leaves the streak unchanged.
    """
    action_day = to_reference_date(action_at)

    if current.last_qualifying_date is None or current.current_length == 0:
        return replace(current, current_length=1, last_qualifying_date=action_day)

    gap = (action_day - current.last_qualifying_date).days
    if gap <= 0:
        return current
    if gap == 1:
        return replace(
            current,
            current_length=current.current_length + 1,
            last_qualifying_date=action_day,
        )
    return replace(current, current_length=1, last_qualifying_date=action_day)


def next_milestone(length: int) -> Milestone:
    """Days remaining and reward for the next streak bonus after `length`."""
    if length < 0:
        raise ValueError("Streak length cannot be negative")

    for days in sorted(MILESTONE_REWARDS):
        if days > length:
            return Milestone(days_remaining=days - length, reward=MILESTONE_REWARDS[days])

    return Milestone(days_remaining=CYCLE_LENGTH - length % CYCLE_LENGTH, reward=CYCLE_REWARD)


def milestone_reward(length: int) -> int | None:
    """FP bonus earned on the day the streak reaches `length`, if any."""
    if length in MILESTONE_REWARDS:
        return MILESTONE_REWARDS[length]
    if length > CYCLE_LENGTH and length % CYCLE_LENGTH == 0:
        return CYCLE_REWARD
    return None


def milestone_progress(length: int) -> float:
    """Percent progress (0-100) from the previous milestone toward the next one."""
    if length < 0:
        raise ValueError("Streak length cannot be negative")

    thresholds = sorted(MILESTONE_REWARDS)
    if length >= thresholds[-1]:
        return (length % CYCLE_LENGTH) / CYCLE_LENGTH * 100

    previous = 0
    for days in thresholds:
        if days > length:
            return (length - previous) / (days - previous) * 100
        previous = days
    return 0.0
