"""Progression tracker: counters against thresholds with cadence gates.

A completion event increments `count_completed` on an activity. The first
time the count reaches `count_required`, `completed_at` is stamped and the
event reports `completed=True`. After that the record is terminal: every
further event raises InvalidStateError.

Cadence gates:
- daily: at most one qualifying completion per reference-zone calendar day
- weekly: a new completion needs 7 whole days since the previous one
- verification: no temporal gate (contest proof posts)
"""

from __future__ import annotations

from dataclasses import dataclass, replace
from datetime import datetime

from rocket.day_utils import ensure_aware, to_reference_date, whole_days_elapsed
from rocket.errors import AlreadyCompletedTodayError, CooldownActiveError, InvalidStateError
from rocket.gamification.activities import ActivityKind, Cadence

WEEKLY_COOLDOWN_DAYS = 7


@dataclass(frozen=True)
class ActivityProgress:
    activity_id: str
    user_id: str
    kind: ActivityKind
    count_completed: int
    count_required: int
    started_at: datetime
    completed_at: datetime | None = None

    def __post_init__(self) -> None:
        if self.count_required <= 0:
            raise ValueError("count_required must be positive")
        if self.count_completed < 0:
            raise ValueError("count_completed cannot be negative")

    @property
    def is_completed(self) -> bool:
        return self.completed_at is not None

    @property
    def percent(self) -> float:
        return min(100.0, self.count_completed / self.count_required * 100)


@dataclass(frozen=True)
class CompletionMilestone:
    activity_id: str
    kind: ActivityKind
    completed_at: datetime


@dataclass(frozen=True)
class CompletionResult:
    progress: ActivityProgress
    completed: bool
    milestone_fired: CompletionMilestone | None = None


def days_until_next_window(
    last_completion_at: datetime | None,
    now: datetime,
    cooldown_days: int = WEEKLY_COOLDOWN_DAYS,
) -> int:
    """Days until a weekly action can be recorded again. 0 when the window is open."""
    if last_completion_at is None:
        return 0
    elapsed = whole_days_elapsed(last_completion_at, now)
    if elapsed >= cooldown_days:
        return 0
    return cooldown_days - elapsed


def check_cadence(
    activity_id: str,
    cadence: Cadence,
    last_completion_at: datetime | None,
    now: datetime,
    cooldown_days: int = WEEKLY_COOLDOWN_DAYS,
) -> None:
    """Raise the matching informational error if the cadence window is closed."""
    if last_completion_at is None or cadence == Cadence.VERIFICATION:
        return

    if cadence == Cadence.DAILY:
        if to_reference_date(last_completion_at) == to_reference_date(now):
            raise AlreadyCompletedTodayError(activity_id)
    elif cadence == Cadence.WEEKLY:
        remaining = days_until_next_window(last_completion_at, now, cooldown_days)
        if remaining > 0:
            raise CooldownActiveError(activity_id, remaining)


def record_completion_event(
    progress: ActivityProgress,
    delta: int = 1,
    *,
    now: datetime,
    cadence: Cadence = Cadence.VERIFICATION,
    last_completion_at: datetime | None = None,
    cooldown_days: int = WEEKLY_COOLDOWN_DAYS,
) -> CompletionResult:
    """Apply one completion event to `progress`. Returns a new progress value."""
    if progress.is_completed:
        raise InvalidStateError(
            f"Activity {progress.activity_id} already completed for user {progress.user_id}"
        )
    if delta < 1:
        raise ValueError("delta must be at least 1")

    check_cadence(progress.activity_id, cadence, last_completion_at, now, cooldown_days)

    new_count = progress.count_completed + delta
    if new_count < progress.count_required:
        return CompletionResult(
            progress=replace(progress, count_completed=new_count),
            completed=False,
        )

    completed_at = ensure_aware(now)
    updated = replace(progress, count_completed=new_count, completed_at=completed_at)
    return CompletionResult(
        progress=updated,
        completed=True,
        milestone_fired=CompletionMilestone(
            activity_id=progress.activity_id,
            kind=progress.kind,
            completed_at=completed_at,
        ),
    )
