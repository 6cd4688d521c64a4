"""Domain errors raised by the progression and ranking engine.

All errors are raised synchronously from the pure cores or the services
wrapping them. None of them represent network failures.

Propagation:
- AlreadyCompletedTodayError / CooldownActiveError are informational and are
  surfaced to the user as state, not as failures.
- InvalidStateError signals a caller bug (double completion). It is logged
  and a generic message is shown instead.
- NotEligibleError always reaches the user with its reason string.
"""

from __future__ import annotations


class ProgressionError(ValueError):
    """Base class for every engine error."""


class InvalidStateError(ProgressionError):
    """Attempted mutation of a terminal (completed) record."""


class AlreadyCompletedTodayError(ProgressionError):
    """The daily cadence is already satisfied for the current reference day."""

    def __init__(self, activity_id: str) -> None:
        self.activity_id = activity_id
        super().__init__(f"Already completed today: {activity_id}")


class CooldownActiveError(ProgressionError):
    """The weekly cadence window has not reopened yet."""

    def __init__(self, activity_id: str, days_remaining: int) -> None:
        self.activity_id = activity_id
        self.days_remaining = days_remaining
        unit = "day" if days_remaining == 1 else "days"
        super().__init__(f"Next weekly action available in {days_remaining} {unit}")


class NotEligibleError(ProgressionError):
    """A contest registration precondition failed."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(reason)


class ClassificationInputError(ProgressionError):
    """Empty or malformed leaderboard input."""


class NotFoundError(ProgressionError):
    """Unknown activity, contest or registration."""
