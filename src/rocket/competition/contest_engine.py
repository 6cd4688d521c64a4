"""Contest lifecycle state machine.

State progression: pending -> active -> completed, with cancelled reachable
from pending or active. Pending and active are derived from wall-clock time
(`now` is always passed in); completed and cancelled are terminal.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from enum import Enum

from rocket.day_utils import days_until, ensure_aware, whole_days_elapsed
from rocket.errors import InvalidStateError, NotEligibleError

DEFAULT_VERIFICATIONS_REQUIRED = 8
DEFAULT_MIN_PLAYERS = 4
DEFAULT_ENTRY_FEE = 1


class ContestStatus(str, Enum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


VALID_TRANSITIONS: dict[ContestStatus, list[ContestStatus]] = {
    ContestStatus.PENDING: [ContestStatus.ACTIVE, ContestStatus.CANCELLED],
    ContestStatus.ACTIVE: [ContestStatus.COMPLETED, ContestStatus.CANCELLED],
    ContestStatus.COMPLETED: [],
    ContestStatus.CANCELLED: [],
}

# Registration rejection reasons, shown to the user verbatim
REASON_ALREADY_REGISTERED = "Already registered for this contest"
REASON_REGISTRATION_CLOSED = "Registration for this contest has closed"
REASON_CONTEST_FULL = "This contest is full"
REASON_COMMUNITY_ONLY = "This contest is only open to members of its community"
REASON_NO_CREDITS = "No entry credits available"


@dataclass(frozen=True)
class Contest:
    id: str
    start_date: datetime
    registration_end_date: datetime
    duration_days: int
    entry_fee_credits: int = DEFAULT_ENTRY_FEE
    min_players: int = DEFAULT_MIN_PLAYERS
    max_players: int | None = None
    community_id: str | None = None
    verifications_required: int = DEFAULT_VERIFICATIONS_REQUIRED
    name: str = ""

    @property
    def end_date(self) -> datetime:
        return ensure_aware(self.start_date) + timedelta(days=self.duration_days)

    @property
    def is_free(self) -> bool:
        return self.entry_fee_credits <= 0


@dataclass(frozen=True)
class ContestRegistration:
    contest_id: str
    user_id: str
    status: ContestStatus = ContestStatus.PENDING
    verification_count: int = 0
    verifications_required: int = DEFAULT_VERIFICATIONS_REQUIRED
    registered_at: datetime | None = None
    completed_at: datetime | None = None
    credit_consumed: bool = False


def validate_transition(current: ContestStatus, target: ContestStatus) -> None:
    """Validate a state transition. Raises InvalidStateError if invalid."""
    valid = VALID_TRANSITIONS.get(current, [])
    if target not in valid:
        raise InvalidStateError(
            f"Invalid transition: {current.value} -> {target.value}. "
            f"Valid transitions: {[s.value for s in valid]}"
        )


def check_registration(
    contest: Contest,
    user_id: str,
    now: datetime,
    *,
    credits: int,
    registrant_count: int,
    already_registered: bool,
    member_of_community: bool,
) -> None:
    """Raise NotEligibleError with the first failing precondition.

    Order: duplicate, window, capacity, community, credits.
    """
    if already_registered:
        raise NotEligibleError(REASON_ALREADY_REGISTERED)
    if ensure_aware(now) >= ensure_aware(contest.registration_end_date):
        raise NotEligibleError(REASON_REGISTRATION_CLOSED)
    if contest.max_players is not None and registrant_count >= contest.max_players:
        raise NotEligibleError(REASON_CONTEST_FULL)
    if contest.community_id is not None and not member_of_community:
        raise NotEligibleError(REASON_COMMUNITY_ONLY)
    if not contest.is_free and credits < contest.entry_fee_credits:
        raise NotEligibleError(REASON_NO_CREDITS)


def derive_status(
    registration: ContestRegistration,
    contest: Contest,
    now: datetime,
) -> ContestStatus:
    """Current status of a registration at `now`."""
    if registration.status == ContestStatus.CANCELLED:
        return ContestStatus.CANCELLED
    if ensure_aware(now) < ensure_aware(contest.start_date):
        return ContestStatus.PENDING
    if (
        registration.completed_at is not None
        or registration.verification_count >= registration.verifications_required
    ):
        return ContestStatus.COMPLETED
    return ContestStatus.ACTIVE


def ensure_cancellable(status: ContestStatus) -> None:
    """Cancellation is allowed from pending or active only."""
    validate_transition(status, ContestStatus.CANCELLED)


def days_until_start(contest: Contest, now: datetime) -> int | None:
    """Whole days (rounded up) until the contest starts, None once started."""
    if ensure_aware(now) >= ensure_aware(contest.start_date):
        return None
    return days_until(contest.start_date, now)


def days_remaining(contest: Contest, now: datetime) -> int:
    """Days left in the contest. Full duration before it starts, 0 once over."""
    if ensure_aware(now) < ensure_aware(contest.start_date):
        return contest.duration_days
    return max(0, contest.duration_days - whole_days_elapsed(contest.start_date, now))


def is_settleable(contest: Contest, now: datetime) -> bool:
    """True once the contest's run (start + duration) is over."""
    return ensure_aware(now) >= contest.end_date
