"""Storage boundary used by the progression services.

The services never touch SQL directly: they depend on these interfaces and
get a concrete `Store` (SqlStore in production) through FastAPI dependencies
or the worker context. Writes are staged until `commit()`; `rollback()`
discards everything since the last commit.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from rocket.competition.contest_engine import Contest, ContestRegistration, check_registration
from rocket.competition.contest_prizes import ContestResult
from rocket.competition.leaderboard import PointsTotal
from rocket.errors import NotEligibleError, NotFoundError
from rocket.gamification.activities import ActivityDetails, ActivityKind
from rocket.gamification.boosts import BoostCompletion
from rocket.gamification.progression import ActivityProgress
from rocket.gamification.streaks import UserStreak


class LeaderboardScope(str, Enum):
    COMMUNITY = "community"
    GLOBAL = "global"


@dataclass(frozen=True)
class Eligibility:
    eligible: bool
    reason: str | None = None


@dataclass(frozen=True)
class RankSnapshot:
    user_id: str
    rank: int
    total_fp: int
    status: str
    multiplier: int


class ActivityCatalog(ABC):
    @abstractmethod
    async def get_activity_details(self, activity_id: str) -> ActivityDetails | None: ...

    @abstractmethod
    async def list_activities(
        self,
        kind: ActivityKind | None = None,
        category: str | None = None,
        tier: int | None = None,
    ) -> list[ActivityDetails]: ...


class ProgressStore(ABC):
    @abstractmethod
    async def get_activity_progress(self, user_id: str, activity_id: str) -> ActivityProgress | None: ...

    @abstractmethod
    async def list_activity_progress(self, user_id: str) -> list[ActivityProgress]: ...

    @abstractmethod
    async def upsert_activity_progress(self, progress: ActivityProgress) -> ActivityProgress:
        """Insert or replace the progress row keyed by (user_id, activity_id)."""

    @abstractmethod
    async def delete_activity_progress(self, user_id: str, activity_id: str) -> bool: ...

    @abstractmethod
    async def record_completed_activity(
        self, user_id: str, activity_id: str, fp_earned: int, completed_at: datetime
    ) -> None:
        """Idempotent: a second call for the same (user_id, activity_id) is a no-op."""

    @abstractmethod
    async def list_completed_activity_ids(self, user_id: str) -> set[str]: ...

    @abstractmethod
    async def get_last_completion(self, user_id: str, activity_id: str) -> datetime | None: ...

    @abstractmethod
    async def add_completion(self, user_id: str, activity_id: str, completed_at: datetime) -> None: ...

    @abstractmethod
    async def add_fuel_points(
        self, user_id: str, amount: int, source: str, source_id: str | None = None
    ) -> None: ...

    @abstractmethod
    async def get_total_fuel_points(self, user_id: str) -> int: ...


class StreakStore(ABC):
    @abstractmethod
    async def get_user_streak(self, user_id: str) -> UserStreak:
        """Stored streak, or an empty one for users without any qualifying action."""

    @abstractmethod
    async def set_user_streak(self, user_id: str, streak: UserStreak) -> None: ...


class BoostLog(ABC):
    @abstractmethod
    async def list_boost_completions(self, user_id: str, since: datetime) -> list[BoostCompletion]:
        """Boosts the user completed at or after `since`, oldest first."""

    @abstractmethod
    async def add_boost_completion(self, user_id: str, boost_id: str, completed_at: datetime) -> None: ...


class ContestRegistry(ABC):
    @abstractmethod
    async def get_contest(self, contest_id: str) -> Contest | None: ...

    @abstractmethod
    async def list_unsettled_contests(self, ended_before: datetime) -> list[Contest]: ...

    @abstractmethod
    async def mark_contest_settled(self, contest_id: str, settled_at: datetime) -> None: ...

    @abstractmethod
    async def get_registration(self, contest_id: str, user_id: str) -> ContestRegistration | None: ...

    @abstractmethod
    async def count_registrations(self, contest_id: str) -> int: ...

    @abstractmethod
    async def create_registration(self, registration: ContestRegistration) -> ContestRegistration:
        """Raises NotEligibleError if (contest_id, user_id) already exists."""

    @abstractmethod
    async def update_registration(self, registration: ContestRegistration) -> ContestRegistration: ...

    @abstractmethod
    async def delete_registration(self, contest_id: str, user_id: str) -> None: ...

    @abstractmethod
    async def list_registrations(
        self, *, user_id: str | None = None, contest_id: str | None = None
    ) -> list[ContestRegistration]: ...

    @abstractmethod
    async def get_credit_balance(self, user_id: str) -> int: ...

    @abstractmethod
    async def consume_entry_credit(self, user_id: str, amount: int = 1) -> bool:
        """Decrement the balance. False (and no change) if it is too low."""

    @abstractmethod
    async def refund_entry_credit(self, user_id: str, amount: int = 1) -> None: ...

    @abstractmethod
    async def is_community_member(self, user_id: str, community_id: str) -> bool: ...

    @abstractmethod
    async def save_contest_results(self, results: list[ContestResult]) -> int:
        """Upsert per-user results keyed by (contest_id, user_id). Returns the number written."""

    @abstractmethod
    async def get_contest_result(self, contest_id: str, user_id: str) -> ContestResult | None: ...

    async def check_contest_eligibility(
        self, user_id: str, contest_id: str, now: datetime
    ) -> Eligibility:
        """Evaluate every registration precondition against current store state."""
        contest = await self.get_contest(contest_id)
        if contest is None:
            raise NotFoundError(f"Contest {contest_id} not found")

        member = True
        if contest.community_id is not None:
            member = await self.is_community_member(user_id, contest.community_id)

        try:
            check_registration(
                contest,
                user_id,
                now,
                credits=await self.get_credit_balance(user_id),
                registrant_count=await self.count_registrations(contest_id),
                already_registered=await self.get_registration(contest_id, user_id) is not None,
                member_of_community=member,
            )
        except NotEligibleError as e:
            return Eligibility(eligible=False, reason=e.reason)
        return Eligibility(eligible=True)


class LeaderboardSource(ABC):
    @abstractmethod
    async def get_ranked_entries(
        self,
        scope: LeaderboardScope,
        period_start: datetime,
        community_id: str | None = None,
        period_end: datetime | None = None,
    ) -> list[PointsTotal]:
        """FP totals earned in [period_start, period_end), highest first."""

    @abstractmethod
    async def list_community_ids(self) -> list[str]: ...

    @abstractmethod
    async def get_user_plans(self, user_ids: list[str]) -> dict[str, str]: ...

    @abstractmethod
    async def save_rank_snapshots(
        self, scope_key: str, year: int, month: int, snapshots: list[RankSnapshot]
    ) -> int:
        """Upsert monthly snapshots. Returns the number written."""

    @abstractmethod
    async def award_prize_points(
        self, user_id: str, year: int, month: int, status: str, prize_points: int
    ) -> bool:
        """Idempotent per (user_id, year, month). True if newly awarded."""


class Store(
    ActivityCatalog, ProgressStore, StreakStore, BoostLog, ContestRegistry, LeaderboardSource
):
    """Everything the services need, bound to one unit of work."""

    @abstractmethod
    async def commit(self) -> None: ...

    @abstractmethod
    async def rollback(self) -> None: ...
