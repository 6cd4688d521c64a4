"""PostgreSQL implementation of the store interfaces."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy import delete, func, select, update
from sqlalchemy.dialects.postgresql import insert as pg_insert
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from rocket.competition.contest_engine import (
    REASON_ALREADY_REGISTERED,
    Contest,
    ContestRegistration,
    ContestStatus,
)
from rocket.competition.contest_prizes import ContestResult
from rocket.competition.leaderboard import LeaderboardStatus, PointsTotal
from rocket.config import get_settings
from rocket.day_utils import to_reference_date, utcnow
from rocket.db.models import (
    Activity,
    ActivityCompletion,
    ActivityProgressRow,
    BoostCompletionRow,
    CommunityMember,
    CompletedActivity,
    ContestRegistrationRow,
    ContestResultRow,
    ContestRow,
    EntryCredits,
    FuelPointLedger,
    LeaderboardSnapshot,
    PrizePoints,
    UserProfile,
    UserStreakRow,
)
from rocket.errors import NotEligibleError
from rocket.gamification.activities import ActivityDetails, ActivityKind, Cadence
from rocket.gamification.boosts import BoostCompletion
from rocket.gamification.progression import ActivityProgress
from rocket.gamification.streaks import UserStreak
from rocket.store.interfaces import LeaderboardScope, RankSnapshot, Store

logger = logging.getLogger(__name__)


def _activity_from_row(row: Activity) -> ActivityDetails:
    return ActivityDetails(
        id=row.id,
        name=row.name,
        kind=ActivityKind(row.kind),
        category=row.category,
        tier=row.tier,
        duration_days=row.duration_days,
        required_count=row.required_count,
        fuel_points=row.fuel_points,
        cadence=Cadence(row.cadence),
    )


def _progress_from_row(row: ActivityProgressRow) -> ActivityProgress:
    return ActivityProgress(
        activity_id=row.activity_id,
        user_id=row.user_id,
        kind=ActivityKind(row.kind),
        count_completed=row.count_completed,
        count_required=row.count_required,
        started_at=row.started_at,
        completed_at=row.completed_at,
    )


def _contest_from_row(row: ContestRow) -> Contest:
    return Contest(
        id=row.id,
        name=row.name,
        start_date=row.start_date,
        registration_end_date=row.registration_end_date,
        duration_days=row.duration_days,
        entry_fee_credits=row.entry_fee_credits,
        min_players=row.min_players,
        max_players=row.max_players,
        community_id=row.community_id,
        verifications_required=row.verifications_required
        or get_settings().default_verifications_required,
    )


def _registration_from_row(row: ContestRegistrationRow) -> ContestRegistration:
    return ContestRegistration(
        contest_id=row.contest_id,
        user_id=row.user_id,
        status=ContestStatus(row.status),
        verification_count=row.verification_count,
        verifications_required=row.verifications_required,
        registered_at=row.registered_at,
        completed_at=row.completed_at,
        credit_consumed=row.credit_consumed,
    )


def _result_from_row(row: ContestResultRow) -> ContestResult:
    return ContestResult(
        contest_id=row.contest_id,
        user_id=row.user_id,
        rank=row.rank,
        fuel_points=row.fuel_points,
        status=LeaderboardStatus(row.status),
        multiplier=row.multiplier,
        credit_refunded=row.credit_refunded,
        pool_share=row.pool_share,
    )


class SqlStore(Store):
    """Store bound to one AsyncSession. Nothing is committed until commit()."""

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    async def commit(self) -> None:
        await self.session.commit()

    async def rollback(self) -> None:
        await self.session.rollback()

    # --- Activity catalog ---

    async def get_activity_details(self, activity_id: str) -> ActivityDetails | None:
        row = await self.session.get(Activity, activity_id)
        if row is None or not row.is_active:
            return None
        return _activity_from_row(row)

    async def list_activities(
        self,
        kind: ActivityKind | None = None,
        category: str | None = None,
        tier: int | None = None,
    ) -> list[ActivityDetails]:
        query = select(Activity).where(Activity.is_active.is_(True))
        if kind is not None:
            query = query.where(Activity.kind == kind.value)
        if category is not None:
            query = query.where(func.lower(Activity.category) == category.strip().lower())
        if tier is not None:
            query = query.where(Activity.tier == tier)
        result = await self.session.execute(query.order_by(Activity.sort_order, Activity.id))
        return [_activity_from_row(r) for r in result.scalars().all()]

    # --- Progress ---

    async def get_activity_progress(self, user_id: str, activity_id: str) -> ActivityProgress | None:
        result = await self.session.execute(
            select(ActivityProgressRow).where(
                ActivityProgressRow.user_id == user_id,
                ActivityProgressRow.activity_id == activity_id,
            )
        )
        row = result.scalar_one_or_none()
        return _progress_from_row(row) if row else None

    async def list_activity_progress(self, user_id: str) -> list[ActivityProgress]:
        result = await self.session.execute(
            select(ActivityProgressRow)
            .where(ActivityProgressRow.user_id == user_id)
            .order_by(ActivityProgressRow.started_at)
        )
        return [_progress_from_row(r) for r in result.scalars().all()]

    async def upsert_activity_progress(self, progress: ActivityProgress) -> ActivityProgress:
        stmt = pg_insert(ActivityProgressRow).values(
            user_id=progress.user_id,
            activity_id=progress.activity_id,
            kind=progress.kind.value,
            count_completed=progress.count_completed,
            count_required=progress.count_required,
            started_at=progress.started_at,
            completed_at=progress.completed_at,
        )
        stmt = stmt.on_conflict_do_update(
            constraint="activity_progress_user_activity_key",
            set_={
                "count_completed": stmt.excluded.count_completed,
                "count_required": stmt.excluded.count_required,
                # completed_at is write-once
                "completed_at": func.coalesce(
                    ActivityProgressRow.completed_at, stmt.excluded.completed_at
                ),
            },
        )
        await self.session.execute(stmt)
        return progress

    async def delete_activity_progress(self, user_id: str, activity_id: str) -> bool:
        result = await self.session.execute(
            delete(ActivityProgressRow).where(
                ActivityProgressRow.user_id == user_id,
                ActivityProgressRow.activity_id == activity_id,
            )
        )
        return (result.rowcount or 0) > 0

    async def record_completed_activity(
        self, user_id: str, activity_id: str, fp_earned: int, completed_at: datetime
    ) -> None:
        stmt = pg_insert(CompletedActivity).values(
            user_id=user_id,
            activity_id=activity_id,
            fp_earned=fp_earned,
            completed_at=completed_at,
        )
        stmt = stmt.on_conflict_do_nothing(constraint="completed_activities_user_activity_key")
        await self.session.execute(stmt)

    async def list_completed_activity_ids(self, user_id: str) -> set[str]:
        result = await self.session.execute(
            select(CompletedActivity.activity_id).where(CompletedActivity.user_id == user_id)
        )
        return set(result.scalars().all())

    async def get_last_completion(self, user_id: str, activity_id: str) -> datetime | None:
        result = await self.session.execute(
            select(func.max(ActivityCompletion.completed_at)).where(
                ActivityCompletion.user_id == user_id,
                ActivityCompletion.activity_id == activity_id,
            )
        )
        return result.scalar_one_or_none()

    async def add_completion(self, user_id: str, activity_id: str, completed_at: datetime) -> None:
        self.session.add(
            ActivityCompletion(
                user_id=user_id,
                activity_id=activity_id,
                completed_on=to_reference_date(completed_at),
                completed_at=completed_at,
            )
        )
        await self.session.flush()

    async def add_fuel_points(
        self, user_id: str, amount: int, source: str, source_id: str | None = None
    ) -> None:
        self.session.add(
            FuelPointLedger(
                user_id=user_id,
                amount=amount,
                source=source,
                source_id=source_id,
                created_at=utcnow(),
            )
        )
        await self.session.flush()

    async def get_total_fuel_points(self, user_id: str) -> int:
        result = await self.session.execute(
            select(func.coalesce(func.sum(FuelPointLedger.amount), 0)).where(
                FuelPointLedger.user_id == user_id
            )
        )
        return int(result.scalar_one())

    # --- Streaks ---

    async def get_user_streak(self, user_id: str) -> UserStreak:
        row = await self.session.get(UserStreakRow, user_id)
        if row is None:
            return UserStreak(user_id=user_id)
        return UserStreak(
            user_id=user_id,
            current_length=row.current_length,
            last_qualifying_date=row.last_qualifying_date,
        )

    async def set_user_streak(self, user_id: str, streak: UserStreak) -> None:
        stmt = pg_insert(UserStreakRow).values(
            user_id=user_id,
            current_length=streak.current_length,
            longest_length=streak.current_length,
            last_qualifying_date=streak.last_qualifying_date,
            updated_at=utcnow(),
        )
        stmt = stmt.on_conflict_do_update(
            index_elements=[UserStreakRow.user_id],
            set_={
                "current_length": stmt.excluded.current_length,
                "longest_length": func.greatest(
                    UserStreakRow.longest_length, stmt.excluded.current_length
                ),
                "last_qualifying_date": stmt.excluded.last_qualifying_date,
                "updated_at": stmt.excluded.updated_at,
            },
        )
        await self.session.execute(stmt)

    # --- Boosts ---

    async def list_boost_completions(self, user_id: str, since: datetime) -> list[BoostCompletion]:
        result = await self.session.execute(
            select(BoostCompletionRow)
            .where(
                BoostCompletionRow.user_id == user_id,
                BoostCompletionRow.completed_at >= since,
            )
            .order_by(BoostCompletionRow.completed_at)
        )
        return [
            BoostCompletion(user_id=row.user_id, boost_id=row.boost_id, completed_at=row.completed_at)
            for row in result.scalars()
        ]

    async def add_boost_completion(self, user_id: str, boost_id: str, completed_at: datetime) -> None:
        self.session.add(
            BoostCompletionRow(user_id=user_id, boost_id=boost_id, completed_at=completed_at)
        )
        await self.session.flush()

    # --- Contests ---

    async def get_contest(self, contest_id: str) -> Contest | None:
        row = await self.session.get(ContestRow, contest_id)
        return _contest_from_row(row) if row else None

    async def list_unsettled_contests(self, ended_before: datetime) -> list[Contest]:
        # end = start + duration days; filter roughly in SQL, precisely in the engine
        result = await self.session.execute(
            select(ContestRow)
            .where(ContestRow.settled_at.is_(None), ContestRow.start_date <= ended_before)
            .order_by(ContestRow.start_date)
        )
        return [_contest_from_row(r) for r in result.scalars().all()]

    async def mark_contest_settled(self, contest_id: str, settled_at: datetime) -> None:
        await self.session.execute(
            update(ContestRow).where(ContestRow.id == contest_id).values(settled_at=settled_at)
        )

    async def _get_registration_row(
        self, contest_id: str, user_id: str
    ) -> ContestRegistrationRow | None:
        result = await self.session.execute(
            select(ContestRegistrationRow).where(
                ContestRegistrationRow.contest_id == contest_id,
                ContestRegistrationRow.user_id == user_id,
            )
        )
        return result.scalar_one_or_none()

    async def get_registration(self, contest_id: str, user_id: str) -> ContestRegistration | None:
        row = await self._get_registration_row(contest_id, user_id)
        return _registration_from_row(row) if row else None

    async def count_registrations(self, contest_id: str) -> int:
        result = await self.session.execute(
            select(func.count())
            .select_from(ContestRegistrationRow)
            .where(
                ContestRegistrationRow.contest_id == contest_id,
                ContestRegistrationRow.status != ContestStatus.CANCELLED.value,
            )
        )
        return int(result.scalar_one())

    async def create_registration(self, registration: ContestRegistration) -> ContestRegistration:
        self.session.add(
            ContestRegistrationRow(
                contest_id=registration.contest_id,
                user_id=registration.user_id,
                status=registration.status.value,
                verification_count=registration.verification_count,
                verifications_required=registration.verifications_required,
                credit_consumed=registration.credit_consumed,
                registered_at=registration.registered_at or utcnow(),
                completed_at=registration.completed_at,
            )
        )
        try:
            await self.session.flush()
        except IntegrityError as e:
            logger.info(
                "Duplicate registration for contest %s by %s",
                registration.contest_id,
                registration.user_id,
            )
            raise NotEligibleError(REASON_ALREADY_REGISTERED) from e
        return registration

    async def update_registration(self, registration: ContestRegistration) -> ContestRegistration:
        await self.session.execute(
            update(ContestRegistrationRow)
            .where(
                ContestRegistrationRow.contest_id == registration.contest_id,
                ContestRegistrationRow.user_id == registration.user_id,
            )
            .values(
                status=registration.status.value,
                verification_count=registration.verification_count,
                completed_at=registration.completed_at,
            )
        )
        return registration

    async def delete_registration(self, contest_id: str, user_id: str) -> None:
        await self.session.execute(
            delete(ContestRegistrationRow).where(
                ContestRegistrationRow.contest_id == contest_id,
                ContestRegistrationRow.user_id == user_id,
            )
        )

    async def list_registrations(
        self, *, user_id: str | None = None, contest_id: str | None = None
    ) -> list[ContestRegistration]:
        query = select(ContestRegistrationRow)
        if user_id is not None:
            query = query.where(ContestRegistrationRow.user_id == user_id)
        if contest_id is not None:
            query = query.where(ContestRegistrationRow.contest_id == contest_id)
        result = await self.session.execute(query.order_by(ContestRegistrationRow.registered_at))
        return [_registration_from_row(r) for r in result.scalars().all()]

    async def get_credit_balance(self, user_id: str) -> int:
        row = await self.session.get(EntryCredits, user_id)
        return row.balance if row else 0

    async def consume_entry_credit(self, user_id: str, amount: int = 1) -> bool:
        # Conditional decrement keeps the balance non-negative under concurrency
        result = await self.session.execute(
            update(EntryCredits)
            .where(EntryCredits.user_id == user_id, EntryCredits.balance >= amount)
            .values(balance=EntryCredits.balance - amount)
        )
        return (result.rowcount or 0) > 0

    async def refund_entry_credit(self, user_id: str, amount: int = 1) -> None:
        stmt = pg_insert(EntryCredits).values(user_id=user_id, balance=amount)
        stmt = stmt.on_conflict_do_update(
            index_elements=[EntryCredits.user_id],
            set_={"balance": EntryCredits.balance + amount},
        )
        await self.session.execute(stmt)

    async def is_community_member(self, user_id: str, community_id: str) -> bool:
        result = await self.session.execute(
            select(CommunityMember.id).where(
                CommunityMember.user_id == user_id,
                CommunityMember.community_id == community_id,
            )
        )
        return result.first() is not None

    async def save_contest_results(self, results: list[ContestResult]) -> int:
        if not results:
            return 0
        now = utcnow()
        stmt = pg_insert(ContestResultRow).values([
            {
                "contest_id": r.contest_id,
                "user_id": r.user_id,
                "rank": r.rank,
                "fuel_points": r.fuel_points,
                "status": r.status.value,
                "multiplier": r.multiplier,
                "credit_refunded": r.credit_refunded,
                "pool_share": r.pool_share,
                "settled_at": now,
            }
            for r in results
        ])
        stmt = stmt.on_conflict_do_update(
            constraint="contest_results_contest_user_key",
            set_={
                "rank": stmt.excluded.rank,
                "fuel_points": stmt.excluded.fuel_points,
                "status": stmt.excluded.status,
                "multiplier": stmt.excluded.multiplier,
                "credit_refunded": stmt.excluded.credit_refunded,
                "pool_share": stmt.excluded.pool_share,
                "settled_at": stmt.excluded.settled_at,
            },
        )
        await self.session.execute(stmt)
        return len(results)

    async def get_contest_result(self, contest_id: str, user_id: str) -> ContestResult | None:
        result = await self.session.execute(
            select(ContestResultRow).where(
                ContestResultRow.contest_id == contest_id,
                ContestResultRow.user_id == user_id,
            )
        )
        row = result.scalar_one_or_none()
        return _result_from_row(row) if row else None

    # --- Leaderboard ---

    async def get_ranked_entries(
        self,
        scope: LeaderboardScope,
        period_start: datetime,
        community_id: str | None = None,
        period_end: datetime | None = None,
    ) -> list[PointsTotal]:
        total = func.sum(FuelPointLedger.amount).label("total")
        query = (
            select(FuelPointLedger.user_id, total)
            .where(FuelPointLedger.created_at >= period_start)
            .group_by(FuelPointLedger.user_id)
            .order_by(total.desc(), FuelPointLedger.user_id)
        )
        if period_end is not None:
            query = query.where(FuelPointLedger.created_at < period_end)
        if scope == LeaderboardScope.COMMUNITY:
            if community_id is None:
                raise ValueError("community_id is required for community leaderboards")
            members = select(CommunityMember.user_id).where(
                CommunityMember.community_id == community_id
            )
            query = query.where(FuelPointLedger.user_id.in_(members))

        result = await self.session.execute(query)
        return [PointsTotal(user_id=r.user_id, fuel_points=int(r.total)) for r in result.all()]

    async def list_community_ids(self) -> list[str]:
        result = await self.session.execute(
            select(CommunityMember.community_id).distinct().order_by(CommunityMember.community_id)
        )
        return list(result.scalars().all())

    async def get_user_plans(self, user_ids: list[str]) -> dict[str, str]:
        if not user_ids:
            return {}
        result = await self.session.execute(
            select(UserProfile.user_id, UserProfile.plan).where(UserProfile.user_id.in_(user_ids))
        )
        return {r.user_id: r.plan for r in result.all()}

    async def save_rank_snapshots(
        self, scope_key: str, year: int, month: int, snapshots: list[RankSnapshot]
    ) -> int:
        if not snapshots:
            return 0
        now = utcnow()
        stmt = pg_insert(LeaderboardSnapshot).values([
            {
                "scope_key": scope_key,
                "year": year,
                "month": month,
                "user_id": s.user_id,
                "rank": s.rank,
                "total_fp": s.total_fp,
                "status": s.status,
                "multiplier": s.multiplier,
                "snapshot_at": now,
            }
            for s in snapshots
        ])
        stmt = stmt.on_conflict_do_update(
            constraint="lb_snapshots_scope_month_user_key",
            set_={
                "rank": stmt.excluded.rank,
                "total_fp": stmt.excluded.total_fp,
                "status": stmt.excluded.status,
                "multiplier": stmt.excluded.multiplier,
                "snapshot_at": stmt.excluded.snapshot_at,
            },
        )
        await self.session.execute(stmt)
        return len(snapshots)

    async def award_prize_points(
        self, user_id: str, year: int, month: int, status: str, prize_points: int
    ) -> bool:
        stmt = (
            pg_insert(PrizePoints)
            .values(
                user_id=user_id,
                year=year,
                month=month,
                status=status,
                prize_points=prize_points,
                awarded_at=utcnow(),
            )
            .on_conflict_do_nothing(constraint="prize_points_user_month_key")
            .returning(PrizePoints.id)
        )
        result = await self.session.execute(stmt)
        return result.scalar_one_or_none() is not None
