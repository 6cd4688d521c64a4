"""ORM models for the progression tables (see alembic/versions)."""

from __future__ import annotations

from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column

from rocket.db.base import Base


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------


class Activity(Base):
    """Challenges, quests and contest programs. Seeded on startup."""

    __tablename__ = "activities"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    category: Mapped[str] = mapped_column(String(32), nullable=False)
    tier: Mapped[int] = mapped_column(Integer, nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    required_count: Mapped[int] = mapped_column(Integer, nullable=False)
    fuel_points: Mapped[int] = mapped_column(Integer, nullable=False)
    cadence: Mapped[str] = mapped_column(String(16), nullable=False, server_default="daily")
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="true")


# ---------------------------------------------------------------------------
# Progress
# ---------------------------------------------------------------------------


class ActivityProgressRow(Base):
    """Per-user counter for a started challenge, quest or contest program."""

    __tablename__ = "activity_progress"
    __table_args__ = (
        UniqueConstraint("user_id", "activity_id", name="activity_progress_user_activity_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    activity_id: Mapped[str] = mapped_column(String(32), ForeignKey("activities.id"), nullable=False)
    kind: Mapped[str] = mapped_column(String(16), nullable=False)
    count_completed: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    count_required: Mapped[int] = mapped_column(Integer, nullable=False)
    started_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ActivityCompletion(Base):
    """One qualifying daily or weekly action."""

    __tablename__ = "activity_completions"
    __table_args__ = (
        Index("idx_activity_completions_user_activity", "user_id", "activity_id", "completed_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    activity_id: Mapped[str] = mapped_column(String(32), nullable=False)
    completed_on: Mapped[date] = mapped_column(Date, nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class BoostCompletionRow(Base):
    """One completed boost. Weekly and daily limits are read from these rows."""

    __tablename__ = "completed_boosts"
    __table_args__ = (
        Index("idx_completed_boosts_user_time", "user_id", "completed_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    boost_id: Mapped[str] = mapped_column(String(32), nullable=False)
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class CompletedActivity(Base):
    """Historical record of a finished activity. One row per (user, activity)."""

    __tablename__ = "completed_activities"
    __table_args__ = (
        UniqueConstraint("user_id", "activity_id", name="completed_activities_user_activity_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    activity_id: Mapped[str] = mapped_column(String(32), nullable=False)
    fp_earned: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    completed_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class UserStreakRow(Base):
    """Burn streak, single row per user."""

    __tablename__ = "user_streaks"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    current_length: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    longest_length: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    last_qualifying_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, server_default=text("NOW()")
    )


class FuelPointLedger(Base):
    """Immutable FP transaction log. Leaderboards sum over this."""

    __tablename__ = "fuel_point_ledger"
    __table_args__ = (
        Index("idx_fp_ledger_user_created", "user_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    amount: Mapped[int] = mapped_column(Integer, nullable=False)
    source: Mapped[str] = mapped_column(String(32), nullable=False)
    source_id: Mapped[str | None] = mapped_column(String(128), nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class UserProfile(Base):
    """Plan and level, maintained by the account service."""

    __tablename__ = "user_profiles"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(64), nullable=True)
    plan: Mapped[str] = mapped_column(String(32), nullable=False, server_default="free")
    level: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")


# ---------------------------------------------------------------------------
# Contests
# ---------------------------------------------------------------------------


class ContestRow(Base):
    """Fee-gated competitive challenge."""

    __tablename__ = "contests"

    id: Mapped[str] = mapped_column(String(32), primary_key=True)
    name: Mapped[str] = mapped_column(String(128), nullable=False)
    start_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    registration_end_date: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    duration_days: Mapped[int] = mapped_column(Integer, nullable=False)
    entry_fee_credits: Mapped[int] = mapped_column(Integer, nullable=False, server_default="1")
    min_players: Mapped[int] = mapped_column(Integer, nullable=False, server_default="4")
    max_players: Mapped[int | None] = mapped_column(Integer, nullable=True)
    community_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    verifications_required: Mapped[int | None] = mapped_column(Integer, nullable=True)
    settled_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ContestRegistrationRow(Base):
    """A user's entry in a contest. UNIQUE(contest_id, user_id)."""

    __tablename__ = "contest_registrations"
    __table_args__ = (
        UniqueConstraint("contest_id", "user_id", name="contest_registrations_contest_user_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    contest_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("contests.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False, server_default="pending")
    verification_count: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")
    verifications_required: Mapped[int] = mapped_column(Integer, nullable=False)
    credit_consumed: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    registered_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)


class ContestResultRow(Base):
    """Prize tier of a finisher at contest settlement. UNIQUE(contest_id, user_id)."""

    __tablename__ = "contest_results"
    __table_args__ = (
        UniqueConstraint("contest_id", "user_id", name="contest_results_contest_user_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    contest_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("contests.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    fuel_points: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    multiplier: Mapped[int] = mapped_column(Integer, nullable=False)
    credit_refunded: Mapped[bool] = mapped_column(Boolean, nullable=False, server_default="false")
    pool_share: Mapped[float] = mapped_column(Float, nullable=False, server_default="0")
    settled_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class EntryCredits(Base):
    """Contest entry credit balance, single row per user."""

    __tablename__ = "entry_credits"

    user_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    balance: Mapped[int] = mapped_column(Integer, nullable=False, server_default="0")


class CommunityMember(Base):
    __tablename__ = "community_members"
    __table_args__ = (
        UniqueConstraint("community_id", "user_id", name="community_members_community_user_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    community_id: Mapped[str] = mapped_column(String(64), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)


# ---------------------------------------------------------------------------
# Leaderboard history
# ---------------------------------------------------------------------------


class LeaderboardSnapshot(Base):
    """Monthly rank and status per scope."""

    __tablename__ = "leaderboard_snapshots"
    __table_args__ = (
        UniqueConstraint(
            "scope_key", "year", "month", "user_id", name="lb_snapshots_scope_month_user_key"
        ),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    scope_key: Mapped[str] = mapped_column(String(80), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    rank: Mapped[int] = mapped_column(Integer, nullable=False)
    total_fp: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    multiplier: Mapped[int] = mapped_column(Integer, nullable=False)
    snapshot_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)


class PrizePoints(Base):
    """Prize points awarded at monthly settlement. UNIQUE(user_id, year, month)."""

    __tablename__ = "prize_points"
    __table_args__ = (
        UniqueConstraint("user_id", "year", "month", name="prize_points_user_month_key"),
    )

    id: Mapped[int] = mapped_column(BigInteger, primary_key=True, autoincrement=True)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
    year: Mapped[int] = mapped_column(Integer, nullable=False)
    month: Mapped[int] = mapped_column(Integer, nullable=False)
    status: Mapped[str] = mapped_column(String(16), nullable=False)
    prize_points: Mapped[int] = mapped_column(Integer, nullable=False)
    awarded_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
