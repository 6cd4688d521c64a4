"""Progression tables.

Creates the activity catalog, per-user progress, completions, streaks, the
fuel point ledger, contests with registrations and entry credits, community
membership, monthly leaderboard snapshots and prize points.

Revision ID: 001_progression_tables
Revises:
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "001_progression_tables"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    # --- Catalog ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS activities (
            id VARCHAR(32) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            kind VARCHAR(16) NOT NULL CHECK (kind IN ('challenge', 'quest', 'contest')),
            category VARCHAR(32) NOT NULL,
            tier INTEGER NOT NULL CHECK (tier BETWEEN 0 AND 2),
            duration_days INTEGER NOT NULL,
            required_count INTEGER NOT NULL CHECK (required_count > 0),
            fuel_points INTEGER NOT NULL,
            cadence VARCHAR(16) NOT NULL DEFAULT 'daily'
                CHECK (cadence IN ('daily', 'weekly', 'verification')),
            sort_order INTEGER NOT NULL DEFAULT 0,
            is_active BOOLEAN NOT NULL DEFAULT true
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_activities_kind_category
        ON activities(kind, lower(category), tier)
    """)

    # --- Progress ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS activity_progress (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            activity_id VARCHAR(32) NOT NULL REFERENCES activities(id),
            kind VARCHAR(16) NOT NULL,
            count_completed INTEGER NOT NULL DEFAULT 0 CHECK (count_completed >= 0),
            count_required INTEGER NOT NULL CHECK (count_required > 0),
            started_at TIMESTAMPTZ NOT NULL,
            completed_at TIMESTAMPTZ,
            CONSTRAINT activity_progress_user_activity_key UNIQUE (user_id, activity_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS activity_completions (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            activity_id VARCHAR(32) NOT NULL,
            completed_on DATE NOT NULL,
            completed_at TIMESTAMPTZ NOT NULL
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_activity_completions_user_activity
        ON activity_completions(user_id, activity_id, completed_at)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS completed_activities (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            activity_id VARCHAR(32) NOT NULL,
            fp_earned INTEGER NOT NULL DEFAULT 0,
            completed_at TIMESTAMPTZ NOT NULL,
            CONSTRAINT completed_activities_user_activity_key UNIQUE (user_id, activity_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_streaks (
            user_id VARCHAR(64) PRIMARY KEY,
            current_length INTEGER NOT NULL DEFAULT 0 CHECK (current_length >= 0),
            longest_length INTEGER NOT NULL DEFAULT 0,
            last_qualifying_date DATE,
            updated_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS fuel_point_ledger (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            amount INTEGER NOT NULL,
            source VARCHAR(32) NOT NULL,
            source_id VARCHAR(128),
            created_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_fp_ledger_user_created
        ON fuel_point_ledger(user_id, created_at)
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS user_profiles (
            user_id VARCHAR(64) PRIMARY KEY,
            display_name VARCHAR(64),
            plan VARCHAR(32) NOT NULL DEFAULT 'free',
            level INTEGER NOT NULL DEFAULT 1
        )
    """)

    # --- Contests ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS contests (
            id VARCHAR(32) PRIMARY KEY,
            name VARCHAR(128) NOT NULL,
            start_date TIMESTAMPTZ NOT NULL,
            registration_end_date TIMESTAMPTZ NOT NULL,
            duration_days INTEGER NOT NULL,
            entry_fee_credits INTEGER NOT NULL DEFAULT 1,
            min_players INTEGER NOT NULL DEFAULT 4,
            max_players INTEGER,
            community_id VARCHAR(64),
            verifications_required INTEGER,
            settled_at TIMESTAMPTZ
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS contest_registrations (
            id BIGSERIAL PRIMARY KEY,
            contest_id VARCHAR(32) NOT NULL REFERENCES contests(id) ON DELETE CASCADE,
            user_id VARCHAR(64) NOT NULL,
            status VARCHAR(16) NOT NULL DEFAULT 'pending',
            verification_count INTEGER NOT NULL DEFAULT 0,
            verifications_required INTEGER NOT NULL,
            credit_consumed BOOLEAN NOT NULL DEFAULT false,
            registered_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            completed_at TIMESTAMPTZ,
            CONSTRAINT contest_registrations_contest_user_key UNIQUE (contest_id, user_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS entry_credits (
            user_id VARCHAR(64) PRIMARY KEY,
            balance INTEGER NOT NULL DEFAULT 0 CHECK (balance >= 0)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS community_members (
            id BIGSERIAL PRIMARY KEY,
            community_id VARCHAR(64) NOT NULL,
            user_id VARCHAR(64) NOT NULL,
            CONSTRAINT community_members_community_user_key UNIQUE (community_id, user_id)
        )
    """)

    # --- Leaderboard history ---
    op.execute("""
        CREATE TABLE IF NOT EXISTS leaderboard_snapshots (
            id BIGSERIAL PRIMARY KEY,
            scope_key VARCHAR(80) NOT NULL,
            year INTEGER NOT NULL,
            month INTEGER NOT NULL,
            user_id VARCHAR(64) NOT NULL,
            rank INTEGER NOT NULL,
            total_fp INTEGER NOT NULL,
            status VARCHAR(16) NOT NULL,
            multiplier INTEGER NOT NULL,
            snapshot_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT lb_snapshots_scope_month_user_key UNIQUE (scope_key, year, month, user_id)
        )
    """)
    op.execute("""
        CREATE TABLE IF NOT EXISTS prize_points (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            year INTEGER NOT NULL,
            month INTEGER NOT NULL,
            status VARCHAR(16) NOT NULL,
            prize_points INTEGER NOT NULL,
            awarded_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT prize_points_user_month_key UNIQUE (user_id, year, month)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS prize_points CASCADE")
    op.execute("DROP TABLE IF EXISTS leaderboard_snapshots CASCADE")
    op.execute("DROP TABLE IF EXISTS community_members CASCADE")
    op.execute("DROP TABLE IF EXISTS entry_credits CASCADE")
    op.execute("DROP TABLE IF EXISTS contest_registrations CASCADE")
    op.execute("DROP TABLE IF EXISTS contests CASCADE")
    op.execute("DROP TABLE IF EXISTS user_profiles CASCADE")
    op.execute("DROP TABLE IF EXISTS fuel_point_ledger CASCADE")
    op.execute("DROP TABLE IF EXISTS user_streaks CASCADE")
    op.execute("DROP TABLE IF EXISTS completed_activities CASCADE")
    op.execute("DROP TABLE IF EXISTS activity_completions CASCADE")
    op.execute("DROP TABLE IF EXISTS activity_progress CASCADE")
    op.execute("DROP TABLE IF EXISTS activities CASCADE")
