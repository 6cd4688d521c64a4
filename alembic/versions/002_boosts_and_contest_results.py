"""Boost completions and contest prize results.

Revision ID: 002_boosts_and_contest_results
Revises: 001_progression_tables
Create Date: 2026-10-18
"""

from collections.abc import Sequence

from alembic import op

revision: str = "002_boosts_and_contest_results"
down_revision: str | None = "001_progression_tables"
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None


def upgrade() -> None:
    op.execute("""
        CREATE TABLE IF NOT EXISTS completed_boosts (
            id BIGSERIAL PRIMARY KEY,
            user_id VARCHAR(64) NOT NULL,
            boost_id VARCHAR(32) NOT NULL,
            completed_at TIMESTAMPTZ NOT NULL DEFAULT NOW()
        )
    """)
    op.execute("""
        CREATE INDEX IF NOT EXISTS idx_completed_boosts_user_time
        ON completed_boosts (user_id, completed_at)
    """)

    op.execute("""
        CREATE TABLE IF NOT EXISTS contest_results (
            id BIGSERIAL PRIMARY KEY,
            contest_id VARCHAR(32) NOT NULL REFERENCES contests(id) ON DELETE CASCADE,
            user_id VARCHAR(64) NOT NULL,
            rank INTEGER NOT NULL CHECK (rank >= 1),
            fuel_points INTEGER NOT NULL,
            status VARCHAR(16) NOT NULL CHECK (status IN ('Legend', 'Hero', 'Commander')),
            multiplier INTEGER NOT NULL,
            credit_refunded BOOLEAN NOT NULL DEFAULT FALSE,
            pool_share DOUBLE PRECISION NOT NULL DEFAULT 0,
            settled_at TIMESTAMPTZ NOT NULL DEFAULT NOW(),
            CONSTRAINT contest_results_contest_user_key UNIQUE (contest_id, user_id)
        )
    """)


def downgrade() -> None:
    op.execute("DROP TABLE IF EXISTS contest_results CASCADE")
    op.execute("DROP TABLE IF EXISTS completed_boosts CASCADE")
