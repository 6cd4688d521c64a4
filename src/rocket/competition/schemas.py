"""Pydantic response models for contest and leaderboard endpoints."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, Field


# --- Contests ---


class RegistrationResponse(BaseModel):
    contest_id: str
    status: str
    verification_count: int
    verifications_required: int
    credits_remaining: int


class CancelRegistrationResponse(BaseModel):
    contest_id: str
    status: str = "cancelled"
    refunded: bool


class VerificationResponse(BaseModel):
    contest_id: str
    status: str
    completed: bool
    verification_count: int
    verifications_required: int
    completed_at: datetime | None = None


class MyContestItem(BaseModel):
    contest_id: str
    name: str
    status: str
    start_date: datetime
    registration_end_date: datetime
    duration_days: int
    verification_count: int
    verifications_required: int
    days_until_start: int | None = None
    days_remaining: int
    completed_at: datetime | None = None
    prize_status: str | None = Field(None, description="Legend, Hero or Commander once settled")
    multiplier: int | None = None
    credit_refunded: bool = False
    pool_share: float = 0.0


class MyContestsResponse(BaseModel):
    contests: list[MyContestItem]


# --- Leaderboard ---


class LeaderboardEntryResponse(BaseModel):
    user_id: str
    rank: int
    fuel_points: int
    status: str
    multiplier: int


class MyRankResponse(LeaderboardEntryResponse):
    next_tier_progress: float
    is_top_tier: bool


class LeaderboardResponse(BaseModel):
    scope: str
    community_id: str | None = None
    period_start: datetime
    total_players: int
    legend_threshold: int
    hero_threshold: int
    entries: list[LeaderboardEntryResponse]
    me: MyRankResponse | None = None
