"""Pydantic request/response models for progression endpoints."""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field


# --- Streak ---


class StreakResponse(BaseModel):
    current_length: int
    last_qualifying_date: date | None = None
    next_milestone_days: int
    next_milestone_reward: int
    progress: float


class StreakChange(BaseModel):
    current_length: int
    changed: bool
    reward: int | None = None
    next_milestone_days: int
    next_milestone_reward: int


# --- Boosts ---


class BoostItem(BaseModel):
    id: str
    name: str
    category: str
    tier: int
    fuel_points: int
    unlocked: bool
    completed_this_week: bool


class BoostStatusResponse(BaseModel):
    boosts: list[BoostItem]
    boosts_today: int
    max_daily_boosts: int
    days_until_reset: int


class BoostCompletionResponse(BaseModel):
    boost_id: str
    fp_earned: int
    boosts_today: int
    streak: StreakChange


# --- Tiers / catalog ---


class TierStatusResponse(BaseModel):
    category: str
    kind: str
    tier_unlocked: int


class ActivityItem(BaseModel):
    id: str
    name: str
    kind: str
    category: str
    tier: int
    duration_days: int
    required_count: int
    fuel_points: int
    cadence: str
    unlocked: bool
    completed: bool
    in_progress: bool = False
    count_completed: int | None = None


class ActivityListResponse(BaseModel):
    activities: list[ActivityItem]


# --- Progress ---


class ProgressResponse(BaseModel):
    activity_id: str
    kind: str
    count_completed: int
    count_required: int
    percent: float
    started_at: datetime
    completed_at: datetime | None = None


class CompletionResponse(BaseModel):
    status: str = Field(description="recorded or completed")
    progress: ProgressResponse
    fp_earned: int = 0


class WindowResponse(BaseModel):
    activity_id: str
    days_until_next_window: int
    is_open: bool


# --- Levels ---


class LevelResponse(BaseModel):
    level: int
    next_level_points: int


class UserLevelResponse(BaseModel):
    total_fp: int
    level: int
    fp_into_level: int
    fp_for_level: int
    next_level: int
    progress: float
