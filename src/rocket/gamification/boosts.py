"""Boost catalog and the rules for completing a boost.

Boosts are small daily habits and the burn streak's qualifying action.
Each category has six tier 1 boosts (1 to 6 FP) and three tier 2 boosts
(7 to 9 FP). Rules, checked in this order:

- a tier 2 boost unlocks once a tier 1 boost of the same category has been
  completed this week
- a boost completed this week cannot be repeated until the weekly reset
  (Sunday 00:00 in the reference zone)
- at most MAX_DAILY_BOOSTS boosts per reference-zone day
"""

from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime, timedelta

from rocket.day_utils import reference_midnight, to_reference_date
from rocket.errors import (
    AlreadyCompletedTodayError,
    CooldownActiveError,
    NotEligibleError,
    NotFoundError,
)

MAX_DAILY_BOOSTS = 3
WEEK_DAYS = 7


@dataclass(frozen=True)
class Boost:
    id: str
    name: str
    category: str
    tier: int
    fuel_points: int


@dataclass(frozen=True)
class BoostCompletion:
    user_id: str
    boost_id: str
    completed_at: datetime


_NAMES: dict[str, tuple[str, ...]] = {
    "mindset": (
        "5 Minute Meditation",
        "Gratitude Journaling",
        "Morning Intention Setting",
        "Deep Breathing Exercise",
        "Positive Affirmations",
        "Digital Detox Break",
        "15 Minute Guided Meditation",
        "Focused Reading Session",
        "Visualization Practice",
    ),
    "sleep": (
        "Morning Sunlight",
        "Evening Screen Reduction",
        "Consistent Sleep Schedule",
        "Bedroom Temperature",
        "Sleep Tracker Review",
        "PM Caffeine Elimination",
        "Evening Wind-Down",
        "Sleep Environment Optimization",
        "Progressive Relaxation",
    ),
    "exercise": (
        "Morning Movement",
        "Posture Reset",
        "Walking Break",
        "Micro-Workout",
        "Joint Mobility",
        "Desk Mobility Break",
        "Zone 2 Cardio",
        "Strength Circuit",
        "Mobility Flow",
    ),
    "nutrition": (
        "Water First",
        "Protein-First Meal",
        "Daily Vegetable Intake",
        "Hydration Tracking",
        "Meal Logging",
        "Sugar Elimination",
        "Meal Preparation",
        "Mindful Eating",
        "Glucose Optimization",
    ),
    "biohacking": (
        "Cold Exposure",
        "HRV Measurement",
        "Light Optimization",
        "Breathwork Session",
        "Recovery Tracking",
        "EMF Reduction",
        "Red Light Therapy",
        "Heat Exposure",
        "Biomarker Review",
    ),
}

TIER1_PER_CATEGORY = 6


def _build_catalog() -> dict[str, Boost]:
    catalog: dict[str, Boost] = {}
    for category, names in _NAMES.items():
        for idx, name in enumerate(names):
            tier = 1 if idx < TIER1_PER_CATEGORY else 2
            position = idx + 1 if tier == 1 else idx + 1 - TIER1_PER_CATEGORY
            boost = Boost(
                id=f"{category}-t{tier}-{position}",
                name=name,
                category=category,
                tier=tier,
                fuel_points=idx + 1,
            )
            catalog[boost.id] = boost
    return catalog


BOOSTS: dict[str, Boost] = _build_catalog()
CATEGORIES: tuple[str, ...] = tuple(_NAMES)


def get_boost(boost_id: str) -> Boost:
    boost = BOOSTS.get(boost_id)
    if boost is None:
        raise NotFoundError(f"Boost {boost_id} not found")
    return boost


def boost_week_start(now: datetime) -> datetime:
    """Most recent Sunday 00:00 in the reference zone, as aware UTC."""
    today = to_reference_date(now)
    # date.weekday(): Monday 0 .. Sunday 6
    since_sunday = (today.weekday() + 1) % WEEK_DAYS
    return reference_midnight(today - timedelta(days=since_sunday))


def days_until_reset(now: datetime) -> int:
    """Days until the next weekly reset. A full 7 on Sunday itself."""
    today = to_reference_date(now)
    since_sunday = (today.weekday() + 1) % WEEK_DAYS
    return WEEK_DAYS - since_sunday


def completed_on(completions: Sequence[BoostCompletion], day: date) -> list[BoostCompletion]:
    return [c for c in completions if to_reference_date(c.completed_at) == day]


def tier2_unlocked(category: str, week_completions: Sequence[BoostCompletion]) -> bool:
    for c in week_completions:
        done = BOOSTS.get(c.boost_id)
        if done is not None and done.category == category and done.tier == 1:
            return True
    return False


def check_boost(
    boost: Boost,
    week_completions: Sequence[BoostCompletion],
    now: datetime,
) -> None:
    """Raise if `boost` cannot be completed at `now`.

    `week_completions` are the user's completions since the current week
    started.
    """
    if boost.tier > 1 and not tier2_unlocked(boost.category, week_completions):
        raise NotEligibleError(
            f"Complete a tier 1 {boost.category} boost this week to unlock tier 2"
        )
    if any(c.boost_id == boost.id for c in week_completions):
        raise CooldownActiveError(boost.id, days_until_reset(now))
    if len(completed_on(week_completions, to_reference_date(now))) >= MAX_DAILY_BOOSTS:
        raise AlreadyCompletedTodayError(boost.id)
