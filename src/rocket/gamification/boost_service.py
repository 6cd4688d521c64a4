"""Boost completion: enforce the weekly and daily limits, pay FP, advance the streak."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from rocket.day_utils import ensure_aware, to_reference_date, utcnow
from rocket.events.dispatcher import EventType, ProgressionEvent
from rocket.gamification.boosts import (
    BOOSTS,
    MAX_DAILY_BOOSTS,
    Boost,
    boost_week_start,
    check_boost,
    completed_on,
    days_until_reset,
    get_boost,
    tier2_unlocked,
)
from rocket.gamification.streak_service import StreakUpdate, apply_qualifying_action
from rocket.store.interfaces import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class BoostOutcome:
    boost: Boost
    fp_earned: int
    boosts_today: int
    streak: StreakUpdate
    events: list[ProgressionEvent] = field(default_factory=list)


async def complete_boost(
    store: Store,
    user_id: str,
    boost_id: str,
    now: datetime | None = None,
) -> BoostOutcome:
    """Complete one boost for the user.

    Raises NotEligibleError for a locked tier 2 boost, CooldownActiveError
    when the boost was already done this week and AlreadyCompletedTodayError
    once the daily limit is reached. The completion, its fuel points and the
    streak change are committed together.
    """
    if now is None:
        now = utcnow()
    now = ensure_aware(now)

    boost = get_boost(boost_id)
    week = await store.list_boost_completions(user_id, boost_week_start(now))
    check_boost(boost, week, now)

    try:
        await store.add_boost_completion(user_id, boost.id, now)
        source_id = f"{boost.id}:{to_reference_date(now).isoformat()}"
        await store.add_fuel_points(user_id, boost.fuel_points, "boost", source_id)
        streak = await apply_qualifying_action(store, user_id, now)
        await store.commit()
    except Exception:
        await store.rollback()
        raise

    logger.info("User %s completed boost %s (+%d FP)", user_id, boost.id, boost.fuel_points)
    events = [
        ProgressionEvent(
            type=EventType.BOOST_COMPLETED,
            user_id=user_id,
            payload={"boost_id": boost.id, "fuel_points": boost.fuel_points},
        ),
        *streak.events,
    ]
    return BoostOutcome(
        boost=boost,
        fp_earned=boost.fuel_points,
        boosts_today=len(completed_on(week, to_reference_date(now))) + 1,
        streak=streak,
        events=events,
    )


async def get_boost_status(
    store: Store,
    user_id: str,
    now: datetime | None = None,
) -> dict:
    """The catalog with this week's state for the user."""
    if now is None:
        now = utcnow()
    now = ensure_aware(now)

    week = await store.list_boost_completions(user_id, boost_week_start(now))
    done = {c.boost_id for c in week}
    today = len(completed_on(week, to_reference_date(now)))

    boosts = []
    for boost in BOOSTS.values():
        boosts.append({
            "boost": boost,
            "completed_this_week": boost.id in done,
            "unlocked": boost.tier == 1 or tier2_unlocked(boost.category, week),
        })
    return {
        "boosts": boosts,
        "boosts_today": today,
        "max_daily_boosts": MAX_DAILY_BOOSTS,
        "days_until_reset": days_until_reset(now),
    }
