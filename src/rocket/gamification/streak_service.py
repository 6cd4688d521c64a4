"""Burn streak persistence: apply qualifying actions and pay milestone bonuses."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from rocket.day_utils import utcnow
from rocket.events.dispatcher import EventType, ProgressionEvent
from rocket.gamification.streaks import (
    Milestone,
    UserStreak,
    advance_streak,
    milestone_progress,
    milestone_reward,
    next_milestone,
)
from rocket.store.interfaces import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StreakUpdate:
    streak: UserStreak
    changed: bool
    reward: int | None
    next_milestone: Milestone
    events: list[ProgressionEvent] = field(default_factory=list)


async def get_streak_summary(store: Store, user_id: str) -> dict:
    """Current streak with the next milestone and progress toward it."""
    streak = await store.get_user_streak(user_id)
    upcoming = next_milestone(streak.current_length)
    return {
        "current_length": streak.current_length,
        "last_qualifying_date": streak.last_qualifying_date,
        "next_milestone_days": upcoming.days_remaining,
        "next_milestone_reward": upcoming.reward,
        "progress": round(milestone_progress(streak.current_length), 2),
    }


async def apply_qualifying_action(
    store: Store,
    user_id: str,
    action_at: datetime,
) -> StreakUpdate:
    """Stage the streak change for one qualifying action without committing.

    A milestone bonus is paid only on the day the streak length changes to a
    milestone length; repeated actions on the same day never pay twice.
    """
    current = await store.get_user_streak(user_id)
    updated = advance_streak(current, action_at)

    if updated == current:
        return StreakUpdate(
            streak=current,
            changed=False,
            reward=None,
            next_milestone=next_milestone(current.current_length),
        )

    await store.set_user_streak(user_id, updated)
    events = [
        ProgressionEvent(
            type=EventType.STREAK_ADVANCED,
            user_id=user_id,
            payload={
                "previous_length": current.current_length,
                "current_length": updated.current_length,
            },
        )
    ]

    reward = milestone_reward(updated.current_length)
    if reward is not None:
        source_id = f"{updated.current_length}:{updated.last_qualifying_date.isoformat()}"
        await store.add_fuel_points(user_id, reward, "streak_milestone", source_id)
        events.append(
            ProgressionEvent(
                type=EventType.STREAK_MILESTONE,
                user_id=user_id,
                payload={"streak_length": updated.current_length, "reward": reward},
            )
        )
        logger.info(
            "User %s reached a %d-day streak (+%d FP)", user_id, updated.current_length, reward
        )

    return StreakUpdate(
        streak=updated,
        changed=True,
        reward=reward,
        next_milestone=next_milestone(updated.current_length),
        events=events,
    )


async def record_qualifying_action(
    store: Store,
    user_id: str,
    action_at: datetime | None = None,
) -> StreakUpdate:
    """Advance the user's streak for one qualifying action and persist it."""
    if action_at is None:
        action_at = utcnow()

    try:
        update = await apply_qualifying_action(store, user_id, action_at)
        await store.commit()
    except Exception:
        await store.rollback()
        raise
    return update
