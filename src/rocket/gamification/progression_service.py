"""Challenge and quest progression: start, complete, cancel, tier status."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime

from rocket.config import get_settings
from rocket.day_utils import utcnow
from rocket.errors import InvalidStateError, NotEligibleError, NotFoundError
from rocket.events.dispatcher import EventType, ProgressionEvent
from rocket.gamification.activities import ActivityDetails, ActivityKind
from rocket.gamification.progression import (
    ActivityProgress,
    days_until_next_window,
    record_completion_event,
)
from rocket.gamification.tiers import TierGateStatus, is_activity_unlocked, tier_status
from rocket.store.interfaces import Store

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionOutcome:
    progress: ActivityProgress
    completed: bool
    fp_earned: int = 0
    events: list[ProgressionEvent] = field(default_factory=list)


async def _require_activity(store: Store, activity_id: str) -> ActivityDetails:
    activity = await store.get_activity_details(activity_id)
    if activity is None:
        raise NotFoundError(f"Activity {activity_id} not found")
    return activity


async def get_tier_status(
    store: Store,
    user_id: str,
    category: str,
    kind: ActivityKind = ActivityKind.CHALLENGE,
) -> TierGateStatus:
    """Tier gate status for one category of challenges or quests."""
    completed = await store.list_completed_activity_ids(user_id)
    catalog = await store.list_activities(kind=kind, category=category)
    return tier_status(category, completed, catalog, get_settings().morning_basics_activity_id)


async def list_activities_for_user(
    store: Store,
    user_id: str,
    kind: ActivityKind | None = None,
) -> list[dict]:
    """Catalog entries with unlock and progress flags for one user."""
    tier0_id = get_settings().morning_basics_activity_id
    completed = await store.list_completed_activity_ids(user_id)
    progress_by_id = {p.activity_id: p for p in await store.list_activity_progress(user_id)}
    all_activities = await store.list_activities()
    activities = [a for a in all_activities if kind is None or a.kind == kind]

    # Tier 2 of challenges is gated by challenges only, quests by quests
    by_kind: dict[ActivityKind, list[ActivityDetails]] = {}
    for a in all_activities:
        by_kind.setdefault(a.kind, []).append(a)

    items = []
    for activity in activities:
        progress = progress_by_id.get(activity.id)
        items.append({
            "activity": activity,
            "unlocked": is_activity_unlocked(
                activity, completed, by_kind.get(activity.kind, []), tier0_id
            ),
            "completed": activity.id in completed,
            "progress": progress,
        })
    return items


async def start_activity(
    store: Store,
    user_id: str,
    activity_id: str,
    now: datetime | None = None,
) -> ActivityProgress:
    """Start a challenge or quest. Raises NotEligibleError when it is locked."""
    if now is None:
        now = utcnow()

    activity = await _require_activity(store, activity_id)
    if activity.kind == ActivityKind.CONTEST:
        raise NotEligibleError("Contests are joined by registering for a contest")

    existing = await store.get_activity_progress(user_id, activity_id)
    if existing is not None:
        if existing.is_completed:
            raise NotEligibleError(f"{activity.name} is already completed")
        raise NotEligibleError(f"{activity.name} is already in progress")

    completed = await store.list_completed_activity_ids(user_id)
    if activity.id in completed:
        raise NotEligibleError(f"{activity.name} is already completed")

    catalog = await store.list_activities(kind=activity.kind)
    if not is_activity_unlocked(
        activity, completed, catalog, get_settings().morning_basics_activity_id
    ):
        raise NotEligibleError(
            f"Tier {activity.tier} {activity.category} {activity.kind.value}s are locked"
        )

    progress = ActivityProgress(
        activity_id=activity.id,
        user_id=user_id,
        kind=activity.kind,
        count_completed=0,
        count_required=activity.required_count,
        started_at=now,
    )
    await store.upsert_activity_progress(progress)
    await store.commit()
    logger.info("User %s started %s %s", user_id, activity.kind.value, activity.id)
    return progress


async def complete_activity(
    store: Store,
    user_id: str,
    activity_id: str,
    now: datetime | None = None,
) -> CompletionOutcome:
    """Record one daily or weekly action for a started activity.

    Raises AlreadyCompletedTodayError / CooldownActiveError when the cadence
    window is closed and InvalidStateError once the activity is completed.
    """
    if now is None:
        now = utcnow()

    activity = await _require_activity(store, activity_id)
    progress = await store.get_activity_progress(user_id, activity_id)
    if progress is None:
        raise NotFoundError(f"Activity {activity_id} has not been started")

    last = await store.get_last_completion(user_id, activity_id)
    result = record_completion_event(
        progress,
        now=now,
        cadence=activity.cadence,
        last_completion_at=last,
        cooldown_days=get_settings().weekly_cooldown_days,
    )

    await store.add_completion(user_id, activity_id, now)
    await store.upsert_activity_progress(result.progress)

    events: list[ProgressionEvent] = []
    fp_earned = 0
    if result.completed:
        fp_earned = activity.fuel_points
        await store.record_completed_activity(user_id, activity_id, fp_earned, now)
        await store.add_fuel_points(user_id, fp_earned, activity.kind.value, activity_id)
        events.append(
            ProgressionEvent(
                type=EventType.ACTIVITY_COMPLETED,
                user_id=user_id,
                payload={
                    "activity_id": activity_id,
                    "kind": activity.kind.value,
                    "fuel_points": fp_earned,
                },
            )
        )
        logger.info("User %s completed %s (+%d FP)", user_id, activity_id, fp_earned)

    await store.commit()
    return CompletionOutcome(
        progress=result.progress,
        completed=result.completed,
        fp_earned=fp_earned,
        events=events,
    )


async def cancel_activity(store: Store, user_id: str, activity_id: str) -> None:
    """Drop an in-progress activity. Completed activities are history and stay."""
    progress = await store.get_activity_progress(user_id, activity_id)
    if progress is None:
        raise NotFoundError(f"Activity {activity_id} has not been started")
    if progress.is_completed:
        raise InvalidStateError(f"Cannot cancel completed activity {activity_id}")

    await store.delete_activity_progress(user_id, activity_id)
    await store.commit()
    logger.info("User %s cancelled %s", user_id, activity_id)


async def get_next_window(
    store: Store,
    user_id: str,
    activity_id: str,
    now: datetime | None = None,
) -> int:
    """Days until the next weekly action can be recorded (0 when open)."""
    if now is None:
        now = utcnow()
    await _require_activity(store, activity_id)
    last = await store.get_last_completion(user_id, activity_id)
    return days_until_next_window(last, now, get_settings().weekly_cooldown_days)
