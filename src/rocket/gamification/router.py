"""Progression API endpoints: streak, boosts, tiers, activities, levels."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Path, Query, status

from rocket.auth.dependencies import get_current_user_id
from rocket.dependencies import get_dispatcher, get_store
from rocket.errors import NotFoundError
from rocket.events.dispatcher import EventDispatcher
from rocket.gamification.activities import ActivityKind
from rocket.gamification.boost_service import complete_boost, get_boost_status
from rocket.gamification.levels import compute_level, next_level_points
from rocket.gamification.progression import ActivityProgress
from rocket.gamification.progression_service import (
    cancel_activity,
    complete_activity,
    get_next_window,
    get_tier_status,
    list_activities_for_user,
    start_activity,
)
from rocket.gamification.schemas import (
    ActivityItem,
    ActivityListResponse,
    BoostCompletionResponse,
    BoostItem,
    BoostStatusResponse,
    CompletionResponse,
    LevelResponse,
    ProgressResponse,
    StreakChange,
    StreakResponse,
    TierStatusResponse,
    UserLevelResponse,
    WindowResponse,
)
from rocket.gamification.seed import CATEGORIES
from rocket.gamification.streak_service import get_streak_summary
from rocket.store.interfaces import Store

router = APIRouter(prefix="/api/v1", tags=["Progression"])


def _progress_response(progress: ActivityProgress) -> ProgressResponse:
    return ProgressResponse(
        activity_id=progress.activity_id,
        kind=progress.kind.value,
        count_completed=progress.count_completed,
        count_required=progress.count_required,
        percent=round(progress.percent, 2),
        started_at=progress.started_at,
        completed_at=progress.completed_at,
    )


# ── Streak ──


@router.get("/streak", response_model=StreakResponse)
async def get_streak(
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    """Current burn streak and the next milestone bonus."""
    return StreakResponse(**await get_streak_summary(store, user_id))


# ── Boosts ──


@router.get("/boosts", response_model=BoostStatusResponse)
async def get_boosts(
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    """Boost catalog with this week's completions and today's count."""
    summary = await get_boost_status(store, user_id)
    return BoostStatusResponse(
        boosts=[
            BoostItem(
                id=item["boost"].id,
                name=item["boost"].name,
                category=item["boost"].category,
                tier=item["boost"].tier,
                fuel_points=item["boost"].fuel_points,
                unlocked=item["unlocked"],
                completed_this_week=item["completed_this_week"],
            )
            for item in summary["boosts"]
        ],
        boosts_today=summary["boosts_today"],
        max_daily_boosts=summary["max_daily_boosts"],
        days_until_reset=summary["days_until_reset"],
    )


@router.post("/boosts/{boost_id}/complete", response_model=BoostCompletionResponse)
async def post_complete_boost(
    boost_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Complete a boost. This is the streak's qualifying action.

    Returns 200 with status "already_completed_today" once the daily limit
    is reached, or "cooldown" for a boost already done this week.
    """
    outcome = await complete_boost(store, user_id, boost_id)
    await dispatcher.dispatch(outcome.events)
    update = outcome.streak
    return BoostCompletionResponse(
        boost_id=outcome.boost.id,
        fp_earned=outcome.fp_earned,
        boosts_today=outcome.boosts_today,
        streak=StreakChange(
            current_length=update.streak.current_length,
            changed=update.changed,
            reward=update.reward,
            next_milestone_days=update.next_milestone.days_remaining,
            next_milestone_reward=update.next_milestone.reward,
        ),
    )


# ── Tiers & catalog ──


@router.get("/tiers/{category}", response_model=TierStatusResponse)
async def get_tiers(
    category: str,
    kind: ActivityKind = Query(ActivityKind.CHALLENGE),
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    """Highest unlocked tier for a health category."""
    if category.lower() not in {c.lower() for c in CATEGORIES}:
        raise NotFoundError(f"Unknown category: {category}")
    gate = await get_tier_status(store, user_id, category, kind)
    return TierStatusResponse(category=gate.category, kind=kind.value, tier_unlocked=gate.tier_unlocked)


@router.get("/activities", response_model=ActivityListResponse)
async def get_activities(
    kind: ActivityKind | None = Query(None),
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    """Activity catalog with unlock state for the current user."""
    items = await list_activities_for_user(store, user_id, kind)
    activities = []
    for item in items:
        a = item["activity"]
        progress = item["progress"]
        activities.append(ActivityItem(
            id=a.id,
            name=a.name,
            kind=a.kind.value,
            category=a.category,
            tier=a.tier,
            duration_days=a.duration_days,
            required_count=a.required_count,
            fuel_points=a.fuel_points,
            cadence=a.cadence.value,
            unlocked=item["unlocked"],
            completed=item["completed"],
            in_progress=progress is not None and not progress.is_completed,
            count_completed=progress.count_completed if progress else None,
        ))
    return ActivityListResponse(activities=activities)


# ── Activity progress ──


@router.post(
    "/activities/{activity_id}/start",
    response_model=ProgressResponse,
    status_code=status.HTTP_201_CREATED,
)
async def post_start_activity(
    activity_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    """Start a challenge or quest the user has unlocked."""
    progress = await start_activity(store, user_id, activity_id)
    return _progress_response(progress)


@router.post("/activities/{activity_id}/complete", response_model=CompletionResponse)
async def post_complete_activity(
    activity_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
    dispatcher: EventDispatcher = Depends(get_dispatcher),
):
    """Record today's (or this week's) action for a started activity.

    Returns 200 with status "already_completed_today" or "cooldown" when the
    cadence window is closed.
    """
    outcome = await complete_activity(store, user_id, activity_id)
    await dispatcher.dispatch(outcome.events)
    return CompletionResponse(
        status="completed" if outcome.completed else "recorded",
        progress=_progress_response(outcome.progress),
        fp_earned=outcome.fp_earned,
    )


@router.delete("/activities/{activity_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_activity(
    activity_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    """Cancel an in-progress challenge or quest."""
    await cancel_activity(store, user_id, activity_id)


@router.get("/activities/{activity_id}/window", response_model=WindowResponse)
async def get_activity_window(
    activity_id: str,
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    """Days until the next weekly quest action is accepted."""
    days = await get_next_window(store, user_id, activity_id)
    return WindowResponse(activity_id=activity_id, days_until_next_window=days, is_open=days == 0)


# ── Levels ──


@router.get("/levels/{level}", response_model=LevelResponse)
async def get_level(level: int = Path(ge=1, le=200)):
    """Fuel points needed to clear a level."""
    return LevelResponse(level=level, next_level_points=next_level_points(level))


@router.get("/level", response_model=UserLevelResponse)
async def get_my_level(
    user_id: str = Depends(get_current_user_id),
    store: Store = Depends(get_store),
):
    """Current user's level from lifetime fuel points."""
    total = await store.get_total_fuel_points(user_id)
    return UserLevelResponse(total_fp=total, **compute_level(total))
