"""Settlement arq jobs.

- settle_contests (hourly): finished contests pay fuel points to every
  completed registration, then rank the finishers into prize tiers (Legend
  and Hero get their entry credit back, Legends split the pool share).
  Contests that never reached `min_players` are cancelled and refunded.
- settle_monthly_leaderboards (1st of the month): snapshot last month's rank
  and status for the global board and every community board, then award
  prize points to prize-eligible plans.
"""

from __future__ import annotations

import logging
from dataclasses import replace
from datetime import datetime

from rocket.competition.contest_engine import ContestStatus, is_settleable
from rocket.competition.contest_prizes import score_contest
from rocket.competition.leaderboard import LeaderboardStatus, classify, rank_entries
from rocket.competition.leaderboard_service import scope_key
from rocket.config import get_settings
from rocket.day_utils import get_month_boundaries, get_previous_month, utcnow
from rocket.events.dispatcher import EventDispatcher, EventType, ProgressionEvent
from rocket.store.interfaces import LeaderboardScope, RankSnapshot, Store

logger = logging.getLogger(__name__)


async def settle_finished_contests(
    store: Store,
    now: datetime | None = None,
) -> tuple[int, list[ProgressionEvent]]:
    """Settle every contest whose run is over. Returns (contests settled, events)."""
    if now is None:
        now = utcnow()

    settled = 0
    events: list[ProgressionEvent] = []
    for contest in await store.list_unsettled_contests(now):
        if not is_settleable(contest, now):
            continue

        registrations = [
            r
            for r in await store.list_registrations(contest_id=contest.id)
            if r.status != ContestStatus.CANCELLED
        ]

        if len(registrations) < contest.min_players:
            for r in registrations:
                if r.credit_consumed:
                    await store.refund_entry_credit(r.user_id, contest.entry_fee_credits)
                await store.update_registration(replace(r, status=ContestStatus.CANCELLED))
                events.append(
                    ProgressionEvent(
                        type=EventType.CONTEST_CANCELLED,
                        user_id=r.user_id,
                        payload={"contest_id": contest.id, "reason": "min_players"},
                    )
                )
            logger.info(
                "Contest %s cancelled: %d of %d players",
                contest.id,
                len(registrations),
                contest.min_players,
            )
        else:
            activity = await store.get_activity_details(contest.id)
            reward = activity.fuel_points if activity else 0
            for r in registrations:
                if r.completed_at is None:
                    continue
                await store.record_completed_activity(r.user_id, contest.id, reward, r.completed_at)
                if reward:
                    await store.add_fuel_points(r.user_id, reward, "contest", contest.id)

            window = await store.get_ranked_entries(
                LeaderboardScope.GLOBAL, contest.start_date, period_end=contest.end_date
            )
            results = score_contest(contest, registrations, window)
            for result in results:
                if result.credit_refunded:
                    await store.refund_entry_credit(result.user_id, contest.entry_fee_credits)
                events.append(
                    ProgressionEvent(
                        type=EventType.CONTEST_SETTLED,
                        user_id=result.user_id,
                        payload={
                            "contest_id": contest.id,
                            "rank": result.rank,
                            "status": result.status.value,
                            "multiplier": result.multiplier,
                            "credit_refunded": result.credit_refunded,
                            "pool_share": result.pool_share,
                        },
                    )
                )
            await store.save_contest_results(results)
            logger.info(
                "Contest %s settled with %d players, %d finishers",
                contest.id,
                len(registrations),
                len(results),
            )

        await store.mark_contest_settled(contest.id, now)
        await store.commit()
        settled += 1

    return settled, events


async def _settle_scope(
    store: Store,
    scope: LeaderboardScope,
    community_id: str | None,
    year: int,
    month: int,
) -> list[RankSnapshot]:
    start, end = get_month_boundaries(year, month)
    totals = await store.get_ranked_entries(scope, start, community_id, period_end=end)
    entries = rank_entries(totals)
    if not entries:
        return []

    classification = classify(entries)
    snapshots = [
        RankSnapshot(
            user_id=e.user_id,
            rank=e.rank,
            total_fp=e.fuel_points,
            status=classification[e.user_id].status.value,
            multiplier=classification[e.user_id].multiplier,
        )
        for e in entries
    ]
    await store.save_rank_snapshots(scope_key(scope, community_id), year, month, snapshots)
    return snapshots


async def settle_month(
    store: Store,
    now: datetime | None = None,
) -> dict:
    """Snapshot and award prizes for the month before `now`."""
    settings = get_settings()
    year, month = get_previous_month(now or utcnow())

    global_snapshots = await _settle_scope(store, LeaderboardScope.GLOBAL, None, year, month)
    community_count = 0
    for community_id in await store.list_community_ids():
        if await _settle_scope(store, LeaderboardScope.COMMUNITY, community_id, year, month):
            community_count += 1

    # Prize points follow the global board; Commander earns nothing
    plans = await store.get_user_plans([s.user_id for s in global_snapshots])
    awarded = 0
    for snap in global_snapshots:
        if snap.status == LeaderboardStatus.COMMANDER.value:
            continue
        if plans.get(snap.user_id) not in settings.prize_eligible_plans:
            continue
        points = settings.prize_points_by_status.get(snap.status, 0)
        if points <= 0:
            continue
        if await store.award_prize_points(snap.user_id, year, month, snap.status, points):
            awarded += 1

    await store.commit()
    logger.info(
        "Settled %04d-%02d: %d ranked, %d community boards, %d prize awards",
        year,
        month,
        len(global_snapshots),
        community_count,
        awarded,
    )
    return {
        "year": year,
        "month": month,
        "ranked": len(global_snapshots),
        "communities": community_count,
        "prizes_awarded": awarded,
    }


# ---------------------------------------------------------------------------
# arq entry points
# ---------------------------------------------------------------------------


async def settle_contests(ctx: dict) -> int:  # type: ignore[type-arg]
    """Hourly contest settlement."""
    async with ctx["session_factory"]() as session:
        store = ctx["store_factory"](session)
        count, events = await settle_finished_contests(store)
    dispatcher: EventDispatcher = ctx["dispatcher"]
    await dispatcher.dispatch(events)
    if count:
        logger.info("Settled %d contests", count)
    return count


async def settle_monthly_leaderboards(ctx: dict) -> dict:  # type: ignore[type-arg]
    """Monthly leaderboard snapshot and prize settlement."""
    async with ctx["session_factory"]() as session:
        store = ctx["store_factory"](session)
        return await settle_month(store)
