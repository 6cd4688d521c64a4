"""Monthly leaderboards: read totals, rank, classify.

Scopes:
- global: every user with fuel points this period
- community: members of one community only

The period always starts on the 1st of the current month (reference zone).
"""

from __future__ import annotations

import logging
from datetime import datetime

from rocket.competition.leaderboard import (
    LeaderboardStatus,
    classify,
    next_tier_progress,
    rank_entries,
    thresholds,
)
from rocket.day_utils import get_month_start, utcnow
from rocket.store.interfaces import LeaderboardScope, Store

logger = logging.getLogger(__name__)


def scope_key(scope: LeaderboardScope, community_id: str | None = None) -> str:
    """Key under which monthly snapshots of a scope are stored."""
    if scope == LeaderboardScope.COMMUNITY:
        return f"community:{community_id}"
    return "global"


async def get_leaderboard(
    store: Store,
    scope: LeaderboardScope,
    *,
    community_id: str | None = None,
    user_id: str | None = None,
    now: datetime | None = None,
    limit: int | None = None,
) -> dict:
    """Classified leaderboard for the current month.

    `user_id` adds that user's own row and tier progress even when it falls
    outside `limit`.
    """
    if now is None:
        now = utcnow()
    period_start = get_month_start(now)

    totals = await store.get_ranked_entries(scope, period_start, community_id)
    entries = rank_entries(totals)
    count = len(entries)

    if not entries:
        return {
            "scope": scope.value,
            "community_id": community_id,
            "period_start": period_start,
            "total_players": 0,
            "legend_threshold": 0,
            "hero_threshold": 0,
            "entries": [],
            "me": None,
        }

    classification = classify(entries)
    legend, hero = thresholds(count)

    rows = [
        {
            "user_id": e.user_id,
            "rank": e.rank,
            "fuel_points": e.fuel_points,
            "status": classification[e.user_id].status.value,
            "multiplier": classification[e.user_id].multiplier,
        }
        for e in entries
    ]

    me = None
    if user_id is not None:
        mine = next((r for r in rows if r["user_id"] == user_id), None)
        if mine is not None:
            me = {
                **mine,
                "next_tier_progress": round(next_tier_progress(mine["rank"], count), 2),
                "is_top_tier": mine["status"] == LeaderboardStatus.LEGEND.value,
            }

    if limit is not None:
        rows = rows[:limit]

    return {
        "scope": scope.value,
        "community_id": community_id,
        "period_start": period_start,
        "total_players": count,
        "legend_threshold": legend,
        "hero_threshold": hero,
        "entries": rows,
        "me": me,
    }
