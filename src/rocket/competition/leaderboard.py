"""Leaderboard classifier: rank-to-status tiers and prize multipliers.

Ranking is fuel points DESC, then user_id ASC so equal totals still get a
deterministic, distinct rank.

Status by percentile of the ranked list (n entries):
  rank <= ceil(0.10 * n) → Legend    (5×)
  rank <= ceil(0.50 * n) → Hero      (2×)
  otherwise              → Commander (1×)
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from enum import Enum

from rocket.errors import ClassificationInputError

LEGEND_FRACTION = 0.10
HERO_FRACTION = 0.50


class LeaderboardStatus(str, Enum):
    COMMANDER = "Commander"
    HERO = "Hero"
    LEGEND = "Legend"


MULTIPLIERS: dict[LeaderboardStatus, int] = {
    LeaderboardStatus.LEGEND: 5,
    LeaderboardStatus.HERO: 2,
    LeaderboardStatus.COMMANDER: 1,
}


@dataclass(frozen=True)
class PointsTotal:
    user_id: str
    fuel_points: int


@dataclass(frozen=True)
class LeaderboardEntry:
    user_id: str
    rank: int
    fuel_points: int


@dataclass(frozen=True)
class Classification:
    status: LeaderboardStatus
    multiplier: int


def rank_entries(totals: Iterable[PointsTotal]) -> list[LeaderboardEntry]:
    """Sort totals and assign 1-based consecutive ranks."""
    ordered = sorted(totals, key=lambda t: (-t.fuel_points, t.user_id))
    return [
        LeaderboardEntry(user_id=t.user_id, rank=idx + 1, fuel_points=t.fuel_points)
        for idx, t in enumerate(ordered)
    ]


def thresholds(count: int) -> tuple[int, int]:
    """(legend_threshold, hero_threshold) for a list of `count` entries."""
    return math.ceil(LEGEND_FRACTION * count), math.ceil(HERO_FRACTION * count)


def status_for_rank(rank: int, count: int) -> LeaderboardStatus:
    legend, hero = thresholds(count)
    if rank <= legend:
        return LeaderboardStatus.LEGEND
    if rank <= hero:
        return LeaderboardStatus.HERO
    return LeaderboardStatus.COMMANDER


def _validate(entries: Sequence[LeaderboardEntry]) -> None:
    if not entries:
        raise ClassificationInputError("Cannot classify an empty leaderboard")

    seen: set[str] = set()
    previous_points: int | None = None
    for expected_rank, entry in enumerate(entries, start=1):
        if entry.rank != expected_rank:
            raise ClassificationInputError(
                f"Ranks must be consecutive from 1: expected {expected_rank}, got {entry.rank}"
            )
        if entry.user_id in seen:
            raise ClassificationInputError(f"Duplicate user in leaderboard: {entry.user_id}")
        if previous_points is not None and entry.fuel_points > previous_points:
            raise ClassificationInputError("Leaderboard must be ordered by fuel points descending")
        seen.add(entry.user_id)
        previous_points = entry.fuel_points


def classify(entries: Sequence[LeaderboardEntry]) -> dict[str, Classification]:
    """Map each user in an already ranked list to its status and multiplier."""
    _validate(entries)
    count = len(entries)
    result: dict[str, Classification] = {}
    for entry in entries:
        status = status_for_rank(entry.rank, count)
        result[entry.user_id] = Classification(status=status, multiplier=MULTIPLIERS[status])
    return result


def tier_progress(rank: int, threshold: int) -> float:
    """Progress bar value toward a tier: min(100, threshold / rank * 100)."""
    if rank < 1:
        raise ClassificationInputError(f"Rank must be at least 1, got {rank}")
    return min(100.0, threshold / rank * 100)


def next_tier_progress(rank: int, count: int) -> float:
    """Progress toward the tier above the one `rank` currently holds."""
    legend, hero = thresholds(count)
    if status_for_rank(rank, count) == LeaderboardStatus.COMMANDER:
        return tier_progress(rank, hero)
    return tier_progress(rank, legend)
