"""Prize tiers for a settled contest.

Finishers (registrations that reached their verification requirement) are
ranked by the fuel points they earned during the contest window and
classified with the leaderboard tiers:

  Legend    share LEGEND_POOL_SHARE of the entry-credit pool, split evenly,
            and get their own entry credit back
  Hero      get their entry credit back
  Commander keep the base contest reward only
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass

from rocket.competition.contest_engine import Contest, ContestRegistration
from rocket.competition.leaderboard import (
    LeaderboardStatus,
    PointsTotal,
    classify,
    rank_entries,
)

LEGEND_POOL_SHARE = 0.75


@dataclass(frozen=True)
class ContestResult:
    contest_id: str
    user_id: str
    rank: int
    fuel_points: int
    status: LeaderboardStatus
    multiplier: int
    credit_refunded: bool = False
    pool_share: float = 0.0


def prize_pool(contest: Contest, registrations: Iterable[ContestRegistration]) -> int:
    """Entry credits paid into the contest by its surviving registrations."""
    paid = sum(1 for r in registrations if r.credit_consumed)
    return paid * max(contest.entry_fee_credits, 0)


def score_contest(
    contest: Contest,
    registrations: Sequence[ContestRegistration],
    window_totals: Iterable[PointsTotal],
) -> list[ContestResult]:
    """Rank and classify the finishers among `registrations`.

    `window_totals` may cover any set of users; only finishers are scored,
    and a finisher missing from it counts as zero points.
    """
    finishers = {r.user_id: r for r in registrations if r.completed_at is not None}
    if not finishers:
        return []

    points = {uid: 0 for uid in finishers}
    for total in window_totals:
        if total.user_id in points:
            points[total.user_id] = total.fuel_points

    entries = rank_entries(PointsTotal(uid, fp) for uid, fp in points.items())
    classification = classify(entries)

    legends = [
        e.user_id for e in entries
        if classification[e.user_id].status == LeaderboardStatus.LEGEND
    ]
    share = 0.0
    if legends:
        share = round(LEGEND_POOL_SHARE * prize_pool(contest, registrations) / len(legends), 2)

    results = []
    for entry in entries:
        tier = classification[entry.user_id]
        paid = finishers[entry.user_id].credit_consumed
        results.append(
            ContestResult(
                contest_id=contest.id,
                user_id=entry.user_id,
                rank=entry.rank,
                fuel_points=entry.fuel_points,
                status=tier.status,
                multiplier=tier.multiplier,
                credit_refunded=paid and tier.status != LeaderboardStatus.COMMANDER,
                pool_share=share if tier.status == LeaderboardStatus.LEGEND else 0.0,
            )
        )
    return results
