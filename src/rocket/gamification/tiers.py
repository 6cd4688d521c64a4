"""Tier gate: Tier 0 → Tier 1 → Tier 2 unlock rules.

Rules:
- Tier 0 (Morning Basics) is always available.
- Tier 1 unlocks everywhere once the single Tier-0 activity is completed.
- Tier 2 in a category unlocks once every Tier-1 activity of that same
  category is completed. A category without Tier-1 activities stays locked.

Everything here is derived from completion sets; nothing is stored.
"""

from __future__ import annotations

from collections.abc import Collection, Iterable
from dataclasses import dataclass

from rocket.config import get_settings
from rocket.gamification.activities import ActivityDetails


@dataclass(frozen=True)
class TierGateStatus:
    category: str
    tier_unlocked: int


def _same_category(a: str, b: str) -> bool:
    return a.strip().lower() == b.strip().lower()


def tier1_activity_ids(category: str, catalog: Iterable[ActivityDetails]) -> set[str]:
    """All Tier-1 activity IDs of `category` in the catalog."""
    return {a.id for a in catalog if a.tier == 1 and _same_category(a.category, category)}


def is_tier1_unlocked(completed_ids: Collection[str], tier0_id: str | None = None) -> bool:
    """True iff the designated Tier-0 activity has been completed."""
    if tier0_id is None:
        tier0_id = get_settings().morning_basics_activity_id
    return tier0_id in completed_ids


def is_tier2_unlocked(
    category: str,
    completed_ids: Collection[str],
    catalog: Iterable[ActivityDetails],
) -> bool:
    """True iff every Tier-1 activity of `category` is in `completed_ids`."""
    required = tier1_activity_ids(category, catalog)
    if not required:
        return False
    return required.issubset(completed_ids)


def tier_status(
    category: str,
    completed_ids: Collection[str],
    catalog: Iterable[ActivityDetails],
    tier0_id: str | None = None,
) -> TierGateStatus:
    """Highest unlocked tier for a category."""
    catalog = list(catalog)
    if not is_tier1_unlocked(completed_ids, tier0_id):
        return TierGateStatus(category=category, tier_unlocked=0)
    if is_tier2_unlocked(category, completed_ids, catalog):
        return TierGateStatus(category=category, tier_unlocked=2)
    return TierGateStatus(category=category, tier_unlocked=1)


def is_activity_unlocked(
    activity: ActivityDetails,
    completed_ids: Collection[str],
    catalog: Iterable[ActivityDetails],
    tier0_id: str | None = None,
) -> bool:
    """Whether a user with `completed_ids` may start `activity`."""
    if activity.tier <= 0:
        return True
    status = tier_status(activity.category, completed_ids, catalog, tier0_id)
    return activity.tier <= status.tier_unlocked
