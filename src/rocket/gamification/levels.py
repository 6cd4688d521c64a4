"""Level curve and computation.

Each level needs round(20 * 1.414^(level - 1)) fuel points to clear, so the
cost roughly doubles every two levels.
"""

from __future__ import annotations

BASE_LEVEL_POINTS = 20
LEVEL_GROWTH = 1.414


def next_level_points(level: int) -> int:
    """FP required to go from `level` to `level + 1`."""
    if level < 1:
        raise ValueError("Level must be at least 1")
    return round(BASE_LEVEL_POINTS * LEVEL_GROWTH ** (level - 1))


def compute_level(total_fp: int) -> dict:
    """Compute level info from lifetime fuel points."""
    if total_fp < 0:
        raise ValueError("Fuel points cannot be negative")

    level = 1
    remaining = total_fp
    while remaining >= next_level_points(level):
        remaining -= next_level_points(level)
        level += 1

    needed = next_level_points(level)
    return {
        "level": level,
        "fp_into_level": remaining,
        "fp_for_level": needed,
        "next_level": level + 1,
        "progress": round(remaining / needed * 100, 2),
    }
