"""Activity catalog types shared by the tier gate, tracker and stores."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ActivityKind(str, Enum):
    CHALLENGE = "challenge"
    QUEST = "quest"
    CONTEST = "contest"


class Cadence(str, Enum):
    """How often a qualifying completion may be recorded."""

    DAILY = "daily"
    WEEKLY = "weekly"
    VERIFICATION = "verification"


@dataclass(frozen=True)
class ActivityDetails:
    id: str
    name: str
    kind: ActivityKind
    category: str
    tier: int
    duration_days: int
    required_count: int
    fuel_points: int
    cadence: Cadence = Cadence.DAILY
