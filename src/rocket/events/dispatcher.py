"""Application-level dispatcher for progression events.

Services return the events that happened as plain values. Routers and
workers hand them to the dispatcher, which broadcasts each one as JSON on
the configured Redis pub/sub channel. Publishing is best effort: a failure
is logged and never fails the request that produced the event.
"""

from __future__ import annotations

import json
import logging
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any

from rocket.day_utils import utcnow

logger = logging.getLogger(__name__)


class EventType(str, Enum):
    STREAK_ADVANCED = "streak_advanced"
    STREAK_MILESTONE = "streak_milestone"
    ACTIVITY_COMPLETED = "activity_completed"
    CONTEST_REGISTERED = "contest_registered"
    CONTEST_CANCELLED = "contest_cancelled"
    CONTEST_COMPLETED = "contest_completed"
    CONTEST_SETTLED = "contest_settled"
    BOOST_COMPLETED = "boost_completed"


@dataclass(frozen=True)
class ProgressionEvent:
    type: EventType
    user_id: str
    payload: dict[str, Any] = field(default_factory=dict)
    occurred_at: datetime = field(default_factory=utcnow)

    def to_json(self) -> str:
        return json.dumps({
            "event": self.type.value,
            "user_id": self.user_id,
            "occurred_at": self.occurred_at.isoformat(),
            **self.payload,
        })


class EventDispatcher:
    """Publish progression events to Redis pub/sub."""

    def __init__(self, redis: object | None, channel: str) -> None:
        self.redis = redis
        self.channel = channel

    async def dispatch(self, events: Iterable[ProgressionEvent]) -> int:
        """Publish every event. Returns how many were published."""
        published = 0
        for event in events:
            if self.redis is None:
                logger.debug("No Redis client, dropping %s for %s", event.type.value, event.user_id)
                continue
            try:
                await self.redis.publish(self.channel, event.to_json())  # type: ignore[union-attr]
                published += 1
            except Exception:
                logger.warning("Failed to publish %s event", event.type.value, exc_info=True)
        return published
