"""Shared FastAPI dependencies."""

from collections.abc import AsyncGenerator

from fastapi import Depends
from sqlalchemy.ext.asyncio import AsyncSession

from rocket.config import get_settings
from rocket.database import get_session
from rocket.events.dispatcher import EventDispatcher
from rocket.redis_client import get_optional_redis
from rocket.store.interfaces import Store
from rocket.store.sql import SqlStore

get_db = get_session


async def get_store(db: AsyncSession = Depends(get_db)) -> AsyncGenerator[Store, None]:
    """Yield a store bound to the request's database session."""
    yield SqlStore(db)


def get_dispatcher() -> EventDispatcher:
    """Event dispatcher over the shared Redis client (publishing is skipped without one)."""
    return EventDispatcher(get_optional_redis(), get_settings().events_channel)
