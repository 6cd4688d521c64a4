"""arq worker settings module.

Import path for arq CLI: arq rocket.workers.settings.WorkerSettings
"""

from __future__ import annotations

import logging

from arq import cron
from arq.connections import RedisSettings

from rocket.competition.settlement_worker import settle_contests, settle_monthly_leaderboards
from rocket.config import get_settings
from rocket.database import close_db, get_session_factory, init_db
from rocket.events.dispatcher import EventDispatcher
from rocket.middleware.logging import setup_logging
from rocket.redis_client import close_redis, get_redis, init_redis
from rocket.store.sql import SqlStore

logger = logging.getLogger(__name__)


async def startup(ctx: dict) -> None:  # type: ignore[type-arg]
    """Initialize DB + Redis connections on worker startup."""
    settings = get_settings()
    setup_logging(settings)
    await init_db(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
    )

    await init_redis(settings.redis_url, max_connections=10)
    ctx["session_factory"] = get_session_factory()
    ctx["store_factory"] = SqlStore
    ctx["dispatcher"] = EventDispatcher(get_redis(), settings.events_channel)
    logger.info("Settlement worker started")


async def shutdown(ctx: dict) -> None:  # type: ignore[type-arg]
    """Clean up on worker shutdown."""
    await close_redis()
    await close_db()
    logger.info("Settlement worker shut down")


class WorkerSettings:
    """arq worker settings for contest and leaderboard settlement."""

    functions = [settle_contests, settle_monthly_leaderboards]
    cron_jobs = [
        cron(settle_contests, minute=5),
        cron(settle_monthly_leaderboards, day=1, hour=5, minute=0),
    ]
    on_startup = startup
    on_shutdown = shutdown
    redis_settings = RedisSettings.from_dsn(get_settings().arq_redis_url)
    max_jobs = 4
    job_timeout = 600
