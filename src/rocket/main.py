"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from rocket.competition.router import router as competition_router
from rocket.config import get_settings
from rocket.database import close_db, init_db, session_scope
from rocket.gamification.router import router as progression_router
from rocket.gamification.seed import seed_activities
from rocket.health.router import router as health_router
from rocket.middleware import setup_middleware
from rocket.redis_client import close_redis, init_redis

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        echo=settings.debug,
    )
    await init_redis(settings.redis_url)

    if settings.seed_catalog_on_startup:
        try:
            async with session_scope() as db:
                await seed_activities(db)
        except Exception:
            logger.warning("Catalog seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Health Rocket Progression API",
        description="Streaks, tier unlocks, contests and leaderboards for Health Rocket",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(progression_router)
    app.include_router(competition_router)

    return app


app = create_app()
