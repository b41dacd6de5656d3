"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from questforge.catalog.seed import seed_catalog
from questforge.config import get_settings
from questforge.database import close_db, get_session, init_db
from questforge.guilds.router import router as guilds_router
from questforge.health.router import router as health_router
from questforge.middleware import setup_middleware
from questforge.profiles.router import router as profiles_router
from questforge.quests.router import router as quests_router
from questforge.redis_client import close_redis, init_redis
from questforge.workouts.router import router as workouts_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    # Seed quest and workout plan catalog (idempotent)
    try:
        async for db in get_session():
            await seed_catalog(db)
            break
    except Exception:
        logger.warning("Catalog seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="QuestForge API",
        description="Progression engine: XP ledger, quests, workouts, streaks and guild leaderboards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(profiles_router)
    app.include_router(quests_router)
    app.include_router(workouts_router)
    app.include_router(guilds_router)

    return app


app = create_app()
