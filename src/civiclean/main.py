"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from civiclean.config import get_settings
from civiclean.database import close_db, init_db, session_scope
from civiclean.health.router import router as health_router
from civiclean.middleware import setup_middleware
from civiclean.missions.router import router as missions_router
from civiclean.missions.service import seed_missions
from civiclean.profiles.router import router as profiles_router
from civiclean.redis_client import close_redis, init_redis
from civiclean.storage.router import router as photos_router
from civiclean.tickets.router import router as tickets_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url, max_connections=settings.redis_max_connections)

    # Seed the current daily/weekly missions (idempotent)
    if settings.seed_missions_on_startup:
        try:
            async with session_scope() as db:
                await seed_missions(db)
        except Exception:
            logger.warning("mission_seeding_failed", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="CivicClean API",
        description="Ticket lifecycle and gamification engine for civic cleanup",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(tickets_router)
    app.include_router(photos_router)
    app.include_router(missions_router)
    app.include_router(profiles_router)

    return app


app = create_app()
