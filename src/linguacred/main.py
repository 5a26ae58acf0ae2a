"""FastAPI application factory."""

import logging
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from linguacred.config import get_settings
from linguacred.conversations.router import router as conversations_router
from linguacred.credits.router import router as credits_router
from linguacred.database import close_db, get_session, init_db
from linguacred.foundations.router import router as foundations_router
from linguacred.foundations.seed import seed_foundation_modules
from linguacred.gamification.router import router as gamification_router
from linguacred.health.router import router as health_router
from linguacred.middleware import setup_middleware
from linguacred.redis_client import close_redis, init_redis
from linguacred.users.router import router as users_router

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.redis_url:
        await init_redis(settings.redis_url, max_connections=settings.redis_max_connections)

    # Seed foundation modules (idempotent)
    try:
        async for db in get_session():
            await seed_foundation_modules(db, settings.default_language_modules)
            break
    except Exception:
        logger.warning("Foundation module seeding failed (tables may not exist yet)", exc_info=True)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="LinguaCred API",
        description="Credits, streaks and rewards for the language-learning app",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(credits_router)
    app.include_router(gamification_router)
    app.include_router(conversations_router)
    app.include_router(foundations_router)
    app.include_router(users_router)

    return app


app = create_app()
