"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from studyhub.config import get_settings
from studyhub.dashboard.router import router as dashboard_router
from studyhub.database import close_db, create_schema, init_db
from studyhub.health.router import router as health_router
from studyhub.middleware import setup_middleware
from studyhub.redis_client import close_redis, init_redis
from studyhub.sessions.router import router as sessions_router
from studyhub.users.router import router as users_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    if settings.create_schema_on_startup:
        await create_schema()
    await init_redis(settings.redis_url)
    if not settings.redis_url:
        logger.warning("redis_disabled", reason="SH_REDIS_URL is empty")

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="StudyHub API",
        description="Backend API for study groups, sessions and study progress",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(dashboard_router)
    app.include_router(sessions_router)

    return app


app = create_app()
