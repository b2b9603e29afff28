"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from ptracker.config import Settings, get_settings
from ptracker.database import close_db, get_engine, init_db
from ptracker.db.base import Base
from ptracker.gamification.router import router as gamification_router
from ptracker.health.router import router as health_router
from ptracker.middleware import setup_middleware
from ptracker.mirror.router import router as admin_router
from ptracker.problems.router import router as problems_router
from ptracker.redis_client import close_redis, init_redis
from ptracker.season.router import router as season_router
from ptracker.service.data_service import DataService
from ptracker.service.factory import create_data_service
from ptracker.users.router import router as users_router

logger = structlog.get_logger()


def _lifespan(settings: Settings):
    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
        """Startup and shutdown lifecycle."""
        owns_service = getattr(app.state, "data_service", None) is None
        uses_sql = owns_service and settings.backend == "sql"

        if uses_sql:
            await init_db(settings.database_url)
            if settings.database_url.startswith("sqlite"):
                # Local SQLite has no migrations run against it.
                async with get_engine().begin() as conn:
                    await conn.run_sync(Base.metadata.create_all)
        redis = None
        if settings.redis_url:
            redis = await init_redis(settings.redis_url, settings.redis_max_connections)

        if owns_service:
            app.state.data_service = create_data_service(settings, redis)

        service: DataService = app.state.data_service
        logger.info("app_started", backend=service.backend_name, environment=settings.environment)

        yield

        if owns_service:
            app.state.data_service = None
        if uses_sql:
            await close_db()
        if settings.redis_url:
            await close_redis()

    return lifespan


def create_app(settings: Settings | None = None, data_service: DataService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    A pre-built ``data_service`` is used as is; otherwise one is created for
    the configured backend at startup.
    """
    settings = settings or get_settings()

    app = FastAPI(
        title="Problem Tracker API",
        description="Gamified problem reporting: points, levels, seasons and moderation",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=_lifespan(settings),
    )
    app.state.data_service = data_service

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(users_router)
    app.include_router(gamification_router)
    app.include_router(problems_router)
    app.include_router(season_router)
    app.include_router(admin_router)

    return app


app = create_app()
