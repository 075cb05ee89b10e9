"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from cpms.accounts.router import router as accounts_router
from cpms.auth.router import router as auth_router
from cpms.config import get_settings
from cpms.database import close_db, init_db
from cpms.health.router import router as health_router
from cpms.middleware import setup_middleware
from cpms.notifications.router import router as notifications_router
from cpms.partnerships.router import router as partnerships_router
from cpms.redis_client import close_redis, init_redis

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(
        settings.database_url,
        pool_size=settings.db_pool_size,
        max_overflow=settings.db_max_overflow,
        echo=settings.db_echo,
    )
    await init_redis(settings.redis_url, max_connections=settings.redis_max_connections)
    logger.info("app_started", environment=settings.environment, version=settings.app_version)

    yield

    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Campus Partnerships API",
        description="Partnership records, admin accounts, and in-app notifications",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(accounts_router)
    app.include_router(notifications_router)
    app.include_router(partnerships_router)

    return app


app = create_app()
