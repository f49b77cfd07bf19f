"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI

from ideation.auth.router import router as auth_router
from ideation.comments.router import router as comments_router
from ideation.config import get_settings
from ideation.database import close_db, init_db
from ideation.health.router import router as health_router
from ideation.ideas.router import router as ideas_router
from ideation.middleware import setup_middleware
from ideation.proposals.router import router as proposals_router
from ideation.prototypes.router import router as prototypes_router
from ideation.redis_client import close_redis, init_redis
from ideation.subideas.router import router as subideas_router
from ideation.users.router import router as users_router
from ideation.votes.router import router as votes_router

logger = structlog.get_logger()


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)
    logger.info("app_started", version=settings.app_version, environment=settings.environment)

    yield

    await close_db()
    await close_redis()
    logger.info("app_stopped")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Ideation Platform API",
        description="Ideas, sub-ideas, proposals and prototypes with votes, comments and star rewards",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(auth_router)
    app.include_router(ideas_router)
    app.include_router(subideas_router)
    app.include_router(proposals_router)
    app.include_router(prototypes_router)
    app.include_router(votes_router)
    app.include_router(comments_router)
    app.include_router(users_router)

    return app


app = create_app()
