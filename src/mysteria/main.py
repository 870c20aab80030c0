"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from mysteria.articles.router import router as articles_router
from mysteria.auth.router import router as auth_router
from mysteria.backup.router import router as backup_router
from mysteria.challenges.router import router as challenges_router
from mysteria.comments.router import router as comments_router
from mysteria.config import get_settings
from mysteria.database import close_db, init_db
from mysteria.email.service import reset_email_service
from mysteria.health.router import router as health_router
from mysteria.middleware import setup_middleware
from mysteria.redis_client import close_redis, init_redis
from mysteria.reputation.router import router as reputation_router


@asynccontextmanager
async def lifespan(_app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()
    await init_db(settings.database_url)
    await init_redis(settings.redis_url)

    yield

    reset_email_service()
    await close_db()
    await close_redis()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Mysteria Realm API",
        description="Backend API for Mysteria Realm, a bilingual mystery and paranormal stories magazine",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(comments_router)
    app.include_router(challenges_router)
    app.include_router(reputation_router)
    app.include_router(articles_router)
    app.include_router(auth_router)
    app.include_router(backup_router)

    return app


app = create_app()
