"""FastAPI application factory."""

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI

from bibleeido.config import get_settings
from bibleeido.database import close_db, get_session_factory, init_db
from bibleeido.gamification.router import router as economy_router
from bibleeido.health.router import router as health_router
from bibleeido.middleware import setup_middleware
from bibleeido.progress.sql_store import SqlProgressStore
from bibleeido.progress.store import LocalProgressStore


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup and shutdown lifecycle."""
    settings = get_settings()

    if settings.progress_backend == "sql":
        await init_db(settings.database_url)
        app.state.progress_store = SqlProgressStore(get_session_factory())
    else:
        app.state.progress_store = LocalProgressStore()

    yield

    if settings.progress_backend == "sql":
        await close_db()


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    app = FastAPI(
        title="Bibleeido Economy API",
        description="Quiz scoring and progression economy for the Bibleeido learning app",
        version=settings.app_version,
        docs_url="/docs" if settings.debug else None,
        redoc_url="/redoc" if settings.debug else None,
        lifespan=lifespan,
    )

    setup_middleware(app, settings)
    app.include_router(health_router, tags=["Health"])
    app.include_router(economy_router)

    return app


app = create_app()
