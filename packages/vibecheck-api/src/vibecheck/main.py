"""FastAPI application factory and entry point."""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware

from vibecheck import __version__
from vibecheck.config import get_settings
from vibecheck.db.engine import dispose_engine, get_session_factory, init_db
from vibecheck.routers import chat, health, media, places, stories, users, vibes
from vibecheck.services.aggregation import SnapshotAggregator
from vibecheck.services.tree_store import TreeStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application startup and shutdown."""
    # Startup
    settings = get_settings()
    logging.basicConfig(
        level=logging.DEBUG if settings.environment == "development" else logging.INFO,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    logger.info("Starting VibeCheck API v%s in %s mode", __version__, settings.environment)

    # Refuse to run in production without an image host
    settings.validate_production()

    # Create tables (for SQLite dev mode)
    if settings.environment == "development":
        await init_db()
        logger.info("Database tables created/verified")

    yield

    # Shutdown
    app.state.aggregator.close()
    await dispose_engine()
    logger.info("VibeCheck API shut down")


def create_app() -> FastAPI:
    """Create and configure the FastAPI application."""
    settings = get_settings()

    # Disable interactive docs outside development
    docs_url = "/docs" if settings.environment == "development" else None
    redoc_url = "/redoc" if settings.environment == "development" else None
    openapi_url = "/openapi.json" if settings.environment == "development" else None

    app = FastAPI(
        title="VibeCheck API",
        description="Realtime venue vibes, ephemeral stories and regional chat",
        version=__version__,
        lifespan=lifespan,
        docs_url=docs_url,
        redoc_url=redoc_url,
        openapi_url=openapi_url,
    )

    # One realtime tree and one story aggregator per process
    app.state.tree_store = TreeStore(get_session_factory())
    app.state.aggregator = SnapshotAggregator(app.state.tree_store)

    origins = [o.strip() for o in settings.cors_origins.split(",")]
    app.add_middleware(
        CORSMiddleware,
        allow_origins=origins,
        allow_credentials=False,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    # Security headers middleware
    @app.middleware("http")
    async def add_security_headers(request: Request, call_next):
        response = await call_next(request)
        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Cache-Control"] = "no-store"
        return response

    # Include routers
    app.include_router(health.router)
    app.include_router(vibes.router)
    app.include_router(places.router)
    app.include_router(stories.router)
    app.include_router(chat.router)
    app.include_router(users.router)
    app.include_router(media.router)

    return app


app = create_app()


if __name__ == "__main__":
    import uvicorn

    settings = get_settings()
    uvicorn.run(
        "vibecheck.main:app",
        host=settings.api_host,
        port=settings.api_port,
        reload=(settings.environment == "development"),
    )
