"""FastAPI application factory for Phaseboard.

Example usage:
    >>> from phaseboard.config import PhaseboardConfig
    >>> from phaseboard.web.app import create_app
    >>>
    >>> app = create_app(PhaseboardConfig())
    >>>
    >>> import uvicorn
    >>> uvicorn.run(app, host="0.0.0.0", port=8000)
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import TYPE_CHECKING

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from phaseboard import __version__
from phaseboard.config import PhaseboardConfig
from phaseboard.database.connection import get_engine, get_session_factory
from phaseboard.logging import get_logger
from phaseboard.web.middleware import RequestLoggingMiddleware
from phaseboard.web.routes.board import create_board_router
from phaseboard.web.routes.health import create_health_router

if TYPE_CHECKING:
    from collections.abc import AsyncIterator

logger = get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Create the database engine on startup and dispose of it on shutdown.

    The engine and session factory are stored in app.state for the route
    dependencies.
    """
    config: PhaseboardConfig = app.state.config

    logger.info("app_startup_begin", host=config.web.host, port=config.web.port)

    engine = get_engine(config.database)
    app.state.engine = engine
    app.state.session_factory = get_session_factory(engine)

    logger.info(
        "database_pool_initialized",
        pool_size=config.database.pool_size,
        max_overflow=config.database.max_overflow,
    )

    yield

    logger.info("app_shutdown_begin")
    await engine.dispose()
    logger.info("database_pool_disposed")


def create_app(config: PhaseboardConfig | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        config: Optional PhaseboardConfig. If None, creates default config.

    Returns:
        Application with CORS, request logging, health and board routes.
    """
    if config is None:
        config = PhaseboardConfig()

    app = FastAPI(
        title="Phaseboard",
        version=__version__,
        description="Project phase and item board",
        lifespan=lifespan,
    )
    app.state.config = config

    app.add_middleware(
        CORSMiddleware,
        allow_origins=config.web.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestLoggingMiddleware)

    app.include_router(create_health_router())
    app.include_router(create_board_router())

    logger.info("app_created", cors_origins=config.web.cors_origins, version=__version__)

    return app
