"""
Main FastAPI application.

This is the entry point for the API server.
"""

import logging
from contextlib import asynccontextmanager
from typing import Optional

from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from taskhub import __version__
from taskhub.core.config import Settings, settings as default_settings
from taskhub.core.rate_limit import RateLimiter
from taskhub.db.session import async_session_maker
from taskhub.errors import register_error_handlers
from taskhub.logging_setup import setup_logging
from taskhub.routers import activities, auth, health, projects, realtime, tasks
from taskhub.services.notifier import ChangeNotifier

logger = logging.getLogger(__name__)


def create_app(
    settings: Optional[Settings] = None,
    session_factory: Optional[async_sessionmaker[AsyncSession]] = None,
) -> FastAPI:
    """
    Build the application.

    Tests pass their own settings and a session factory bound to a
    throwaway database; the server uses the module-level defaults.
    """
    settings = settings or default_settings

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        """
        Startup: logging and the change notifier.
        Shutdown: drop every live subscription.
        """
        if settings.CONFIGURE_LOGGING:
            setup_logging(settings.LOG_LEVEL)
        app.state.notifier = ChangeNotifier()
        logger.info("Starting %s %s", settings.APP_NAME, __version__)

        yield

        app.state.notifier.close()
        logger.info("Shutting down %s", settings.APP_NAME)

    app = FastAPI(
        title=settings.APP_NAME,
        description="Task management API with projects, comments and live updates",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.session_factory = session_factory or async_session_maker
    app.state.auth_rate_limiter = RateLimiter(
        max_attempts=settings.AUTH_RATE_LIMIT_MAX_ATTEMPTS,
        window_seconds=settings.AUTH_RATE_LIMIT_WINDOW_SECONDS,
    )

    register_error_handlers(app, debug=settings.DEBUG)

    # Include routers (API endpoints)
    app.include_router(health.router)
    app.include_router(auth.router)
    app.include_router(tasks.router)
    app.include_router(projects.router)
    app.include_router(activities.router)
    app.include_router(realtime.router)

    return app


app = create_app()
