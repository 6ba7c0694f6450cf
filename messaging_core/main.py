"""FastAPI application factory."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from messaging_core.application.messaging_service import MessagingService
from messaging_core.config import get_settings
from messaging_core.infrastructure import database
from messaging_core.logging_config import configure_logging
from messaging_core.interfaces.api.errors import register_exception_handlers
from messaging_core.interfaces.api.routes import register_routes
from messaging_core.interfaces.api.routes.realtime import ConnectionManager

logger = logging.getLogger(__name__)


def create_app(messaging_service: MessagingService | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    When ``messaging_service`` is omitted the application builds one on the
    configured database and owns its lifecycle.
    """

    settings = get_settings()
    owns_database = messaging_service is None
    if messaging_service is None:
        messaging_service = MessagingService(database.SessionLocal, settings=settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        configure_logging(settings.log_level)
        if owns_database:
            database.initialize_database()
            logger.info("Database initialised")
        yield
        app.state.messaging_service.close()
        if owns_database:
            database.engine.dispose()

    app = FastAPI(title="Community Messaging", lifespan=lifespan)
    app.state.messaging_service = messaging_service
    app.state.realtime_connections = ConnectionManager()

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    register_exception_handlers(app)
    register_routes(app)
    return app


app = create_app()
