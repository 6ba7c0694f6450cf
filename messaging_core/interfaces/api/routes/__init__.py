from fastapi import FastAPI

from .attachments import router as attachments_router
from .blocks import router as blocks_router
from .conversations import router as conversations_router
from .notifications import router as notifications_router
from .presence import router as presence_router
from .realtime import router as realtime_router
from .reports import router as reports_router


def register_routes(app: FastAPI) -> None:
    """Register every API router on the FastAPI application."""

    app.include_router(conversations_router)
    app.include_router(attachments_router)
    app.include_router(blocks_router)
    app.include_router(reports_router)
    app.include_router(notifications_router)
    app.include_router(presence_router)
    app.include_router(realtime_router)
