"""Translate messaging failures into HTTP responses."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.responses import JSONResponse

from messaging_core.domain.exceptions import (
    AttachmentRejected,
    InvalidRequest,
    MessagingError,
    NotFound,
    PermissionDenied,
    TransientStoreError,
)

logger = logging.getLogger(__name__)


def status_code_for(exc: MessagingError) -> int:
    if isinstance(exc, NotFound):
        return status.HTTP_404_NOT_FOUND
    if isinstance(exc, PermissionDenied):
        return status.HTTP_403_FORBIDDEN
    if isinstance(exc, AttachmentRejected):
        if exc.too_large:
            return 413
        return 422
    if isinstance(exc, InvalidRequest):
        return 422
    if isinstance(exc, TransientStoreError):
        return status.HTTP_503_SERVICE_UNAVAILABLE
    return status.HTTP_400_BAD_REQUEST


async def messaging_error_handler(request: Request, exc: MessagingError) -> JSONResponse:
    status_code = status_code_for(exc)
    if status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    else:
        logger.info("%s %s rejected (%s): %s", request.method, request.url.path, exc.code, exc)
    return JSONResponse(
        status_code=status_code,
        content={"detail": exc.message, "code": exc.code},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(MessagingError, messaging_error_handler)


__all__ = ["messaging_error_handler", "register_exception_handlers", "status_code_for"]
