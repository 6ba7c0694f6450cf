"""Endpoint uploading message attachments."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, Form, UploadFile, status

from messaging_core.application.messaging_service import MessagingService
from messaging_core.domain.entities import User
from messaging_core.interfaces.api.dependencies import get_current_user, get_messaging_service
from messaging_core.interfaces.api.schemas import AttachmentPayload

router = APIRouter(prefix="/attachments", tags=["attachments"])


@router.post("/", response_model=AttachmentPayload, status_code=status.HTTP_201_CREATED)
def upload_attachment(
    file: UploadFile = File(...),
    kind: str | None = Form(default=None, description="image or file"),
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> AttachmentPayload:
    """Validate and store a file, returning the reference to attach to a message."""

    data = file.file.read()
    attachment = service.upload_attachment(
        current_user.id,
        file.filename or "",
        file.content_type,
        data,
        kind=kind,
    )
    return AttachmentPayload.model_validate(attachment)
