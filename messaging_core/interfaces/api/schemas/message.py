"""Pydantic models describing messages."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .user import UserRead


class AttachmentPayload(BaseModel):
    """Attachment reference returned by the upload endpoint and stored on messages."""

    model_config = ConfigDict(from_attributes=True)

    url: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    size: int | None = Field(default=None, ge=0)
    type: str | None = None


class MessageCreate(BaseModel):
    content: str = ""
    type: str = Field(default="text", description="text, image or file")
    attachments: list[AttachmentPayload] = Field(default_factory=list)


class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    conversation_id: str
    sender_id: str | None = None
    content: str
    type: str
    attachments: list[AttachmentPayload] = Field(default_factory=list)
    created_at: datetime
    updated_at: datetime | None = None
    sender: UserRead | None = None
    read_by: list[str] = Field(default_factory=list)


class MarkReadRequest(BaseModel):
    """Identifiers of the messages the client has displayed."""

    message_ids: list[str] = Field(default_factory=list)


class MarkReadResponse(BaseModel):
    marked: list[str]


__all__ = [
    "AttachmentPayload",
    "MarkReadRequest",
    "MarkReadResponse",
    "MessageCreate",
    "MessageRead",
]
