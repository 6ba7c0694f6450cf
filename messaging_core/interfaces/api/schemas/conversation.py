"""Pydantic models describing conversations and their metadata."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field

from .message import MessageRead
from .user import UserRead


class ConversationRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    type: str
    name: str | None = None
    description: str | None = None
    created_by: str | None = None
    created_at: datetime
    updated_at: datetime


class ParticipantRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    joined_at: datetime | None = None
    last_read_at: datetime | None = None
    user: UserRead | None = None


class ConversationMetadataRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    conversation_id: str
    pinned: bool
    muted: bool
    archived: bool
    unread_count: int
    last_read_at: datetime | None = None


class ConversationSummaryRead(BaseModel):
    """Entry of the conversation list."""

    model_config = ConfigDict(from_attributes=True)

    conversation: ConversationRead
    participants: list[ParticipantRead]
    other_participants: list[ParticipantRead]
    metadata: ConversationMetadataRead
    last_message: MessageRead | None = None
    unread_count: int


class DirectConversationCreate(BaseModel):
    user_id: str = Field(..., min_length=1, description="User to talk to")


class GroupConversationCreate(BaseModel):
    participant_ids: list[str] = Field(..., min_length=1)
    name: str | None = Field(default=None, max_length=120)
    description: str | None = None


class ConversationMetadataUpdate(BaseModel):
    """Flags to change; omitted fields keep their current value."""

    pinned: bool | None = None
    muted: bool | None = None
    archived: bool | None = None


class ConversationLeaveResponse(BaseModel):
    purged: bool


__all__ = [
    "ConversationLeaveResponse",
    "ConversationMetadataRead",
    "ConversationMetadataUpdate",
    "ConversationRead",
    "ConversationSummaryRead",
    "DirectConversationCreate",
    "GroupConversationCreate",
    "ParticipantRead",
]
