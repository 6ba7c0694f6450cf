"""SQLAlchemy models for conversations, participants and per-user metadata."""

import uuid

from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Integer,
    String,
    Text,
)
from sqlalchemy.sql import expression

from messaging_core.infrastructure.database import Base
from messaging_core.utils import now_in_app_naive_datetime


def new_identifier() -> str:
    return str(uuid.uuid4())


class ConversationModel(Base):
    """Database representation of a direct or group conversation."""

    __tablename__ = "conversation"

    id = Column(String(36), primary_key=True, default=new_identifier)
    type = Column(String(10), nullable=False)
    name = Column(String(120), nullable=True)
    description = Column(Text, nullable=True)
    created_by = Column(String(64), ForeignKey("user.id"), nullable=True)
    # "<min_user_id>:<max_user_id>" for direct conversations, NULL for groups.
    direct_key = Column(String(140), nullable=True, unique=True)
    created_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(
        DateTime, nullable=False, default=now_in_app_naive_datetime, index=True
    )


class ParticipantModel(Base):
    """Membership of a user in a conversation."""

    __tablename__ = "conversation_participant"

    conversation_id = Column(
        String(36),
        ForeignKey("conversation.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(String(64), ForeignKey("user.id"), primary_key=True, index=True)
    joined_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)
    last_read_at = Column(DateTime, nullable=True)


class ConversationMetadataModel(Base):
    """Per-user state (pin, mute, archive, cached unread count)."""

    __tablename__ = "conversation_metadata"

    conversation_id = Column(
        String(36),
        ForeignKey("conversation.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(String(64), ForeignKey("user.id"), primary_key=True, index=True)
    pinned = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    muted = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    archived = Column(
        Boolean, nullable=False, default=False, server_default=expression.false()
    )
    unread_count = Column(Integer, nullable=False, default=0, server_default="0")
    last_read_at = Column(DateTime, nullable=True)


class TypingIndicatorModel(Base):
    """User currently typing in a conversation."""

    __tablename__ = "typing_indicator"

    conversation_id = Column(
        String(36),
        ForeignKey("conversation.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(String(64), ForeignKey("user.id"), primary_key=True)
    started_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)


__all__ = [
    "ConversationModel",
    "ConversationMetadataModel",
    "ParticipantModel",
    "TypingIndicatorModel",
    "new_identifier",
]
