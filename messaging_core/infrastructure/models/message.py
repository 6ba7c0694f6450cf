"""SQLAlchemy models for messages and read receipts."""

from sqlalchemy import JSON, Column, DateTime, ForeignKey, Index, String, Text

from messaging_core.infrastructure.database import Base
from messaging_core.utils import now_in_app_naive_datetime

from .conversation import new_identifier


class MessageModel(Base):
    """Database representation of an immutable message."""

    __tablename__ = "message"

    id = Column(String(36), primary_key=True, default=new_identifier)
    conversation_id = Column(
        String(36),
        ForeignKey("conversation.id", ondelete="CASCADE"),
        nullable=False,
    )
    sender_id = Column(String(64), ForeignKey("user.id"), nullable=True)
    content = Column(Text, nullable=False, default="")
    type = Column(String(10), nullable=False, default="text")
    attachments = Column(JSON, nullable=False, default=list)
    created_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)

    __table_args__ = (
        Index("ix_message_conversation_created", "conversation_id", "created_at"),
    )


class ReadReceiptModel(Base):
    """One row per (message, user) acknowledgement."""

    __tablename__ = "message_read"

    message_id = Column(
        String(36),
        ForeignKey("message.id", ondelete="CASCADE"),
        primary_key=True,
    )
    user_id = Column(String(64), ForeignKey("user.id"), primary_key=True, index=True)
    read_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)


__all__ = ["MessageModel", "ReadReceiptModel"]
