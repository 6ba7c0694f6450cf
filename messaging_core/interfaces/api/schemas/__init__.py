"""Pydantic schemas used by the HTTP interface."""

from .conversation import (
    ConversationLeaveResponse,
    ConversationMetadataRead,
    ConversationMetadataUpdate,
    ConversationRead,
    ConversationSummaryRead,
    DirectConversationCreate,
    GroupConversationCreate,
    ParticipantRead,
)
from .message import (
    AttachmentPayload,
    MarkReadRequest,
    MarkReadResponse,
    MessageCreate,
    MessageRead,
)
from .moderation import BlockCreate, BlockRead, BlockStatus, ReportCreate, ReportRead
from .notification import MarkAllReadResponse, NotificationRead, UnreadCount
from .presence import PresenceRead, PresenceSignal, TypingRead
from .user import UserRead

__all__ = [
    "AttachmentPayload",
    "BlockCreate",
    "BlockRead",
    "BlockStatus",
    "ConversationLeaveResponse",
    "ConversationMetadataRead",
    "ConversationMetadataUpdate",
    "ConversationRead",
    "ConversationSummaryRead",
    "DirectConversationCreate",
    "GroupConversationCreate",
    "MarkAllReadResponse",
    "MarkReadRequest",
    "MarkReadResponse",
    "MessageCreate",
    "MessageRead",
    "NotificationRead",
    "ParticipantRead",
    "PresenceRead",
    "PresenceSignal",
    "ReportCreate",
    "ReportRead",
    "TypingRead",
    "UnreadCount",
    "UserRead",
]
