"""Domain entities exposed by the application."""

from .change_event import (
    CHANGE_EVENTS,
    EVENT_DELETE,
    EVENT_INSERT,
    EVENT_UPDATE,
    ChangeEvent,
)
from .conversation import (
    CONVERSATION_TYPE_DIRECT,
    CONVERSATION_TYPE_GROUP,
    CONVERSATION_TYPES,
    Conversation,
    ConversationMetadata,
    ConversationSummary,
    Participant,
    direct_pair_key,
)
from .message import (
    MESSAGE_TYPE_FILE,
    MESSAGE_TYPE_IMAGE,
    MESSAGE_TYPE_SYSTEM,
    MESSAGE_TYPE_TEXT,
    MESSAGE_TYPES,
    USER_MESSAGE_TYPES,
    Attachment,
    Message,
    ReadReceipt,
)
from .moderation import Block, UserReport
from .notification import (
    NOTIFICATION_TYPE_NEW_MESSAGE,
    DesktopNotificationRequest,
    Notification,
)
from .presence import (
    PRESENCE_AWAY,
    PRESENCE_OFFLINE,
    PRESENCE_ONLINE,
    PRESENCE_STATUSES,
    PRESENCE_TRANSITIONS,
    SIGNAL_BLUR,
    SIGNAL_FOCUS,
    SIGNAL_HEARTBEAT,
    SIGNAL_UNLOAD,
    TypingIndicator,
    UserPresence,
)
from .user import User

__all__ = [
    "Attachment",
    "Block",
    "ChangeEvent",
    "Conversation",
    "ConversationMetadata",
    "ConversationSummary",
    "DesktopNotificationRequest",
    "Message",
    "Notification",
    "Participant",
    "ReadReceipt",
    "TypingIndicator",
    "User",
    "UserPresence",
    "UserReport",
    "direct_pair_key",
    "CHANGE_EVENTS",
    "EVENT_INSERT",
    "EVENT_UPDATE",
    "EVENT_DELETE",
    "CONVERSATION_TYPE_DIRECT",
    "CONVERSATION_TYPE_GROUP",
    "CONVERSATION_TYPES",
    "MESSAGE_TYPE_TEXT",
    "MESSAGE_TYPE_IMAGE",
    "MESSAGE_TYPE_FILE",
    "MESSAGE_TYPE_SYSTEM",
    "MESSAGE_TYPES",
    "USER_MESSAGE_TYPES",
    "NOTIFICATION_TYPE_NEW_MESSAGE",
    "PRESENCE_ONLINE",
    "PRESENCE_AWAY",
    "PRESENCE_OFFLINE",
    "PRESENCE_STATUSES",
    "PRESENCE_TRANSITIONS",
    "SIGNAL_FOCUS",
    "SIGNAL_HEARTBEAT",
    "SIGNAL_BLUR",
    "SIGNAL_UNLOAD",
]
