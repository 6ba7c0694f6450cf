"""Repository implementations for persistence."""

from .conversation_repository import ConversationRepository
from .message_repository import MessageRepository
from .moderation_repository import ModerationRepository
from .notification_repository import NotificationRepository
from .presence_repository import PresenceRepository, TypingIndicatorRepository
from .user_repository import UserRepository

__all__ = [
    "ConversationRepository",
    "MessageRepository",
    "ModerationRepository",
    "NotificationRepository",
    "PresenceRepository",
    "TypingIndicatorRepository",
    "UserRepository",
]
