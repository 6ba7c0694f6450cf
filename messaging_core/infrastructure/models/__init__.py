"""ORM models used by the application infrastructure."""

from .conversation import (
    ConversationMetadataModel,
    ConversationModel,
    ParticipantModel,
    TypingIndicatorModel,
)
from .message import MessageModel, ReadReceiptModel
from .moderation import BlockModel, UserReportModel
from .notification import NotificationModel
from .presence import UserPresenceModel
from .user import UserModel

__all__ = [
    "BlockModel",
    "ConversationMetadataModel",
    "ConversationModel",
    "MessageModel",
    "NotificationModel",
    "ParticipantModel",
    "ReadReceiptModel",
    "TypingIndicatorModel",
    "UserModel",
    "UserPresenceModel",
    "UserReportModel",
]
