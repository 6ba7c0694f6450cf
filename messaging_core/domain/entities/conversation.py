"""Domain entities describing conversations and per-user conversation state."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime

from .message import Message
from .user import User

CONVERSATION_TYPE_DIRECT = "direct"
CONVERSATION_TYPE_GROUP = "group"
CONVERSATION_TYPES = frozenset({CONVERSATION_TYPE_DIRECT, CONVERSATION_TYPE_GROUP})


def direct_pair_key(user_id: str, other_user_id: str) -> str:
    """Return the order-independent key identifying a direct conversation pair."""

    first, second = sorted([str(user_id), str(other_user_id)])
    return f"{first}:{second}"


@dataclass
class Conversation:
    """A direct or group messaging thread."""

    id: str | None
    type: str
    created_by: str | None
    name: str | None = None
    description: str | None = None
    direct_key: str | None = None
    created_at: datetime | None = None
    updated_at: datetime | None = None

    def is_direct(self) -> bool:
        return self.type == CONVERSATION_TYPE_DIRECT


@dataclass
class Participant:
    """Membership of ``user_id`` in a conversation, with its read cursor."""

    conversation_id: str
    user_id: str
    joined_at: datetime | None = None
    last_read_at: datetime | None = None
    user: User | None = None


@dataclass
class ConversationMetadata:
    """State of a conversation that belongs to a single viewer."""

    conversation_id: str
    user_id: str
    pinned: bool = False
    muted: bool = False
    archived: bool = False
    unread_count: int = 0
    last_read_at: datetime | None = None


@dataclass
class ConversationSummary:
    """Conversation enriched for the conversation list of ``metadata.user_id``."""

    conversation: Conversation
    participants: list[Participant]
    metadata: ConversationMetadata
    last_message: Message | None = None
    other_participants: list[Participant] = field(default_factory=list)

    @property
    def unread_count(self) -> int:
        return self.metadata.unread_count


__all__ = [
    "Conversation",
    "ConversationMetadata",
    "ConversationSummary",
    "Participant",
    "direct_pair_key",
    "CONVERSATION_TYPE_DIRECT",
    "CONVERSATION_TYPE_GROUP",
    "CONVERSATION_TYPES",
]
