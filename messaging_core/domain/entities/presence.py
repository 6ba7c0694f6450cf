"""Domain entities for presence and typing indicators."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

PRESENCE_ONLINE = "online"
PRESENCE_AWAY = "away"
PRESENCE_OFFLINE = "offline"
PRESENCE_STATUSES = frozenset({PRESENCE_ONLINE, PRESENCE_AWAY, PRESENCE_OFFLINE})

SIGNAL_FOCUS = "focus"
SIGNAL_HEARTBEAT = "heartbeat"
SIGNAL_BLUR = "blur"
SIGNAL_UNLOAD = "unload"

# Client visibility signal -> resulting status.
PRESENCE_TRANSITIONS: dict[str, str] = {
    SIGNAL_FOCUS: PRESENCE_ONLINE,
    SIGNAL_HEARTBEAT: PRESENCE_ONLINE,
    SIGNAL_BLUR: PRESENCE_AWAY,
    SIGNAL_UNLOAD: PRESENCE_OFFLINE,
}


@dataclass
class UserPresence:
    """Current advisory presence of a user."""

    user_id: str
    status: str
    last_seen: datetime | None = None
    updated_at: datetime | None = None


@dataclass
class TypingIndicator:
    """A user currently composing a message in a conversation."""

    conversation_id: str
    user_id: str
    started_at: datetime | None = None
    user_name: str | None = None


__all__ = [
    "UserPresence",
    "TypingIndicator",
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
