"""Domain entities for messages, their attachments and read receipts."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Mapping

from messaging_core.domain.exceptions import InvalidRequest

from .user import User

MESSAGE_TYPE_TEXT = "text"
MESSAGE_TYPE_IMAGE = "image"
MESSAGE_TYPE_FILE = "file"
MESSAGE_TYPE_SYSTEM = "system"

MESSAGE_TYPES = frozenset(
    {MESSAGE_TYPE_TEXT, MESSAGE_TYPE_IMAGE, MESSAGE_TYPE_FILE, MESSAGE_TYPE_SYSTEM}
)
# System messages are only written by the service itself.
USER_MESSAGE_TYPES = frozenset({MESSAGE_TYPE_TEXT, MESSAGE_TYPE_IMAGE, MESSAGE_TYPE_FILE})


@dataclass(frozen=True)
class Attachment:
    """Reference to a file held by the attachment store."""

    url: str
    name: str
    size: int | None = None
    type: str | None = None

    def to_dict(self) -> dict[str, Any]:
        return {"url": self.url, "name": self.name, "size": self.size, "type": self.type}

    @classmethod
    def from_value(cls, value: "Attachment | Mapping[str, Any]") -> "Attachment":
        """Coerce a stored or client supplied attachment into an :class:`Attachment`."""

        if isinstance(value, Attachment):
            return value
        if not isinstance(value, Mapping):
            raise InvalidRequest("Attachments must be objects with a url and a name")

        url = str(value.get("url") or "").strip()
        name = str(value.get("name") or "").strip()
        if not url or not name:
            raise InvalidRequest("Attachments must include a url and a name")

        size = value.get("size")
        try:
            size = int(size) if size is not None else None
        except (TypeError, ValueError) as exc:
            raise InvalidRequest("Attachment size must be an integer") from exc
        mime_type = value.get("type") or value.get("mime_type")
        return cls(url=url, name=name, size=size, type=str(mime_type) if mime_type else None)


@dataclass
class Message:
    """A single immutable message posted to a conversation.

    ``sender`` and ``read_by`` are filled in when messages are listed for a
    viewer; they are not part of the stored row.
    """

    id: str | None
    conversation_id: str
    sender_id: str | None
    content: str
    type: str = MESSAGE_TYPE_TEXT
    attachments: list[Attachment] = field(default_factory=list)
    created_at: datetime | None = None
    updated_at: datetime | None = None
    sender: User | None = None
    read_by: list[str] = field(default_factory=list)

    def is_system(self) -> bool:
        return self.type == MESSAGE_TYPE_SYSTEM

    def is_read_by(self, user_id: str) -> bool:
        return user_id in self.read_by


@dataclass
class ReadReceipt:
    """Acknowledgement that ``user_id`` has seen ``message_id``."""

    message_id: str
    user_id: str
    read_at: datetime | None = None


__all__ = [
    "Attachment",
    "Message",
    "ReadReceipt",
    "MESSAGE_TYPE_TEXT",
    "MESSAGE_TYPE_IMAGE",
    "MESSAGE_TYPE_FILE",
    "MESSAGE_TYPE_SYSTEM",
    "MESSAGE_TYPES",
    "USER_MESSAGE_TYPES",
]
