"""Domain entity representing a user notification."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

NOTIFICATION_TYPE_NEW_MESSAGE = "new_message"


@dataclass
class Notification:
    """In-app notification delivered to a specific user."""

    id: str | None
    user_id: str
    type: str
    title: str
    message: str
    read: bool = False
    created_at: datetime | None = None


@dataclass
class DesktopNotificationRequest:
    """Request for a client to show a desktop notification."""

    user_id: str
    title: str
    body: str
    tag: str
    link: str

    def to_payload(self) -> dict[str, object]:
        return {
            "type": "desktop-notification",
            "data": {
                "title": self.title,
                "body": self.body,
                "tag": self.tag,
                "link": self.link,
            },
        }


__all__ = [
    "DesktopNotificationRequest",
    "Notification",
    "NOTIFICATION_TYPE_NEW_MESSAGE",
]
