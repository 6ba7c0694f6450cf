"""Notification sink delivering desktop notification requests to clients."""

from __future__ import annotations

import logging
import threading
from typing import Protocol

from messaging_core.domain.entities import DesktopNotificationRequest

from .channel import PropagationChannel, user_scope

logger = logging.getLogger(__name__)


class NotificationSink(Protocol):
    def request_permission(self, user_id: str, granted: bool) -> bool:
        ...

    def has_permission(self, user_id: str) -> bool:
        ...

    def show(self, user_id: str, title: str, body: str, tag: str, link: str) -> None:
        ...


class RealtimeNotificationSink:
    """Remember which clients allow desktop notifications and push requests to them."""

    def __init__(self, channel: PropagationChannel) -> None:
        self._channel = channel
        self._granted: set[str] = set()
        self._lock = threading.Lock()

    def request_permission(self, user_id: str, granted: bool) -> bool:
        with self._lock:
            if granted:
                self._granted.add(user_id)
            else:
                self._granted.discard(user_id)
        return granted

    def has_permission(self, user_id: str) -> bool:
        with self._lock:
            return user_id in self._granted

    def show(self, user_id: str, title: str, body: str, tag: str, link: str) -> None:
        request = DesktopNotificationRequest(
            user_id=user_id, title=title, body=body, tag=tag, link=link
        )
        delivered = self._channel.publish(request, [user_scope(user_id)])
        if not delivered:
            logger.debug("No realtime client connected for user %s", user_id)


__all__ = ["NotificationSink", "RealtimeNotificationSink"]
