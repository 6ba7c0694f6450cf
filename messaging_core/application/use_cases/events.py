"""Helpers publishing persisted changes on the propagation channel."""

from __future__ import annotations

import logging
from typing import Any, Iterable

from messaging_core.infrastructure.realtime import PropagationChannel, change_event

logger = logging.getLogger(__name__)

TABLE_CONVERSATION = "conversation"
TABLE_PARTICIPANT = "conversation_participant"
TABLE_METADATA = "conversation_metadata"
TABLE_MESSAGE = "message"
TABLE_READ_RECEIPT = "message_read"
TABLE_BLOCK = "blocked_user"
TABLE_NOTIFICATION = "notification"
TABLE_PRESENCE = "user_presence"
TABLE_TYPING = "typing_indicator"


def publish_change(
    channel: PropagationChannel | None,
    *,
    event: str,
    table: str,
    entity: Any,
    scopes: Iterable[str],
) -> None:
    """Publish ``entity`` as a change of ``table``; a missing channel is a no-op."""

    if channel is None:
        return
    scopes = [scope for scope in scopes if scope]
    if not scopes:
        return
    delivered = channel.publish(change_event(event, table, entity), scopes)
    logger.debug("Published %s on %s to %d listener(s)", event, table, delivered)


__all__ = [
    "publish_change",
    "TABLE_BLOCK",
    "TABLE_CONVERSATION",
    "TABLE_MESSAGE",
    "TABLE_METADATA",
    "TABLE_NOTIFICATION",
    "TABLE_PARTICIPANT",
    "TABLE_PRESENCE",
    "TABLE_READ_RECEIPT",
    "TABLE_TYPING",
]
