"""Notification dispatch for new messages and the notification inbox."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.orm import Session

from messaging_core.domain.entities import (
    EVENT_INSERT,
    EVENT_UPDATE,
    NOTIFICATION_TYPE_NEW_MESSAGE,
    Conversation,
    Message,
    Notification,
)
from messaging_core.domain.exceptions import InvalidRequest, NotFound
from messaging_core.infrastructure.realtime import (
    NotificationSink,
    PropagationChannel,
    user_scope,
)
from messaging_core.infrastructure.repositories import (
    ConversationRepository,
    ModerationRepository,
    NotificationRepository,
    UserRepository,
)
from messaging_core.utils import now_in_app_timezone

from .events import TABLE_NOTIFICATION, publish_change

logger = logging.getLogger(__name__)

DEFAULT_PREVIEW_LENGTH = 120
ATTACHMENT_PREVIEW = "Sent an attachment"
ELLIPSIS = "..."


def build_preview(content: str | None, max_length: int = DEFAULT_PREVIEW_LENGTH) -> str:
    """Return the notification preview for a message body.

    Bodies longer than ``max_length`` keep their first ``max_length - 3``
    characters followed by ``"..."``.
    """

    text = (content or "").strip()
    if not text:
        return ATTACHMENT_PREVIEW
    if len(text) > max_length:
        return text[: max_length - len(ELLIPSIS)] + ELLIPSIS
    return text


def conversation_link(conversation_id: str) -> str:
    return f"/messages?conversation={conversation_id}"


class NotificationDispatcher:
    """Create notifications for the recipients of a new message."""

    def __init__(
        self,
        *,
        channel: PropagationChannel | None = None,
        sink: NotificationSink | None = None,
        preview_length: int = DEFAULT_PREVIEW_LENGTH,
    ) -> None:
        self.channel = channel
        self.sink = sink
        self.preview_length = preview_length

    def dispatch(
        self, session: Session, *, message: Message, conversation: Conversation
    ) -> list[Notification]:
        """Notify every participant except the sender; return what was stored."""

        if message.is_system() or not message.sender_id:
            return []

        conversations = ConversationRepository(session)
        recipients = [
            participant.user_id
            for participant in conversations.list_participants(conversation.id)
            if participant.user_id != message.sender_id
        ]
        if not recipients:
            return []

        metadata = conversations.list_metadata_for_user_ids(conversation.id, recipients)
        blockers = ModerationRepository(session).blocked_by_any(recipients, message.sender_id)
        sender = UserRepository(session).get(message.sender_id)
        sender_name = sender.name if sender is not None else "Someone"

        preview = build_preview(message.content, self.preview_length)
        title = f"New message from {sender_name}"
        repository = NotificationRepository(session)

        created: list[Notification] = []
        for recipient_id in recipients:
            recipient_metadata = metadata.get(recipient_id)
            if recipient_metadata is not None and recipient_metadata.muted:
                logger.debug(
                    "Skipping notification for %s: conversation %s is muted",
                    recipient_id,
                    conversation.id,
                )
                continue
            if recipient_id in blockers:
                logger.debug(
                    "Skipping notification for %s: sender %s is blocked",
                    recipient_id,
                    message.sender_id,
                )
                continue

            notification = repository.create(
                Notification(
                    id=None,
                    user_id=recipient_id,
                    type=NOTIFICATION_TYPE_NEW_MESSAGE,
                    title=title,
                    message=f"{preview} (Conversation: {conversation.id})",
                    read=False,
                    created_at=now_in_app_timezone(),
                )
            )
            created.append(notification)
            publish_change(
                self.channel,
                event=EVENT_INSERT,
                table=TABLE_NOTIFICATION,
                entity=notification,
                scopes=[user_scope(recipient_id)],
            )
            self._show_desktop(recipient_id, title=title, body=preview, conversation=conversation)
        return created

    def _show_desktop(
        self, user_id: str, *, title: str, body: str, conversation: Conversation
    ) -> None:
        if self.sink is None or not self.sink.has_permission(user_id):
            return
        try:
            self.sink.show(
                user_id,
                title,
                body,
                conversation.id,
                conversation_link(conversation.id),
            )
        except Exception:
            logger.exception("Desktop notification for user %s failed", user_id)


def list_notifications(
    session: Session,
    *,
    user_id: str,
    unread_only: bool = False,
    limit: int | None = 50,
) -> Sequence[Notification]:
    if limit is not None and limit < 1:
        raise InvalidRequest("limit must be a positive integer")
    return NotificationRepository(session).list_for_user(
        user_id, unread_only=unread_only, limit=limit
    )


def count_unread_notifications(session: Session, *, user_id: str) -> int:
    return NotificationRepository(session).count_unread(user_id)


def mark_notification_read(
    session: Session,
    *,
    user_id: str,
    notification_id: str,
    channel: PropagationChannel | None = None,
) -> Notification:
    """Mark one of ``user_id``'s notifications as read."""

    notification = NotificationRepository(session).mark_as_read(
        notification_id, user_id=user_id
    )
    if notification is None:
        raise NotFound("Notification not found")
    publish_change(
        channel,
        event=EVENT_UPDATE,
        table=TABLE_NOTIFICATION,
        entity=notification,
        scopes=[user_scope(user_id)],
    )
    return notification


def mark_all_notifications_read(session: Session, *, user_id: str) -> int:
    updated = NotificationRepository(session).mark_all_as_read(user_id)
    logger.info("Marked %d notification(s) as read for user %s", updated, user_id)
    return updated


__all__ = [
    "NotificationDispatcher",
    "build_preview",
    "conversation_link",
    "count_unread_notifications",
    "list_notifications",
    "mark_all_notifications_read",
    "mark_notification_read",
]
