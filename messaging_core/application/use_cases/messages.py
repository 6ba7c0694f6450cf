"""Use cases for sending, listing and reading messages."""

from __future__ import annotations

import logging
from typing import Any, Iterable, Mapping

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from messaging_core.domain.entities import (
    EVENT_DELETE,
    EVENT_INSERT,
    EVENT_UPDATE,
    MESSAGE_TYPE_SYSTEM,
    MESSAGE_TYPE_TEXT,
    USER_MESSAGE_TYPES,
    Attachment,
    Conversation,
    Message,
    ReadReceipt,
    TypingIndicator,
)
from messaging_core.domain.exceptions import BlockedError, InvalidRequest, NotFound
from messaging_core.infrastructure.realtime import (
    PropagationChannel,
    conversation_scope,
    user_scope,
)
from messaging_core.infrastructure.repositories import (
    ConversationRepository,
    MessageRepository,
    ModerationRepository,
    TypingIndicatorRepository,
    UserRepository,
)
from messaging_core.utils import now_in_app_timezone

from .access import require_participant
from .events import (
    TABLE_CONVERSATION,
    TABLE_MESSAGE,
    TABLE_METADATA,
    TABLE_READ_RECEIPT,
    TABLE_TYPING,
    publish_change,
)
from .notifications import NotificationDispatcher

logger = logging.getLogger(__name__)

DEFAULT_PAGE_SIZE = 50
MAX_PAGE_SIZE = 200


def _coerce_attachments(
    attachments: Iterable[Attachment | Mapping[str, Any]] | None,
) -> list[Attachment]:
    if attachments is None:
        return []
    return [Attachment.from_value(item) for item in attachments]


def _other_participant_ids(
    session: Session, conversation_id: str, user_id: str | None
) -> list[str]:
    return [
        participant.user_id
        for participant in ConversationRepository(session).list_participants(conversation_id)
        if participant.user_id != user_id
    ]


def _publish_new_message(
    session: Session,
    channel: PropagationChannel | None,
    *,
    conversation: Conversation,
    message: Message,
) -> None:
    if channel is None:
        return
    publish_change(
        channel,
        event=EVENT_INSERT,
        table=TABLE_MESSAGE,
        entity=message,
        scopes=[conversation_scope(conversation.id)],
    )
    if message.sender_id:
        publish_change(
            channel,
            event=EVENT_INSERT,
            table=TABLE_READ_RECEIPT,
            entity=ReadReceipt(
                message_id=message.id,
                user_id=message.sender_id,
                read_at=message.created_at,
            ),
            scopes=[conversation_scope(conversation.id)],
        )

    conversations = ConversationRepository(session)
    refreshed = conversations.get(conversation.id) or conversation
    participants = conversations.list_participants(conversation.id)
    publish_change(
        channel,
        event=EVENT_UPDATE,
        table=TABLE_CONVERSATION,
        entity=refreshed,
        scopes=[user_scope(participant.user_id) for participant in participants],
    )
    if message.is_system():
        return
    metadata = conversations.list_metadata_for_user_ids(
        conversation.id,
        [
            participant.user_id
            for participant in participants
            if participant.user_id != message.sender_id
        ],
    )
    for user_id, entry in metadata.items():
        publish_change(
            channel,
            event=EVENT_UPDATE,
            table=TABLE_METADATA,
            entity=entry,
            scopes=[user_scope(user_id)],
        )


def send_message(
    session: Session,
    *,
    conversation_id: str,
    sender_id: str,
    content: str | None,
    message_type: str = MESSAGE_TYPE_TEXT,
    attachments: Iterable[Attachment | Mapping[str, Any]] | None = None,
    channel: PropagationChannel | None = None,
    dispatcher: NotificationDispatcher | None = None,
) -> Message:
    """Post a message from ``sender_id`` to a conversation they take part in."""

    conversation = require_participant(
        session, conversation_id=conversation_id, user_id=sender_id
    )

    if conversation.is_direct():
        other_ids = _other_participant_ids(session, conversation_id, sender_id)
        moderation = ModerationRepository(session)
        if any(moderation.is_blocked_either(sender_id, other_id) for other_id in other_ids):
            raise BlockedError("You cannot send messages in this conversation")

    if message_type not in USER_MESSAGE_TYPES:
        raise InvalidRequest(f"Unsupported message type: {message_type}")
    items = _coerce_attachments(attachments)
    text = content or ""
    if not text.strip() and not items:
        raise InvalidRequest("Message content cannot be empty")

    sender = UserRepository(session).get(sender_id)
    if TypingIndicatorRepository(session).delete(conversation_id, sender_id):
        publish_change(
            channel,
            event=EVENT_DELETE,
            table=TABLE_TYPING,
            entity=TypingIndicator(conversation_id=conversation_id, user_id=sender_id),
            scopes=[conversation_scope(conversation_id)],
        )

    # Work after this commit is best effort and never fails the call.
    message = MessageRepository(session).append(
        Message(
            id=None,
            conversation_id=conversation_id,
            sender_id=sender_id,
            content=text,
            type=message_type,
            attachments=items,
        )
    )
    message.sender = sender
    logger.info(
        "User %s sent message %s to conversation %s", sender_id, message.id, conversation_id
    )

    try:
        _publish_new_message(session, channel, conversation=conversation, message=message)
    except SQLAlchemyError:
        session.rollback()
        logger.exception("Publishing message %s failed", message.id)

    if dispatcher is not None:
        try:
            dispatcher.dispatch(session, message=message, conversation=conversation)
        except SQLAlchemyError:
            # The message is stored; notifications are best effort.
            session.rollback()
            logger.exception(
                "Notification dispatch failed for message %s", message.id
            )

    return message


def post_system_message(
    session: Session,
    *,
    conversation_id: str,
    content: str,
    channel: PropagationChannel | None = None,
) -> Message:
    """Write a service generated message; it never counts as unread."""

    conversation = ConversationRepository(session).get(conversation_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    message = MessageRepository(session).append(
        Message(
            id=None,
            conversation_id=conversation_id,
            sender_id=None,
            content=content,
            type=MESSAGE_TYPE_SYSTEM,
        ),
        count_unread=False,
    )
    _publish_new_message(session, channel, conversation=conversation, message=message)
    return message


def _record_reads(
    session: Session,
    channel: PropagationChannel | None,
    *,
    conversation_id: str,
    user_id: str,
    messages: Iterable[Message],
) -> list[str]:
    """Acknowledge ``messages`` for ``user_id`` and reset the viewer's counters."""

    read_at = now_in_app_timezone()
    unread_ids = [
        message.id
        for message in messages
        if message.sender_id != user_id and not message.is_read_by(user_id)
    ]
    inserted = MessageRepository(session).add_receipts(user_id, unread_ids, read_at)
    metadata = ConversationRepository(session).mark_read(conversation_id, user_id, read_at)

    for message_id in inserted:
        publish_change(
            channel,
            event=EVENT_INSERT,
            table=TABLE_READ_RECEIPT,
            entity=ReadReceipt(message_id=message_id, user_id=user_id, read_at=read_at),
            scopes=[conversation_scope(conversation_id)],
        )
    publish_change(
        channel,
        event=EVENT_UPDATE,
        table=TABLE_METADATA,
        entity=metadata,
        scopes=[user_scope(user_id)],
    )
    return inserted


def _enrich(session: Session, messages: list[Message]) -> list[Message]:
    if not messages:
        return messages
    readers = MessageRepository(session).readers_by_message(
        [message.id for message in messages]
    )
    senders = UserRepository(session).get_map_by_ids(
        [message.sender_id for message in messages if message.sender_id]
    )
    for message in messages:
        message.read_by = readers.get(message.id, [])
        if message.sender_id:
            message.sender = senders.get(message.sender_id)
    return messages


def get_messages(
    session: Session,
    *,
    conversation_id: str,
    user_id: str,
    limit: int | None = None,
    before_message_id: str | None = None,
    channel: PropagationChannel | None = None,
    default_limit: int = DEFAULT_PAGE_SIZE,
    max_limit: int = MAX_PAGE_SIZE,
) -> list[Message]:
    """Return a page of messages, oldest first, and mark it as read.

    The page holds the ``limit`` newest messages created before
    ``before_message_id`` (or before now when no cursor is given).
    """

    require_participant(session, conversation_id=conversation_id, user_id=user_id)

    page_size = default_limit if limit is None else limit
    if page_size < 1:
        raise InvalidRequest("limit must be a positive integer")
    page_size = min(page_size, max_limit)

    repository = MessageRepository(session)
    before = None
    if before_message_id:
        cursor = repository.get(before_message_id)
        if cursor is None or cursor.conversation_id != conversation_id:
            raise NotFound("Message not found")
        before = cursor.created_at

    messages = list(reversed(repository.list_page(conversation_id, limit=page_size, before=before)))
    _enrich(session, messages)
    inserted = _record_reads(
        session,
        channel,
        conversation_id=conversation_id,
        user_id=user_id,
        messages=messages,
    )
    if inserted:
        inserted_ids = set(inserted)
        for message in messages:
            if message.id in inserted_ids:
                message.read_by.append(user_id)
    return messages


def mark_messages_read(
    session: Session,
    *,
    conversation_id: str,
    user_id: str,
    message_ids: Iterable[str],
    channel: PropagationChannel | None = None,
) -> list[str]:
    """Mark ``message_ids`` as read; ids from other conversations are ignored."""

    require_participant(session, conversation_id=conversation_id, user_id=user_id)
    messages = MessageRepository(session).filter_ids_in_conversation(
        conversation_id, message_ids
    )
    return _record_reads(
        session,
        channel,
        conversation_id=conversation_id,
        user_id=user_id,
        messages=messages,
    )


__all__ = [
    "DEFAULT_PAGE_SIZE",
    "MAX_PAGE_SIZE",
    "get_messages",
    "mark_messages_read",
    "post_system_message",
    "send_message",
]
