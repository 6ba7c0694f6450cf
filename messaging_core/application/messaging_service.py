"""Messaging service orchestrating the conversation use cases."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from typing import Any, Callable, Iterable, Mapping, TypeVar

from sqlalchemy import event
from sqlalchemy.exc import InterfaceError, OperationalError
from sqlalchemy.orm import Session, sessionmaker

from messaging_core.config import Settings, get_settings
from messaging_core.domain.entities import (
    Attachment,
    Block,
    Conversation,
    ConversationMetadata,
    ConversationSummary,
    Message,
    Notification,
    TypingIndicator,
    User,
    UserPresence,
    UserReport,
)
from messaging_core.domain.exceptions import TransientStoreError
from messaging_core.infrastructure.realtime import (
    Listener,
    NotificationSink,
    PropagationChannel,
    RealtimeNotificationSink,
    Subscription,
    conversation_scope,
)
from messaging_core.infrastructure.repositories import UserRepository
from messaging_core.infrastructure.storage import AttachmentStore, build_attachment_store

from .use_cases import attachments as attachment_cases
from .use_cases import conversations as conversation_cases
from .use_cases import messages as message_cases
from .use_cases import moderation as moderation_cases
from .use_cases import notifications as notification_cases
from .use_cases import presence as presence_cases
from .use_cases import typing_indicators as typing_cases
from .use_cases.access import require_participant

logger = logging.getLogger(__name__)

T = TypeVar("T")

_TRANSIENT_ERRORS = (OperationalError, InterfaceError)


class MessagingService:
    """Entry point for every messaging operation.

    Each call runs in its own database session. Operational database errors
    are retried once with a fresh session before surfacing as
    :class:`TransientStoreError`, unless the failed attempt already committed
    writes that a second run would repeat. Every other failure is terminal.
    """

    def __init__(
        self,
        session_factory: sessionmaker[Session],
        *,
        channel: PropagationChannel | None = None,
        notification_sink: NotificationSink | None = None,
        attachment_store: AttachmentStore | None = None,
        settings: Settings | None = None,
    ) -> None:
        self.session_factory = session_factory
        self.settings = settings or get_settings()
        self.channel = channel or PropagationChannel()
        self.notification_sink = notification_sink or RealtimeNotificationSink(self.channel)
        self._attachment_store = attachment_store
        self.dispatcher = notification_cases.NotificationDispatcher(
            channel=self.channel,
            sink=self.notification_sink,
            preview_length=self.settings.notification_preview_length,
        )

    @property
    def attachment_store(self) -> AttachmentStore:
        if self._attachment_store is None:
            self._attachment_store = build_attachment_store(self.settings)
        return self._attachment_store

    def _run(
        self,
        operation: Callable[[Session], T],
        description: str,
        *,
        idempotent: bool = False,
    ) -> T:
        """Run ``operation`` in a fresh session, retrying one transient failure.

        Use cases commit as they go. Unless ``idempotent`` is set, a failure
        after the first commit is not retried so committed writes are never
        applied twice.
        """

        for attempt in range(2):
            session = self.session_factory()
            commits: list[Session] = []
            event.listen(session, "after_commit", lambda committed: commits.append(committed))
            try:
                return operation(session)
            except _TRANSIENT_ERRORS as exc:
                session.rollback()
                if attempt:
                    logger.error("Giving up on %s after retry: %s", description, exc)
                    raise TransientStoreError() from exc
                if commits and not idempotent:
                    logger.error(
                        "Transient database error after %s committed, not retrying: %s",
                        description,
                        exc,
                    )
                    raise TransientStoreError() from exc
                logger.warning("Transient database error during %s, retrying: %s", description, exc)
            finally:
                session.close()
        raise TransientStoreError()

    # Profiles

    def get_user(self, user_id: str) -> User | None:
        return self._run(
            lambda session: UserRepository(session).get(user_id), "get_user", idempotent=True
        )

    def upsert_user(self, user: User) -> User:
        return self._run(
            lambda session: UserRepository(session).upsert(user), "upsert_user", idempotent=True
        )

    # Conversations

    def get_conversations(
        self, user_id: str, *, include_archived: bool = False
    ) -> list[ConversationSummary]:
        return self._run(
            lambda session: conversation_cases.list_conversations(
                session, user_id=user_id, include_archived=include_archived
            ),
            "get_conversations",
            idempotent=True,
        )

    def get_or_create_direct_conversation(
        self, user_id: str, other_user_id: str
    ) -> Conversation:
        return self._run(
            lambda session: conversation_cases.get_or_create_direct_conversation(
                session,
                user_id=user_id,
                other_user_id=other_user_id,
                channel=self.channel,
            ),
            "get_or_create_direct_conversation",
            idempotent=True,
        )

    def create_group_conversation(
        self,
        creator_id: str,
        participant_ids: Iterable[str],
        name: str | None = None,
        description: str | None = None,
    ) -> Conversation:
        participant_ids = list(participant_ids)
        return self._run(
            lambda session: conversation_cases.create_group_conversation(
                session,
                creator_id=creator_id,
                participant_ids=participant_ids,
                name=name,
                description=description,
                channel=self.channel,
            ),
            "create_group_conversation",
        )

    def update_metadata(
        self,
        conversation_id: str,
        user_id: str,
        *,
        pinned: bool | None = None,
        muted: bool | None = None,
        archived: bool | None = None,
    ) -> ConversationMetadata:
        return self._run(
            lambda session: conversation_cases.update_conversation_metadata(
                session,
                conversation_id=conversation_id,
                user_id=user_id,
                pinned=pinned,
                muted=muted,
                archived=archived,
                channel=self.channel,
            ),
            "update_metadata",
            idempotent=True,
        )

    def delete_conversation(self, conversation_id: str, user_id: str) -> bool:
        return self._run(
            lambda session: conversation_cases.leave_conversation(
                session,
                conversation_id=conversation_id,
                user_id=user_id,
                channel=self.channel,
            ),
            "delete_conversation",
        )

    # Messages

    def send_message(
        self,
        conversation_id: str,
        sender_id: str,
        content: str | None,
        message_type: str = "text",
        attachments: Iterable[Attachment | Mapping[str, Any]] | None = None,
    ) -> Message:
        items = list(attachments or [])
        return self._run(
            lambda session: message_cases.send_message(
                session,
                conversation_id=conversation_id,
                sender_id=sender_id,
                content=content,
                message_type=message_type,
                attachments=items,
                channel=self.channel,
                dispatcher=self.dispatcher,
            ),
            "send_message",
        )

    def get_messages(
        self,
        conversation_id: str,
        user_id: str,
        limit: int | None = None,
        before_message_id: str | None = None,
    ) -> list[Message]:
        return self._run(
            lambda session: message_cases.get_messages(
                session,
                conversation_id=conversation_id,
                user_id=user_id,
                limit=limit,
                before_message_id=before_message_id,
                channel=self.channel,
                default_limit=self.settings.messages_page_size,
                max_limit=self.settings.max_messages_page_size,
            ),
            "get_messages",
            idempotent=True,
        )

    def mark_as_read(
        self, conversation_id: str, user_id: str, message_ids: Iterable[str]
    ) -> list[str]:
        ids = list(message_ids)
        return self._run(
            lambda session: message_cases.mark_messages_read(
                session,
                conversation_id=conversation_id,
                user_id=user_id,
                message_ids=ids,
                channel=self.channel,
            ),
            "mark_as_read",
            idempotent=True,
        )

    # Moderation

    def block_user(self, user_id: str, target_id: str, reason: str | None = None) -> Block:
        return self._run(
            lambda session: moderation_cases.block_user(
                session,
                user_id=user_id,
                target_id=target_id,
                reason=reason,
                channel=self.channel,
            ),
            "block_user",
            idempotent=True,
        )

    def unblock_user(self, user_id: str, target_id: str) -> bool:
        return self._run(
            lambda session: moderation_cases.unblock_user(
                session, user_id=user_id, target_id=target_id, channel=self.channel
            ),
            "unblock_user",
            idempotent=True,
        )

    def is_blocked(self, user_id: str, target_id: str) -> bool:
        return self._run(
            lambda session: moderation_cases.is_blocked(
                session, user_id=user_id, target_id=target_id
            ),
            "is_blocked",
            idempotent=True,
        )

    def list_blocked_users(self, user_id: str) -> Sequence[Block]:
        return self._run(
            lambda session: moderation_cases.list_blocked_users(session, user_id=user_id),
            "list_blocked_users",
            idempotent=True,
        )

    def report_user(
        self,
        reporter_id: str,
        reported_id: str,
        reason: str,
        description: str | None = None,
        conversation_id: str | None = None,
        message_id: str | None = None,
    ) -> UserReport:
        return self._run(
            lambda session: moderation_cases.report_user(
                session,
                reporter_id=reporter_id,
                reported_id=reported_id,
                reason=reason,
                description=description,
                conversation_id=conversation_id,
                message_id=message_id,
            ),
            "report_user",
        )

    # Presence and typing

    def record_presence(self, user_id: str, signal: str) -> UserPresence:
        return self._run(
            lambda session: presence_cases.record_presence(
                session, user_id=user_id, signal=signal, channel=self.channel
            ),
            "record_presence",
            idempotent=True,
        )

    def get_presence(self, user_id: str) -> UserPresence:
        return self._run(
            lambda session: presence_cases.get_presence(
                session,
                user_id=user_id,
                timeout_seconds=self.settings.presence_timeout_seconds,
            ),
            "get_presence",
            idempotent=True,
        )

    def get_presence_map(self, user_ids: Iterable[str]) -> dict[str, UserPresence]:
        ids = list(user_ids)
        return self._run(
            lambda session: presence_cases.get_presence_map(
                session,
                user_ids=ids,
                timeout_seconds=self.settings.presence_timeout_seconds,
            ),
            "get_presence_map",
            idempotent=True,
        )

    def start_typing(self, conversation_id: str, user_id: str) -> TypingIndicator:
        return self._run(
            lambda session: typing_cases.start_typing(
                session,
                conversation_id=conversation_id,
                user_id=user_id,
                timeout_seconds=self.settings.typing_timeout_seconds,
                channel=self.channel,
            ),
            "start_typing",
            idempotent=True,
        )

    def stop_typing(self, conversation_id: str, user_id: str) -> bool:
        return self._run(
            lambda session: typing_cases.stop_typing(
                session,
                conversation_id=conversation_id,
                user_id=user_id,
                channel=self.channel,
            ),
            "stop_typing",
            idempotent=True,
        )

    def list_typing(self, conversation_id: str, user_id: str) -> list[TypingIndicator]:
        return self._run(
            lambda session: typing_cases.list_typing(
                session,
                conversation_id=conversation_id,
                user_id=user_id,
                timeout_seconds=self.settings.typing_timeout_seconds,
            ),
            "list_typing",
            idempotent=True,
        )

    # Attachments

    def upload_attachment(
        self,
        user_id: str,
        filename: str,
        content_type: str | None,
        data: bytes,
        kind: str | None = None,
    ) -> Attachment:
        return attachment_cases.upload_attachment(
            self.attachment_store,
            user_id=user_id,
            filename=filename,
            content_type=content_type,
            data=data,
            kind=kind,
            max_image_bytes=self.settings.max_image_bytes,
            max_file_bytes=self.settings.max_file_bytes,
        )

    def delete_attachment(self, url: str) -> None:
        attachment_cases.delete_attachment(self.attachment_store, url=url)

    # Notifications

    def list_notifications(
        self, user_id: str, *, unread_only: bool = False, limit: int | None = 50
    ) -> Sequence[Notification]:
        return self._run(
            lambda session: notification_cases.list_notifications(
                session, user_id=user_id, unread_only=unread_only, limit=limit
            ),
            "list_notifications",
            idempotent=True,
        )

    def count_unread_notifications(self, user_id: str) -> int:
        return self._run(
            lambda session: notification_cases.count_unread_notifications(
                session, user_id=user_id
            ),
            "count_unread_notifications",
            idempotent=True,
        )

    def mark_notification_read(self, user_id: str, notification_id: str) -> Notification:
        return self._run(
            lambda session: notification_cases.mark_notification_read(
                session,
                user_id=user_id,
                notification_id=notification_id,
                channel=self.channel,
            ),
            "mark_notification_read",
            idempotent=True,
        )

    def mark_all_notifications_read(self, user_id: str) -> int:
        return self._run(
            lambda session: notification_cases.mark_all_notifications_read(
                session, user_id=user_id
            ),
            "mark_all_notifications_read",
            idempotent=True,
        )

    def set_notification_permission(self, user_id: str, granted: bool) -> bool:
        return self.notification_sink.request_permission(user_id, granted)

    # Realtime

    def subscribe(self, scope: str, listener: Listener) -> Subscription:
        return self.channel.subscribe(scope, listener)

    def subscribe_conversation(
        self, conversation_id: str, user_id: str, listener: Listener
    ) -> Subscription:
        """Subscribe ``listener`` to a conversation the user takes part in."""

        self._run(
            lambda session: require_participant(
                session, conversation_id=conversation_id, user_id=user_id
            ),
            "subscribe_conversation",
            idempotent=True,
        )
        return self.channel.subscribe(conversation_scope(conversation_id), listener)

    def close(self) -> None:
        self.channel.close()


__all__ = ["MessagingService"]
