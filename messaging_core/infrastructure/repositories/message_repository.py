"""Persistence helpers for messages and read receipts."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime
from typing import Any, Iterable

from sqlalchemy import func
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from messaging_core.domain.entities import Attachment, Message
from messaging_core.infrastructure.models import (
    ConversationMetadataModel,
    ConversationModel,
    MessageModel,
    ReadReceiptModel,
)
from messaging_core.infrastructure.models.conversation import new_identifier
from messaging_core.utils import (
    TIMESTAMP_RESOLUTION,
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_naive_datetime,
)

logger = logging.getLogger(__name__)


class MessageRepository:
    """Store messages and track which users have read them."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, message_id: str) -> Message | None:
        model = self.session.get(MessageModel, message_id)
        if model is None:
            return None
        return self._to_entity(model)

    def append(self, message: Message, *, count_unread: bool = True) -> Message:
        """Persist ``message`` and apply its side effects in one transaction.

        The sender gets a read receipt, the conversation's ``updated_at`` moves
        to the message timestamp and, when ``count_unread`` is set, the cached
        unread counter of every other participant is incremented in SQL.
        Timestamps are kept strictly increasing within a conversation.
        """

        conversation = self.session.get(ConversationModel, message.conversation_id)
        if conversation is None:
            msg = f"Conversation with id {message.conversation_id} not found"
            raise ValueError(msg)

        created_at = now_in_app_naive_datetime()
        if conversation.updated_at is not None and created_at <= conversation.updated_at:
            created_at = conversation.updated_at + TIMESTAMP_RESOLUTION

        model = MessageModel(
            id=message.id or new_identifier(),
            conversation_id=message.conversation_id,
            sender_id=message.sender_id,
            content=message.content or "",
            type=message.type,
            attachments=[Attachment.from_value(item).to_dict() for item in message.attachments],
            created_at=created_at,
            updated_at=created_at,
        )
        self.session.add(model)
        self.session.flush()
        if message.sender_id:
            self.session.add(
                ReadReceiptModel(
                    message_id=model.id,
                    user_id=message.sender_id,
                    read_at=created_at,
                )
            )
        conversation.updated_at = created_at
        self.session.add(conversation)
        self.session.flush()

        if count_unread:
            query = self.session.query(ConversationMetadataModel).filter(
                ConversationMetadataModel.conversation_id == message.conversation_id
            )
            if message.sender_id:
                query = query.filter(ConversationMetadataModel.user_id != message.sender_id)
            query.update(
                {
                    ConversationMetadataModel.unread_count: ConversationMetadataModel.unread_count
                    + 1
                },
                synchronize_session=False,
            )

        self.session.commit()
        self.session.refresh(model)
        entity = self._to_entity(model)
        if message.sender_id:
            entity.read_by = [message.sender_id]
        return entity

    def list_page(
        self,
        conversation_id: str,
        *,
        limit: int,
        before: datetime | None = None,
    ) -> Sequence[Message]:
        """Return up to ``limit`` messages older than ``before``, newest first."""

        query = self.session.query(MessageModel).filter(
            MessageModel.conversation_id == conversation_id
        )
        if before is not None:
            query = query.filter(MessageModel.created_at < ensure_app_naive_datetime(before))
        query = query.order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
        return [self._to_entity(model) for model in query.limit(limit).all()]

    def filter_ids_in_conversation(
        self, conversation_id: str, message_ids: Iterable[str]
    ) -> list[Message]:
        ids = [message_id for message_id in dict.fromkeys(message_ids) if message_id]
        if not ids:
            return []
        query = (
            self.session.query(MessageModel)
            .filter(MessageModel.conversation_id == conversation_id)
            .filter(MessageModel.id.in_(ids))
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def latest_for_conversations(
        self, conversation_ids: Iterable[str]
    ) -> dict[str, Message]:
        """Return the newest message of every conversation in ``conversation_ids``.

        Candidates are narrowed to each conversation's newest timestamp and then
        consumed in one ordered pass; the first message seen per conversation wins.
        """

        ids = list(dict.fromkeys(conversation_ids))
        if not ids:
            return {}

        newest = (
            self.session.query(
                MessageModel.conversation_id.label("conversation_id"),
                func.max(MessageModel.created_at).label("created_at"),
            )
            .filter(MessageModel.conversation_id.in_(ids))
            .group_by(MessageModel.conversation_id)
            .subquery()
        )
        query = (
            self.session.query(MessageModel)
            .join(
                newest,
                (MessageModel.conversation_id == newest.c.conversation_id)
                & (MessageModel.created_at == newest.c.created_at),
            )
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
        )

        latest: dict[str, Message] = {}
        for model in query.all():
            if model.conversation_id not in latest:
                latest[model.conversation_id] = self._to_entity(model)
        return latest

    def readers_by_message(self, message_ids: Iterable[str]) -> dict[str, list[str]]:
        ids = list(dict.fromkeys(message_ids))
        readers: dict[str, list[str]] = {message_id: [] for message_id in ids}
        if not ids:
            return readers
        rows = (
            self.session.query(ReadReceiptModel.message_id, ReadReceiptModel.user_id)
            .filter(ReadReceiptModel.message_id.in_(ids))
            .order_by(ReadReceiptModel.read_at.asc(), ReadReceiptModel.user_id.asc())
            .all()
        )
        for message_id, user_id in rows:
            readers[message_id].append(user_id)
        return readers

    def add_receipts(
        self,
        user_id: str,
        message_ids: Iterable[str],
        read_at: datetime,
    ) -> list[str]:
        """Record that ``user_id`` read ``message_ids``; return the new receipts.

        Existing receipts are left untouched, so repeating the call is a no-op.
        When a concurrent reader inserts the same pair first the transaction is
        rolled back and the remaining difference is retried once.
        """

        ids = [message_id for message_id in dict.fromkeys(message_ids) if message_id]
        if not ids:
            return []
        stored_read_at = ensure_app_naive_datetime(read_at)

        for attempt in range(2):
            existing = {
                message_id
                for (message_id,) in self.session.query(ReadReceiptModel.message_id)
                .filter(ReadReceiptModel.user_id == user_id)
                .filter(ReadReceiptModel.message_id.in_(ids))
                .all()
            }
            missing = [message_id for message_id in ids if message_id not in existing]
            if not missing:
                return []
            self.session.add_all(
                [
                    ReadReceiptModel(message_id=message_id, user_id=user_id, read_at=stored_read_at)
                    for message_id in missing
                ]
            )
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                if attempt:
                    raise
                logger.info(
                    "Concurrent read receipts detected for user %s, retrying", user_id
                )
                continue
            return missing
        return []

    @staticmethod
    def _to_entity(model: MessageModel) -> Message:
        attachments: list[Any] = model.attachments or []
        return Message(
            id=model.id,
            conversation_id=model.conversation_id,
            sender_id=model.sender_id,
            content=model.content or "",
            type=model.type,
            attachments=[Attachment.from_value(item) for item in attachments],
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )


__all__ = ["MessageRepository"]
