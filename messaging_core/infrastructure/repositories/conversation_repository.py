"""Persistence helpers for conversations, participants and viewer metadata."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from messaging_core.domain.entities import (
    Conversation,
    ConversationMetadata,
    Participant,
)
from messaging_core.infrastructure.models import (
    ConversationMetadataModel,
    ConversationModel,
    MessageModel,
    ParticipantModel,
    ReadReceiptModel,
    TypingIndicatorModel,
)
from messaging_core.infrastructure.models.conversation import new_identifier
from messaging_core.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class ConversationRepository:
    """Provide persistence operations for :class:`Conversation` objects."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, conversation_id: str) -> Conversation | None:
        model = self.session.get(ConversationModel, conversation_id)
        if model is None:
            return None
        return self._to_entity(model)

    def get_direct_by_key(self, direct_key: str) -> Conversation | None:
        model = (
            self.session.query(ConversationModel)
            .filter(ConversationModel.direct_key == direct_key)
            .first()
        )
        if model is None:
            return None
        return self._to_entity(model)

    def list_for_user(self, user_id: str) -> Sequence[Conversation]:
        """Return every conversation ``user_id`` participates in."""

        query = (
            self.session.query(ConversationModel)
            .join(
                ParticipantModel,
                ParticipantModel.conversation_id == ConversationModel.id,
            )
            .filter(ParticipantModel.user_id == user_id)
            .order_by(ConversationModel.updated_at.desc(), ConversationModel.id.desc())
        )
        return [self._to_entity(model) for model in query.all()]

    def create(
        self, conversation: Conversation, participant_ids: Iterable[str]
    ) -> Conversation:
        """Insert ``conversation`` with its participants and metadata rows.

        Everything is written in a single transaction. A unique violation on
        ``direct_key`` rolls the transaction back and propagates
        :class:`~sqlalchemy.exc.IntegrityError` to the caller.
        """

        created_at = ensure_app_naive_datetime(
            conversation.created_at or now_in_app_timezone()
        )
        model = ConversationModel(
            id=conversation.id or new_identifier(),
            type=conversation.type,
            name=conversation.name,
            description=conversation.description,
            created_by=conversation.created_by,
            direct_key=conversation.direct_key,
            created_at=created_at,
            updated_at=ensure_app_naive_datetime(conversation.updated_at) or created_at,
        )
        try:
            self.session.add(model)
            # The models declare no relationships, so the parent row must be
            # flushed before the rows referencing it.
            self.session.flush()
            for user_id in dict.fromkeys(participant_ids):
                self.session.add(
                    ParticipantModel(
                        conversation_id=model.id,
                        user_id=user_id,
                        joined_at=created_at,
                    )
                )
                self.session.add(
                    ConversationMetadataModel(
                        conversation_id=model.id,
                        user_id=user_id,
                        pinned=False,
                        muted=False,
                        archived=False,
                        unread_count=0,
                    )
                )
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            raise
        self.session.refresh(model)
        return self._to_entity(model)

    def get_participant(self, conversation_id: str, user_id: str) -> Participant | None:
        model = self.session.get(ParticipantModel, (conversation_id, user_id))
        if model is None:
            return None
        return self._participant_to_entity(model)

    def is_participant(self, conversation_id: str, user_id: str) -> bool:
        return self.session.get(ParticipantModel, (conversation_id, user_id)) is not None

    def list_participants(self, conversation_id: str) -> Sequence[Participant]:
        query = (
            self.session.query(ParticipantModel)
            .filter(ParticipantModel.conversation_id == conversation_id)
            .order_by(ParticipantModel.joined_at.asc(), ParticipantModel.user_id.asc())
        )
        return [self._participant_to_entity(model) for model in query.all()]

    def list_participants_for(
        self, conversation_ids: Iterable[str]
    ) -> dict[str, list[Participant]]:
        ids = list(dict.fromkeys(conversation_ids))
        participants: dict[str, list[Participant]] = {
            conversation_id: [] for conversation_id in ids
        }
        if not ids:
            return participants
        query = (
            self.session.query(ParticipantModel)
            .filter(ParticipantModel.conversation_id.in_(ids))
            .order_by(ParticipantModel.joined_at.asc(), ParticipantModel.user_id.asc())
        )
        for model in query.all():
            participants[model.conversation_id].append(
                self._participant_to_entity(model)
            )
        return participants

    def get_metadata(self, conversation_id: str, user_id: str) -> ConversationMetadata:
        """Return the viewer's metadata, creating a default row when missing."""

        model = self._get_or_create_metadata_model(conversation_id, user_id)
        return self._metadata_to_entity(model)

    def list_metadata_for_user(
        self, user_id: str, conversation_ids: Iterable[str]
    ) -> dict[str, ConversationMetadata]:
        ids = list(dict.fromkeys(conversation_ids))
        if not ids:
            return {}
        models = (
            self.session.query(ConversationMetadataModel)
            .filter(ConversationMetadataModel.user_id == user_id)
            .filter(ConversationMetadataModel.conversation_id.in_(ids))
            .all()
        )
        metadata = {model.conversation_id: self._metadata_to_entity(model) for model in models}
        for conversation_id in ids:
            if conversation_id not in metadata:
                metadata[conversation_id] = self.get_metadata(conversation_id, user_id)
        return metadata

    def list_metadata_for_user_ids(
        self, conversation_id: str, user_ids: Iterable[str]
    ) -> dict[str, ConversationMetadata]:
        """Return the stored metadata of several viewers of one conversation."""

        ids = list(dict.fromkeys(user_ids))
        if not ids:
            return {}
        models = (
            self.session.query(ConversationMetadataModel)
            .filter(ConversationMetadataModel.conversation_id == conversation_id)
            .filter(ConversationMetadataModel.user_id.in_(ids))
            .all()
        )
        return {model.user_id: self._metadata_to_entity(model) for model in models}

    def update_metadata(
        self,
        conversation_id: str,
        user_id: str,
        *,
        pinned: bool | None = None,
        muted: bool | None = None,
        archived: bool | None = None,
    ) -> ConversationMetadata:
        model = self._get_or_create_metadata_model(conversation_id, user_id)
        if pinned is not None:
            model.pinned = pinned
        if muted is not None:
            model.muted = muted
        if archived is not None:
            model.archived = archived
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._metadata_to_entity(model)

    def mark_read(
        self, conversation_id: str, user_id: str, read_at: datetime
    ) -> ConversationMetadata:
        """Reset the viewer's unread counter and move both read cursors."""

        stored_read_at = ensure_app_naive_datetime(read_at)
        participant = self.session.get(ParticipantModel, (conversation_id, user_id))
        if participant is not None:
            participant.last_read_at = stored_read_at
            self.session.add(participant)
        model = self._get_or_create_metadata_model(conversation_id, user_id)
        model.unread_count = 0
        model.last_read_at = stored_read_at
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._metadata_to_entity(model)

    def add_participant(self, conversation_id: str, user_id: str) -> Participant:
        """Add ``user_id`` back to an existing conversation."""

        model = self.session.get(ParticipantModel, (conversation_id, user_id))
        if model is None:
            model = ParticipantModel(
                conversation_id=conversation_id,
                user_id=user_id,
                joined_at=ensure_app_naive_datetime(now_in_app_timezone()),
            )
            self.session.add(model)
            try:
                self.session.commit()
            except IntegrityError:
                self.session.rollback()
                model = self.session.get(ParticipantModel, (conversation_id, user_id))
                if model is None:
                    raise
        self._get_or_create_metadata_model(conversation_id, user_id)
        return self._participant_to_entity(model)

    def remove_participant(self, conversation_id: str, user_id: str) -> int:
        """Remove ``user_id`` from the conversation and return who is left.

        When nobody remains the conversation and its messages are deleted in
        the same transaction.
        """

        for model_class in (TypingIndicatorModel, ConversationMetadataModel, ParticipantModel):
            self.session.query(model_class).filter(
                model_class.conversation_id == conversation_id,
                model_class.user_id == user_id,
            ).delete(synchronize_session=False)
        remaining = (
            self.session.query(ParticipantModel)
            .filter(ParticipantModel.conversation_id == conversation_id)
            .count()
        )
        if remaining == 0:
            self._delete_conversation_rows(conversation_id)
        self.session.commit()
        return remaining

    def _delete_conversation_rows(self, conversation_id: str) -> None:
        message_ids = self.session.query(MessageModel.id).filter(
            MessageModel.conversation_id == conversation_id
        )
        self.session.query(ReadReceiptModel).filter(
            ReadReceiptModel.message_id.in_(message_ids.scalar_subquery())
        ).delete(synchronize_session=False)
        for model_class in (
            MessageModel,
            TypingIndicatorModel,
            ConversationMetadataModel,
            ParticipantModel,
        ):
            self.session.query(model_class).filter(
                model_class.conversation_id == conversation_id
            ).delete(synchronize_session=False)
        self.session.query(ConversationModel).filter(
            ConversationModel.id == conversation_id
        ).delete(synchronize_session=False)

    def _get_or_create_metadata_model(
        self, conversation_id: str, user_id: str
    ) -> ConversationMetadataModel:
        model = self.session.get(ConversationMetadataModel, (conversation_id, user_id))
        if model is not None:
            return model
        model = ConversationMetadataModel(
            conversation_id=conversation_id,
            user_id=user_id,
            pinned=False,
            muted=False,
            archived=False,
            unread_count=0,
        )
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError:
            # Another request created the row first.
            self.session.rollback()
            model = self.session.get(ConversationMetadataModel, (conversation_id, user_id))
            if model is None:
                raise
        return model

    @staticmethod
    def _to_entity(model: ConversationModel) -> Conversation:
        return Conversation(
            id=model.id,
            type=model.type,
            created_by=model.created_by,
            name=model.name,
            description=model.description,
            direct_key=model.direct_key,
            created_at=ensure_app_timezone(model.created_at),
            updated_at=ensure_app_timezone(model.updated_at),
        )

    @staticmethod
    def _participant_to_entity(model: ParticipantModel) -> Participant:
        return Participant(
            conversation_id=model.conversation_id,
            user_id=model.user_id,
            joined_at=ensure_app_timezone(model.joined_at),
            last_read_at=ensure_app_timezone(model.last_read_at),
        )

    @staticmethod
    def _metadata_to_entity(model: ConversationMetadataModel) -> ConversationMetadata:
        return ConversationMetadata(
            conversation_id=model.conversation_id,
            user_id=model.user_id,
            pinned=bool(model.pinned),
            muted=bool(model.muted),
            archived=bool(model.archived),
            unread_count=int(model.unread_count or 0),
            last_read_at=ensure_app_timezone(model.last_read_at),
        )


__all__ = ["ConversationRepository"]
