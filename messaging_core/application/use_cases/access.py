"""Shared guards for conversation scoped use cases."""

from __future__ import annotations

from sqlalchemy.orm import Session

from messaging_core.domain.entities import Conversation
from messaging_core.domain.exceptions import NotAParticipant, NotFound
from messaging_core.infrastructure.repositories import ConversationRepository


def require_conversation(session: Session, conversation_id: str) -> Conversation:
    conversation = ConversationRepository(session).get(conversation_id)
    if conversation is None:
        raise NotFound("Conversation not found")
    return conversation


def require_participant(
    session: Session, *, conversation_id: str, user_id: str
) -> Conversation:
    """Return the conversation when ``user_id`` takes part in it."""

    conversation = require_conversation(session, conversation_id)
    if not ConversationRepository(session).is_participant(conversation_id, user_id):
        raise NotAParticipant()
    return conversation


__all__ = ["require_conversation", "require_participant"]
