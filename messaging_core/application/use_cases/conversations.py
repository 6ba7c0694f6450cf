"""Use cases for the conversation lifecycle."""

from __future__ import annotations

import logging
from typing import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from messaging_core.domain.entities import (
    CONVERSATION_TYPE_DIRECT,
    CONVERSATION_TYPE_GROUP,
    EVENT_DELETE,
    EVENT_INSERT,
    EVENT_UPDATE,
    Conversation,
    ConversationMetadata,
    ConversationSummary,
    Participant,
    direct_pair_key,
)
from messaging_core.domain.exceptions import (
    BlockedError,
    InvalidRequest,
    NotFound,
    TransientStoreError,
)
from messaging_core.infrastructure.realtime import (
    PropagationChannel,
    conversation_scope,
    user_scope,
)
from messaging_core.infrastructure.repositories import (
    ConversationRepository,
    MessageRepository,
    ModerationRepository,
    UserRepository,
)
from messaging_core.utils import now_in_app_timezone

from .access import require_participant
from .events import TABLE_CONVERSATION, TABLE_METADATA, TABLE_PARTICIPANT, publish_change
from .messages import post_system_message

logger = logging.getLogger(__name__)


def list_conversations(
    session: Session,
    *,
    user_id: str,
    include_archived: bool = False,
) -> list[ConversationSummary]:
    """Return the conversation list of ``user_id``.

    Pinned conversations come first, then the most recently active ones.
    """

    repository = ConversationRepository(session)
    conversations = list(repository.list_for_user(user_id))
    if not conversations:
        return []

    ids = [conversation.id for conversation in conversations]
    metadata = repository.list_metadata_for_user(user_id, ids)
    if not include_archived:
        conversations = [
            conversation
            for conversation in conversations
            if not metadata[conversation.id].archived
        ]
        ids = [conversation.id for conversation in conversations]

    participants = repository.list_participants_for(ids)
    profiles = UserRepository(session).get_map_by_ids(
        participant.user_id
        for members in participants.values()
        for participant in members
    )
    for members in participants.values():
        for participant in members:
            participant.user = profiles.get(participant.user_id)

    latest = MessageRepository(session).latest_for_conversations(ids)
    summaries = [
        ConversationSummary(
            conversation=conversation,
            participants=participants.get(conversation.id, []),
            metadata=metadata[conversation.id],
            last_message=latest.get(conversation.id),
            other_participants=[
                participant
                for participant in participants.get(conversation.id, [])
                if participant.user_id != user_id
            ],
        )
        for conversation in conversations
    ]
    summaries.sort(key=lambda summary: summary.conversation.updated_at, reverse=True)
    summaries.sort(key=lambda summary: not summary.metadata.pinned)
    return summaries


def _ensure_not_blocked(session: Session, user_id: str, other_user_id: str) -> None:
    moderation = ModerationRepository(session)
    if moderation.get_block(other_user_id, user_id) is not None:
        raise BlockedError("You cannot message a user who has blocked you")
    if moderation.get_block(user_id, other_user_id) is not None:
        raise BlockedError("You cannot message a user you have blocked")


def _publish_conversation(
    channel: PropagationChannel | None,
    conversation: Conversation,
    user_ids: Iterable[str],
    *,
    event: str = EVENT_INSERT,
) -> None:
    publish_change(
        channel,
        event=event,
        table=TABLE_CONVERSATION,
        entity=conversation,
        scopes=[user_scope(user_id) for user_id in user_ids],
    )


def get_or_create_direct_conversation(
    session: Session,
    *,
    user_id: str,
    other_user_id: str,
    channel: PropagationChannel | None = None,
) -> Conversation:
    """Return the single direct conversation between two users, creating it once.

    Concurrent callers racing on the same pair all receive the same
    conversation: the loser of the insert race re-reads the winner's row.
    """

    if not other_user_id or user_id == other_user_id:
        raise InvalidRequest("You cannot start a conversation with yourself")
    _ensure_not_blocked(session, user_id, other_user_id)

    users = UserRepository(session)
    if users.get(other_user_id) is None:
        raise NotFound("User not found")

    repository = ConversationRepository(session)
    key = direct_pair_key(user_id, other_user_id)
    existing = repository.get_direct_by_key(key)
    if existing is not None:
        for member_id in (user_id, other_user_id):
            if not repository.is_participant(existing.id, member_id):
                # A participant who left is added back on the next contact.
                repository.add_participant(existing.id, member_id)
                _publish_conversation(channel, existing, [member_id])
        return existing

    now = now_in_app_timezone()
    try:
        conversation = repository.create(
            Conversation(
                id=None,
                type=CONVERSATION_TYPE_DIRECT,
                created_by=user_id,
                direct_key=key,
                created_at=now,
                updated_at=now,
            ),
            [user_id, other_user_id],
        )
    except IntegrityError:
        logger.info("Direct conversation %s created concurrently, reusing it", key)
        winner = repository.get_direct_by_key(key)
        if winner is None:
            raise TransientStoreError() from None
        return winner

    logger.info(
        "Created direct conversation %s between %s and %s",
        conversation.id,
        user_id,
        other_user_id,
    )
    _publish_conversation(channel, conversation, [user_id, other_user_id])
    return conversation


def create_group_conversation(
    session: Session,
    *,
    creator_id: str,
    participant_ids: Iterable[str],
    name: str | None = None,
    description: str | None = None,
    channel: PropagationChannel | None = None,
) -> Conversation:
    """Create a group conversation and announce it with a system message."""

    member_ids = list(dict.fromkeys([creator_id, *[item for item in participant_ids if item]]))
    if len(member_ids) < 2:
        raise InvalidRequest("A group conversation needs at least two participants")

    profiles = UserRepository(session).get_map_by_ids(member_ids)
    missing = [member_id for member_id in member_ids if member_id not in profiles]
    if missing:
        raise NotFound(f"Unknown users: {', '.join(sorted(missing))}")

    clean_name = (name or "").strip() or None
    now = now_in_app_timezone()
    conversation = ConversationRepository(session).create(
        Conversation(
            id=None,
            type=CONVERSATION_TYPE_GROUP,
            created_by=creator_id,
            name=clean_name,
            description=(description or "").strip() or None,
            created_at=now,
            updated_at=now,
        ),
        member_ids,
    )
    logger.info(
        "User %s created group conversation %s with %d participants",
        creator_id,
        conversation.id,
        len(member_ids),
    )
    _publish_conversation(channel, conversation, member_ids)

    creator_name = profiles[creator_id].name
    announcement = (
        f"{creator_name} created the group {clean_name}"
        if clean_name
        else f"{creator_name} created the group"
    )
    post_system_message(
        session,
        conversation_id=conversation.id,
        content=announcement,
        channel=channel,
    )
    return ConversationRepository(session).get(conversation.id) or conversation


def update_conversation_metadata(
    session: Session,
    *,
    conversation_id: str,
    user_id: str,
    pinned: bool | None = None,
    muted: bool | None = None,
    archived: bool | None = None,
    channel: PropagationChannel | None = None,
) -> ConversationMetadata:
    """Change the viewer's pin, mute or archive flags for a conversation."""

    require_participant(session, conversation_id=conversation_id, user_id=user_id)
    metadata = ConversationRepository(session).update_metadata(
        conversation_id,
        user_id,
        pinned=pinned,
        muted=muted,
        archived=archived,
    )
    publish_change(
        channel,
        event=EVENT_UPDATE,
        table=TABLE_METADATA,
        entity=metadata,
        scopes=[user_scope(user_id)],
    )
    return metadata


def leave_conversation(
    session: Session,
    *,
    conversation_id: str,
    user_id: str,
    channel: PropagationChannel | None = None,
) -> bool:
    """Remove ``user_id`` from a conversation.

    Returns ``True`` when the user was the last participant and the
    conversation was purged with all of its messages. Leaving and purging
    share one transaction.
    """

    conversation = require_participant(
        session, conversation_id=conversation_id, user_id=user_id
    )
    repository = ConversationRepository(session)
    remaining = repository.remove_participant(conversation_id, user_id)
    publish_change(
        channel,
        event=EVENT_DELETE,
        table=TABLE_PARTICIPANT,
        entity=Participant(conversation_id=conversation_id, user_id=user_id),
        scopes=[conversation_scope(conversation_id), user_scope(user_id)],
    )

    if remaining == 0:
        logger.info("Purged conversation %s after its last participant left", conversation_id)
        _publish_conversation(channel, conversation, [user_id], event=EVENT_DELETE)
        return True

    if not conversation.is_direct():
        user = UserRepository(session).get(user_id)
        name = user.name if user is not None else "A participant"
        post_system_message(
            session,
            conversation_id=conversation_id,
            content=f"{name} left the conversation",
            channel=channel,
        )
    return False


__all__ = [
    "create_group_conversation",
    "get_or_create_direct_conversation",
    "leave_conversation",
    "list_conversations",
    "update_conversation_metadata",
]
