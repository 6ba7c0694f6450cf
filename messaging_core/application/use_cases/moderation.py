"""Use cases for blocking and reporting users."""

from __future__ import annotations

import logging
from collections.abc import Sequence

from sqlalchemy.orm import Session

from messaging_core.domain.entities import (
    EVENT_DELETE,
    EVENT_INSERT,
    Block,
    UserReport,
)
from messaging_core.domain.exceptions import InvalidRequest, NotFound
from messaging_core.infrastructure.realtime import PropagationChannel, user_scope
from messaging_core.infrastructure.repositories import (
    ConversationRepository,
    MessageRepository,
    ModerationRepository,
    UserRepository,
)
from messaging_core.utils import now_in_app_timezone

from .events import TABLE_BLOCK, publish_change

logger = logging.getLogger(__name__)


def _require_other_user(session: Session, user_id: str, target_id: str, action: str) -> None:
    if not target_id or user_id == target_id:
        raise InvalidRequest(f"You cannot {action} yourself")
    if UserRepository(session).get(target_id) is None:
        raise NotFound("User not found")


def block_user(
    session: Session,
    *,
    user_id: str,
    target_id: str,
    reason: str | None = None,
    channel: PropagationChannel | None = None,
) -> Block:
    """Block ``target_id``; blocking twice keeps the original edge."""

    _require_other_user(session, user_id, target_id, "block")
    repository = ModerationRepository(session)
    existing = repository.get_block(user_id, target_id)
    if existing is not None:
        return existing

    block = repository.add_block(
        Block(
            blocker_id=user_id,
            blocked_id=target_id,
            reason=(reason or "").strip() or None,
            created_at=now_in_app_timezone(),
        )
    )
    logger.info("User %s blocked user %s", user_id, target_id)
    publish_change(
        channel,
        event=EVENT_INSERT,
        table=TABLE_BLOCK,
        entity=block,
        scopes=[user_scope(user_id)],
    )
    return block


def unblock_user(
    session: Session,
    *,
    user_id: str,
    target_id: str,
    channel: PropagationChannel | None = None,
) -> bool:
    repository = ModerationRepository(session)
    block = repository.get_block(user_id, target_id)
    if block is None:
        return False
    removed = repository.remove_block(user_id, target_id)
    if removed:
        logger.info("User %s unblocked user %s", user_id, target_id)
        publish_change(
            channel,
            event=EVENT_DELETE,
            table=TABLE_BLOCK,
            entity=block,
            scopes=[user_scope(user_id)],
        )
    return removed


def is_blocked(session: Session, *, user_id: str, target_id: str) -> bool:
    """Return whether ``user_id`` has blocked ``target_id``."""

    return ModerationRepository(session).get_block(user_id, target_id) is not None


def list_blocked_users(session: Session, *, user_id: str) -> Sequence[Block]:
    return ModerationRepository(session).list_blocked(user_id)


def report_user(
    session: Session,
    *,
    reporter_id: str,
    reported_id: str,
    reason: str,
    description: str | None = None,
    conversation_id: str | None = None,
    message_id: str | None = None,
) -> UserReport:
    """File an abuse report, optionally pointing at a conversation or message."""

    _require_other_user(session, reporter_id, reported_id, "report")
    clean_reason = (reason or "").strip()
    if not clean_reason:
        raise InvalidRequest("A reason is required to report a user")

    if conversation_id and ConversationRepository(session).get(conversation_id) is None:
        raise NotFound("Conversation not found")
    if message_id:
        message = MessageRepository(session).get(message_id)
        if message is None:
            raise NotFound("Message not found")
        if conversation_id and message.conversation_id != conversation_id:
            raise InvalidRequest("The message does not belong to the conversation")
        conversation_id = conversation_id or message.conversation_id

    report = ModerationRepository(session).create_report(
        UserReport(
            id=None,
            reporter_id=reporter_id,
            reported_id=reported_id,
            reason=clean_reason,
            description=(description or "").strip() or None,
            conversation_id=conversation_id,
            message_id=message_id,
            created_at=now_in_app_timezone(),
        )
    )
    logger.warning(
        "User %s reported user %s (report %s): %s",
        reporter_id,
        reported_id,
        report.id,
        clean_reason,
    )
    return report


__all__ = [
    "block_user",
    "is_blocked",
    "list_blocked_users",
    "report_user",
    "unblock_user",
]
