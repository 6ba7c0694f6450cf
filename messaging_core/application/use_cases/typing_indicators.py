"""Use cases for typing indicators."""

from __future__ import annotations

from datetime import datetime, timedelta

from sqlalchemy.orm import Session

from messaging_core.domain.entities import EVENT_DELETE, EVENT_INSERT, TypingIndicator
from messaging_core.infrastructure.realtime import PropagationChannel, conversation_scope
from messaging_core.infrastructure.repositories import (
    TypingIndicatorRepository,
    UserRepository,
)
from messaging_core.utils import ensure_app_timezone, now_in_app_timezone

from .access import require_participant
from .events import TABLE_TYPING, publish_change

DEFAULT_TYPING_TIMEOUT_SECONDS = 5.0


def start_typing(
    session: Session,
    *,
    conversation_id: str,
    user_id: str,
    timeout_seconds: float = DEFAULT_TYPING_TIMEOUT_SECONDS,
    channel: PropagationChannel | None = None,
    now: datetime | None = None,
) -> TypingIndicator:
    require_participant(session, conversation_id=conversation_id, user_id=user_id)
    current = ensure_app_timezone(now) or now_in_app_timezone()
    repository = TypingIndicatorRepository(session)
    repository.purge_expired(before=current - timedelta(seconds=timeout_seconds))
    indicator = repository.upsert(conversation_id, user_id, started_at=current)
    publish_change(
        channel,
        event=EVENT_INSERT,
        table=TABLE_TYPING,
        entity=indicator,
        scopes=[conversation_scope(conversation_id)],
    )
    user = UserRepository(session).get(user_id)
    indicator.user_name = user.name if user is not None else None
    return indicator


def stop_typing(
    session: Session,
    *,
    conversation_id: str,
    user_id: str,
    channel: PropagationChannel | None = None,
) -> bool:
    require_participant(session, conversation_id=conversation_id, user_id=user_id)
    removed = TypingIndicatorRepository(session).delete(conversation_id, user_id)
    if removed:
        publish_change(
            channel,
            event=EVENT_DELETE,
            table=TABLE_TYPING,
            entity=TypingIndicator(conversation_id=conversation_id, user_id=user_id),
            scopes=[conversation_scope(conversation_id)],
        )
    return removed


def list_typing(
    session: Session,
    *,
    conversation_id: str,
    user_id: str,
    timeout_seconds: float = DEFAULT_TYPING_TIMEOUT_SECONDS,
    now: datetime | None = None,
) -> list[TypingIndicator]:
    """Return who else is typing; indicators older than the timeout are ignored."""

    require_participant(session, conversation_id=conversation_id, user_id=user_id)
    current = ensure_app_timezone(now) or now_in_app_timezone()
    indicators = [
        indicator
        for indicator in TypingIndicatorRepository(session).list_active(
            conversation_id, since=current - timedelta(seconds=timeout_seconds)
        )
        if indicator.user_id != user_id
    ]
    names = UserRepository(session).get_map_by_ids(item.user_id for item in indicators)
    for indicator in indicators:
        profile = names.get(indicator.user_id)
        indicator.user_name = profile.name if profile is not None else None
    return indicators


__all__ = ["list_typing", "start_typing", "stop_typing"]
