"""Use cases for tracking online presence."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Iterable

from sqlalchemy.orm import Session

from messaging_core.domain.entities import (
    EVENT_UPDATE,
    PRESENCE_OFFLINE,
    PRESENCE_TRANSITIONS,
    UserPresence,
)
from messaging_core.domain.exceptions import InvalidRequest
from messaging_core.infrastructure.realtime import PropagationChannel, presence_scope
from messaging_core.infrastructure.repositories import PresenceRepository
from messaging_core.utils import ensure_app_timezone, now_in_app_timezone

from .events import TABLE_PRESENCE, publish_change

logger = logging.getLogger(__name__)

DEFAULT_PRESENCE_TIMEOUT_SECONDS = 90.0


def record_presence(
    session: Session,
    *,
    user_id: str,
    signal: str,
    channel: PropagationChannel | None = None,
    now: datetime | None = None,
) -> UserPresence:
    """Apply a client visibility ``signal`` and broadcast the resulting status."""

    status = PRESENCE_TRANSITIONS.get(signal)
    if status is None:
        raise InvalidRequest(f"Unknown presence signal: {signal}")

    seen_at = ensure_app_timezone(now) or now_in_app_timezone()
    presence = PresenceRepository(session).upsert(user_id, status, seen_at=seen_at)
    logger.debug("Presence of %s is now %s (%s)", user_id, status, signal)
    publish_change(
        channel,
        event=EVENT_UPDATE,
        table=TABLE_PRESENCE,
        entity=presence,
        scopes=[presence_scope(user_id)],
    )
    return presence


def _effective(
    presence: UserPresence | None,
    user_id: str,
    *,
    now: datetime,
    timeout_seconds: float,
) -> UserPresence:
    if presence is None:
        return UserPresence(user_id=user_id, status=PRESENCE_OFFLINE)
    if presence.status == PRESENCE_OFFLINE or presence.last_seen is None:
        return presence
    if presence.last_seen < now - timedelta(seconds=timeout_seconds):
        return UserPresence(
            user_id=presence.user_id,
            status=PRESENCE_OFFLINE,
            last_seen=presence.last_seen,
            updated_at=presence.updated_at,
        )
    return presence


def get_presence(
    session: Session,
    *,
    user_id: str,
    timeout_seconds: float = DEFAULT_PRESENCE_TIMEOUT_SECONDS,
    now: datetime | None = None,
) -> UserPresence:
    """Return the presence of ``user_id``; stale or unknown users read as offline."""

    current = ensure_app_timezone(now) or now_in_app_timezone()
    return _effective(
        PresenceRepository(session).get(user_id),
        user_id,
        now=current,
        timeout_seconds=timeout_seconds,
    )


def get_presence_map(
    session: Session,
    *,
    user_ids: Iterable[str],
    timeout_seconds: float = DEFAULT_PRESENCE_TIMEOUT_SECONDS,
    now: datetime | None = None,
) -> dict[str, UserPresence]:
    ids = list(dict.fromkeys(user_id for user_id in user_ids if user_id))
    current = ensure_app_timezone(now) or now_in_app_timezone()
    stored = PresenceRepository(session).get_map(ids)
    return {
        user_id: _effective(
            stored.get(user_id), user_id, now=current, timeout_seconds=timeout_seconds
        )
        for user_id in ids
    }


__all__ = ["get_presence", "get_presence_map", "record_presence"]
