"""Endpoints for reading and reporting presence."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from messaging_core.application.messaging_service import MessagingService
from messaging_core.domain.entities import User
from messaging_core.interfaces.api.dependencies import get_current_user, get_messaging_service
from messaging_core.interfaces.api.schemas import PresenceRead, PresenceSignal

router = APIRouter(prefix="/presence", tags=["presence"])


@router.get("/", response_model=list[PresenceRead])
def get_presence(
    user_ids: list[str] | None = Query(default=None, alias="user_id"),
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> list[PresenceRead]:
    """Return the presence of the requested users, or of the caller when none is given."""

    ids = user_ids or [current_user.id]
    presence = service.get_presence_map(ids)
    return [PresenceRead.model_validate(presence[user_id]) for user_id in dict.fromkeys(ids)]


@router.post("/", response_model=PresenceRead)
def record_presence(
    payload: PresenceSignal,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> PresenceRead:
    return PresenceRead.model_validate(service.record_presence(current_user.id, payload.signal))
