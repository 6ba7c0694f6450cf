"""Endpoints to block and unblock users."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from messaging_core.application.messaging_service import MessagingService
from messaging_core.domain.entities import User
from messaging_core.interfaces.api.dependencies import get_current_user, get_messaging_service
from messaging_core.interfaces.api.schemas import BlockCreate, BlockRead, BlockStatus

router = APIRouter(prefix="/blocks", tags=["moderation"])


@router.get("/", response_model=list[BlockRead])
def list_blocked_users(
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> list[BlockRead]:
    return [BlockRead.model_validate(block) for block in service.list_blocked_users(current_user.id)]


@router.get("/{user_id}", response_model=BlockStatus)
def get_block_status(
    user_id: str,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> BlockStatus:
    return BlockStatus(user_id=user_id, blocked=service.is_blocked(current_user.id, user_id))


@router.post("/{user_id}", response_model=BlockRead, status_code=status.HTTP_201_CREATED)
def block_user(
    user_id: str,
    payload: BlockCreate | None = None,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> BlockRead:
    reason = payload.reason if payload is not None else None
    block = service.block_user(current_user.id, user_id, reason=reason)
    return BlockRead.model_validate(block)


@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT)
def unblock_user(
    user_id: str,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> None:
    service.unblock_user(current_user.id, user_id)
