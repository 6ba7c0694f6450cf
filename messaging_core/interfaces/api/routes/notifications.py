"""Endpoints for the notification inbox."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query

from messaging_core.application.messaging_service import MessagingService
from messaging_core.domain.entities import User
from messaging_core.interfaces.api.dependencies import get_current_user, get_messaging_service
from messaging_core.interfaces.api.schemas import (
    MarkAllReadResponse,
    NotificationRead,
    UnreadCount,
)

router = APIRouter(prefix="/notifications", tags=["notifications"])


@router.get("/", response_model=list[NotificationRead])
def list_notifications(
    unread_only: bool = Query(default=False),
    limit: int = Query(default=50, ge=1, le=200),
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> list[NotificationRead]:
    """Return the most recent notifications for the authenticated user."""

    notifications = service.list_notifications(
        current_user.id, unread_only=unread_only, limit=limit
    )
    return [NotificationRead.model_validate(item) for item in notifications]


@router.get("/unread-count", response_model=UnreadCount)
def count_unread(
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> UnreadCount:
    return UnreadCount(count=service.count_unread_notifications(current_user.id))


@router.post("/read-all", response_model=MarkAllReadResponse)
def mark_all_read(
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> MarkAllReadResponse:
    return MarkAllReadResponse(updated=service.mark_all_notifications_read(current_user.id))


@router.post("/{notification_id}/read", response_model=NotificationRead)
def mark_read(
    notification_id: str,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> NotificationRead:
    notification = service.mark_notification_read(current_user.id, notification_id)
    return NotificationRead.model_validate(notification)
