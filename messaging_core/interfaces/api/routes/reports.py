"""Endpoint to report abusive users."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from messaging_core.application.messaging_service import MessagingService
from messaging_core.domain.entities import User
from messaging_core.interfaces.api.dependencies import get_current_user, get_messaging_service
from messaging_core.interfaces.api.schemas import ReportCreate, ReportRead

router = APIRouter(prefix="/reports", tags=["moderation"])


@router.post("/", response_model=ReportRead, status_code=status.HTTP_201_CREATED)
def report_user(
    payload: ReportCreate,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> ReportRead:
    report = service.report_user(
        current_user.id,
        payload.reported_id,
        payload.reason,
        description=payload.description,
        conversation_id=payload.conversation_id,
        message_id=payload.message_id,
    )
    return ReportRead.model_validate(report)
