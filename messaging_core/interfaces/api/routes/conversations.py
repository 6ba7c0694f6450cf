"""Endpoints for conversations, their messages and typing indicators."""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status

from messaging_core.application.messaging_service import MessagingService
from messaging_core.domain.entities import User
from messaging_core.interfaces.api.dependencies import get_current_user, get_messaging_service
from messaging_core.interfaces.api.schemas import (
    ConversationLeaveResponse,
    ConversationMetadataRead,
    ConversationMetadataUpdate,
    ConversationRead,
    ConversationSummaryRead,
    DirectConversationCreate,
    GroupConversationCreate,
    MarkReadRequest,
    MarkReadResponse,
    MessageCreate,
    MessageRead,
    TypingRead,
)

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("/", response_model=list[ConversationSummaryRead])
def list_conversations(
    include_archived: bool = Query(default=False),
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> list[ConversationSummaryRead]:
    """Return the conversation list of the authenticated user."""

    summaries = service.get_conversations(current_user.id, include_archived=include_archived)
    return [ConversationSummaryRead.model_validate(summary) for summary in summaries]


@router.post("/", response_model=ConversationRead, status_code=status.HTTP_201_CREATED)
def create_group_conversation(
    payload: GroupConversationCreate,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> ConversationRead:
    conversation = service.create_group_conversation(
        current_user.id,
        payload.participant_ids,
        name=payload.name,
        description=payload.description,
    )
    return ConversationRead.model_validate(conversation)


@router.post("/direct", response_model=ConversationRead)
def get_or_create_direct_conversation(
    payload: DirectConversationCreate,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> ConversationRead:
    """Return the direct conversation with ``payload.user_id``, creating it if needed."""

    conversation = service.get_or_create_direct_conversation(current_user.id, payload.user_id)
    return ConversationRead.model_validate(conversation)


@router.patch("/{conversation_id}/metadata", response_model=ConversationMetadataRead)
def update_conversation_metadata(
    conversation_id: str,
    payload: ConversationMetadataUpdate,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> ConversationMetadataRead:
    metadata = service.update_metadata(
        conversation_id,
        current_user.id,
        pinned=payload.pinned,
        muted=payload.muted,
        archived=payload.archived,
    )
    return ConversationMetadataRead.model_validate(metadata)


@router.delete("/{conversation_id}", response_model=ConversationLeaveResponse)
def leave_conversation(
    conversation_id: str,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> ConversationLeaveResponse:
    purged = service.delete_conversation(conversation_id, current_user.id)
    return ConversationLeaveResponse(purged=purged)


@router.get("/{conversation_id}/messages", response_model=list[MessageRead])
def list_messages(
    conversation_id: str,
    limit: int | None = Query(default=None, ge=1),
    before: str | None = Query(default=None, description="Return messages older than this id"),
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> list[MessageRead]:
    """Return a page of messages, oldest first, and mark them as read."""

    messages = service.get_messages(
        conversation_id, current_user.id, limit=limit, before_message_id=before
    )
    return [MessageRead.model_validate(message) for message in messages]


@router.post(
    "/{conversation_id}/messages",
    response_model=MessageRead,
    status_code=status.HTTP_201_CREATED,
)
def send_message(
    conversation_id: str,
    payload: MessageCreate,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> MessageRead:
    message = service.send_message(
        conversation_id,
        current_user.id,
        payload.content,
        message_type=payload.type,
        attachments=[attachment.model_dump() for attachment in payload.attachments],
    )
    return MessageRead.model_validate(message)


@router.post("/{conversation_id}/read", response_model=MarkReadResponse)
def mark_messages_read(
    conversation_id: str,
    payload: MarkReadRequest,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> MarkReadResponse:
    marked = service.mark_as_read(conversation_id, current_user.id, payload.message_ids)
    return MarkReadResponse(marked=marked)


@router.get("/{conversation_id}/typing", response_model=list[TypingRead])
def list_typing(
    conversation_id: str,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> list[TypingRead]:
    indicators = service.list_typing(conversation_id, current_user.id)
    return [TypingRead.model_validate(indicator) for indicator in indicators]


@router.post("/{conversation_id}/typing", response_model=TypingRead)
def start_typing(
    conversation_id: str,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> TypingRead:
    indicator = service.start_typing(conversation_id, current_user.id)
    return TypingRead.model_validate(indicator)


@router.delete("/{conversation_id}/typing", status_code=status.HTTP_204_NO_CONTENT)
def stop_typing(
    conversation_id: str,
    service: MessagingService = Depends(get_messaging_service),
    current_user: User = Depends(get_current_user),
) -> None:
    service.stop_typing(conversation_id, current_user.id)
