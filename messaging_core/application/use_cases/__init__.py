"""Aggregate application use cases."""

from .attachments import delete_attachment, upload_attachment, validate_attachment
from .conversations import (
    create_group_conversation,
    get_or_create_direct_conversation,
    leave_conversation,
    list_conversations,
    update_conversation_metadata,
)
from .messages import get_messages, mark_messages_read, post_system_message, send_message
from .moderation import block_user, is_blocked, list_blocked_users, report_user, unblock_user
from .notifications import (
    NotificationDispatcher,
    build_preview,
    count_unread_notifications,
    list_notifications,
    mark_all_notifications_read,
    mark_notification_read,
)
from .presence import get_presence, get_presence_map, record_presence
from .typing_indicators import list_typing, start_typing, stop_typing

__all__ = [
    "NotificationDispatcher",
    "block_user",
    "build_preview",
    "count_unread_notifications",
    "create_group_conversation",
    "delete_attachment",
    "get_messages",
    "get_or_create_direct_conversation",
    "get_presence",
    "get_presence_map",
    "is_blocked",
    "leave_conversation",
    "list_blocked_users",
    "list_conversations",
    "list_notifications",
    "list_typing",
    "mark_all_notifications_read",
    "mark_messages_read",
    "mark_notification_read",
    "post_system_message",
    "record_presence",
    "report_user",
    "send_message",
    "start_typing",
    "stop_typing",
    "unblock_user",
    "update_conversation_metadata",
    "upload_attachment",
    "validate_attachment",
]
