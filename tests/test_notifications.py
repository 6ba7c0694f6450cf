"""Tests for the notification dispatcher and inbox."""

from __future__ import annotations

import pytest

from messaging_core.application.use_cases.notifications import build_preview, conversation_link
from messaging_core.domain.exceptions import NotFound
from messaging_core.infrastructure.realtime import user_scope


@pytest.mark.parametrize(
    ("content", "expected"),
    [
        ("hello", "hello"),
        ("x" * 120, "x" * 120),
        ("y" * 121, "y" * 117 + "..."),
        ("", "Sent an attachment"),
        (None, "Sent an attachment"),
    ],
)
def test_build_preview(content, expected):
    assert build_preview(content) == expected


def test_new_message_notifies_the_other_participant(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")

    service.send_message(conversation.id, "u1", "Are you coming tonight?")

    [notification] = service.list_notifications("u2")
    assert notification.type == "new_message"
    assert notification.title == "New message from Alice"
    assert notification.message == (
        f"Are you coming tonight? (Conversation: {conversation.id})"
    )
    assert notification.read is False
    assert service.list_notifications("u1") == []


def test_long_messages_are_truncated_in_notifications(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")

    service.send_message(conversation.id, "u1", "a" * 300)

    [notification] = service.list_notifications("u2")
    assert notification.message.startswith("a" * 117 + "... (Conversation: ")


def test_muted_conversation_skips_notifications_but_counts_unread(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    service.update_metadata(conversation.id, "u2", muted=True)

    service.send_message(conversation.id, "u1", "psst")

    assert service.list_notifications("u2") == []
    assert service.get_conversations("u2")[0].unread_count == 1


def test_group_member_who_blocked_the_sender_is_not_notified(service):
    group = service.create_group_conversation("u1", ["u2", "u3"], name="Pantry")
    service.block_user("u3", "u1")

    service.send_message(group.id, "u1", "Shift starts at 9")

    assert len(service.list_notifications("u2")) == 1
    assert service.list_notifications("u3") == []


def test_notifications_are_published_to_the_recipient(service, recorder):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    service.subscribe(user_scope("u2"), recorder)

    service.send_message(conversation.id, "u1", "hi")

    [change] = recorder.changes("notification", "insert")
    assert change["record"]["user_id"] == "u2"
    assert recorder.of_type("desktop-notification") == []


def test_desktop_notification_requires_permission(service, recorder):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    service.subscribe(user_scope("u2"), recorder)
    assert service.set_notification_permission("u2", True) is True

    service.send_message(conversation.id, "u1", "hi")

    [desktop] = recorder.of_type("desktop-notification")
    assert desktop["data"] == {
        "title": "New message from Alice",
        "body": "hi",
        "tag": conversation.id,
        "link": conversation_link(conversation.id),
    }
    assert desktop["data"]["link"] == f"/messages?conversation={conversation.id}"


def test_notification_read_state_is_independent_of_receipts(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    service.send_message(conversation.id, "u1", "hi")

    service.get_messages(conversation.id, "u2")

    assert service.count_unread_notifications("u2") == 1


def test_inbox_operations(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    for index in range(3):
        service.send_message(conversation.id, "u1", f"note {index}")

    first = service.list_notifications("u2")[0]
    updated = service.mark_notification_read("u2", first.id)

    assert updated.read is True
    assert service.count_unread_notifications("u2") == 2
    assert len(service.list_notifications("u2", unread_only=True)) == 2
    assert service.mark_all_notifications_read("u2") == 2
    assert service.count_unread_notifications("u2") == 0


def test_users_cannot_read_someone_elses_notification(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    service.send_message(conversation.id, "u1", "hi")
    [notification] = service.list_notifications("u2")

    with pytest.raises(NotFound):
        service.mark_notification_read("u1", notification.id)
