"""Tests for sending and listing messages."""

from __future__ import annotations

import pytest

from messaging_core.domain.exceptions import (
    BlockedError,
    InvalidRequest,
    NotAParticipant,
    NotFound,
    PermissionDenied,
)


@pytest.fixture()
def direct(service):
    return service.get_or_create_direct_conversation("u1", "u2")


def test_messages_are_returned_oldest_first_with_increasing_timestamps(service, direct):
    sent = [service.send_message(direct.id, "u1", f"message {index}") for index in range(5)]

    messages = service.get_messages(direct.id, "u2")

    assert [message.id for message in messages] == [message.id for message in sent]
    timestamps = [message.created_at for message in messages]
    assert timestamps == sorted(timestamps)
    assert len(set(timestamps)) == len(timestamps)


def test_sending_bumps_conversation_updated_at(service, direct):
    message = service.send_message(direct.id, "u1", "hi")

    summary = service.get_conversations("u1")[0]

    assert summary.conversation.updated_at == message.created_at
    assert summary.conversation.updated_at > direct.updated_at
    assert summary.last_message.id == message.id


def test_pagination_uses_the_cursor_message(service, direct):
    sent = [service.send_message(direct.id, "u1", f"message {index}") for index in range(5)]

    newest = service.get_messages(direct.id, "u2", limit=2)
    older = service.get_messages(direct.id, "u2", limit=2, before_message_id=newest[0].id)

    assert [message.content for message in newest] == ["message 3", "message 4"]
    assert [message.content for message in older] == ["message 1", "message 2"]
    assert older[-1].id == sent[2].id


def test_invalid_page_requests_are_rejected(service, direct):
    with pytest.raises(InvalidRequest):
        service.get_messages(direct.id, "u2", limit=0)
    with pytest.raises(NotFound):
        service.get_messages(direct.id, "u2", before_message_id="missing")


def test_messages_carry_sender_profile(service, direct):
    service.send_message(direct.id, "u1", "hello")

    [message] = service.get_messages(direct.id, "u2")

    assert message.sender is not None
    assert message.sender.name == "Alice"


def test_non_participant_cannot_send_or_read(service, direct):
    with pytest.raises(NotAParticipant):
        service.send_message(direct.id, "u3", "let me in")
    with pytest.raises(PermissionDenied):
        service.get_messages(direct.id, "u3")


def test_unknown_conversation_is_not_found(service):
    with pytest.raises(NotFound):
        service.send_message("missing", "u1", "hello")


def test_empty_message_without_attachments_is_rejected(service, direct):
    with pytest.raises(InvalidRequest):
        service.send_message(direct.id, "u1", "   ")


def test_users_cannot_send_system_messages(service, direct):
    with pytest.raises(InvalidRequest):
        service.send_message(direct.id, "u1", "fake", message_type="system")


def test_attachment_only_message_is_accepted(service, direct):
    message = service.send_message(
        direct.id,
        "u1",
        "",
        message_type="image",
        attachments=[{"url": "https://cdn.test/cat.png", "name": "cat.png", "size": 12, "type": "image/png"}],
    )

    [stored] = service.get_messages(direct.id, "u2")

    assert stored.id == message.id
    assert stored.type == "image"
    assert stored.attachments[0].url == "https://cdn.test/cat.png"
    assert stored.attachments[0].type == "image/png"


def test_malformed_attachment_is_rejected(service, direct):
    with pytest.raises(InvalidRequest):
        service.send_message(direct.id, "u1", "look", attachments=[{"name": "no-url.png"}])


def test_block_prevents_sending_but_keeps_history(service, direct):
    first = service.send_message(direct.id, "u2", "before the block")

    service.block_user("u1", "u2")

    with pytest.raises(BlockedError):
        service.send_message(direct.id, "u2", "after the block")
    with pytest.raises(BlockedError):
        service.send_message(direct.id, "u1", "blocker cannot send either")

    assert [message.id for message in service.get_messages(direct.id, "u1")] == [first.id]
    assert [message.id for message in service.get_messages(direct.id, "u2")] == [first.id]


def test_sending_after_unblock_works(service, direct):
    service.block_user("u1", "u2")
    service.unblock_user("u1", "u2")

    message = service.send_message(direct.id, "u2", "we are fine again")

    assert message.content == "we are fine again"


def test_group_members_can_message_despite_blocks(service):
    group = service.create_group_conversation("u1", ["u2", "u3"], name="Volunteers")
    service.block_user("u2", "u3")

    message = service.send_message(group.id, "u3", "hello group")

    assert message.conversation_id == group.id


def test_first_scenario(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")

    message = service.send_message(conversation.id, "u1", "hi", "text", [])

    bob_summary = service.get_conversations("u2")[0]
    assert bob_summary.conversation.id == conversation.id
    assert bob_summary.conversation.updated_at > conversation.updated_at
    assert bob_summary.unread_count == 1

    messages = service.get_messages(conversation.id, "u2", 50)

    assert [item.id for item in messages] == [message.id]
    assert "u2" in messages[0].read_by
    assert service.get_conversations("u2")[0].unread_count == 0
