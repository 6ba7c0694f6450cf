"""Tests for blocking and reporting users."""

from __future__ import annotations

import pytest

from messaging_core.domain.exceptions import InvalidRequest, NotFound
from messaging_core.infrastructure.realtime import user_scope


def test_block_is_idempotent_and_directed(service):
    first = service.block_user("u1", "u2", reason="spam")
    second = service.block_user("u1", "u2", reason="ignored")

    assert first.reason == second.reason == "spam"
    assert service.is_blocked("u1", "u2") is True
    assert service.is_blocked("u2", "u1") is False
    assert [block.blocked_id for block in service.list_blocked_users("u1")] == ["u2"]


def test_unblock_is_idempotent(service):
    service.block_user("u1", "u2")

    assert service.unblock_user("u1", "u2") is True
    assert service.unblock_user("u1", "u2") is False
    assert service.is_blocked("u1", "u2") is False


def test_blocking_yourself_or_unknown_users_fails(service):
    with pytest.raises(InvalidRequest):
        service.block_user("u1", "u1")
    with pytest.raises(NotFound):
        service.block_user("u1", "ghost")


def test_block_changes_are_published_to_the_blocker(service, recorder):
    service.subscribe(user_scope("u1"), recorder)

    service.block_user("u1", "u2")
    service.unblock_user("u1", "u2")

    assert [payload["event"] for payload in recorder.changes("blocked_user")] == [
        "insert",
        "delete",
    ]


def test_block_leaves_existing_conversation_untouched(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    service.send_message(conversation.id, "u1", "hello")

    service.block_user("u2", "u1")

    assert [summary.conversation.id for summary in service.get_conversations("u1")] == [
        conversation.id
    ]
    assert len(service.get_messages(conversation.id, "u2")) == 1


def test_report_links_the_message_conversation(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    message = service.send_message(conversation.id, "u2", "rude words")

    report = service.report_user(
        "u1", "u2", " harassment ", description="See message", message_id=message.id
    )

    assert report.id
    assert report.reason == "harassment"
    assert report.conversation_id == conversation.id
    assert report.message_id == message.id


def test_report_validation(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    other = service.get_or_create_direct_conversation("u1", "u3")
    message = service.send_message(other.id, "u3", "hi")

    with pytest.raises(InvalidRequest):
        service.report_user("u1", "u2", "   ")
    with pytest.raises(InvalidRequest):
        service.report_user("u1", "u1", "spam")
    with pytest.raises(NotFound):
        service.report_user("u1", "u2", "spam", conversation_id="missing")
    with pytest.raises(InvalidRequest):
        service.report_user(
            "u1", "u2", "spam", conversation_id=conversation.id, message_id=message.id
        )
