"""Tests for retrying operational database errors."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import OperationalError

from messaging_core.application.use_cases import conversations as conversation_cases
from messaging_core.domain.exceptions import TransientStoreError
from messaging_core.infrastructure.models import ConversationModel, MessageModel
from messaging_core.infrastructure.repositories import (
    ConversationRepository,
    MessageRepository,
    TypingIndicatorRepository,
)


def _locked() -> OperationalError:
    return OperationalError("UPDATE", {}, Exception("database is locked"))


def _count(session_factory, model) -> int:
    session = session_factory()
    try:
        return session.query(model).count()
    finally:
        session.close()


def _fail_once(monkeypatch, owner, name):
    original = getattr(owner, name)
    calls = {"count": 0}

    def flaky(*args, **kwargs):
        calls["count"] += 1
        if calls["count"] == 1:
            raise _locked()
        return original(*args, **kwargs)

    monkeypatch.setattr(owner, name, flaky)
    return calls


def test_failure_before_commit_is_retried_without_duplicates(
    service, session_factory, monkeypatch
):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    calls = _fail_once(monkeypatch, TypingIndicatorRepository, "delete")

    message = service.send_message(conversation.id, "u1", "hi")

    assert calls["count"] == 2
    assert message.content == "hi"
    assert _count(session_factory, MessageModel) == 1
    assert service.get_conversations("u2")[0].unread_count == 1


def test_second_failure_surfaces_as_transient_error(service, monkeypatch):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    calls = {"count": 0}

    def always_locked(self, conversation_id, *, limit, before=None):
        calls["count"] += 1
        raise _locked()

    monkeypatch.setattr(MessageRepository, "list_page", always_locked)

    with pytest.raises(TransientStoreError):
        service.get_messages(conversation.id, "u2")
    assert calls["count"] == 2


def test_failure_after_commit_is_not_replayed(service, session_factory, monkeypatch):
    calls = {"count": 0}

    def locked_announcement(*args, **kwargs):
        calls["count"] += 1
        raise _locked()

    monkeypatch.setattr(conversation_cases, "post_system_message", locked_announcement)

    with pytest.raises(TransientStoreError):
        service.create_group_conversation("u1", ["u2", "u3"], name="Tenants")

    assert calls["count"] == 1
    assert _count(session_factory, ConversationModel) == 1


def test_publishing_failure_after_send_keeps_a_single_message(
    service, session_factory, monkeypatch
):
    conversation = service.get_or_create_direct_conversation("u1", "u2")

    def locked_lookup(self, conversation_id, user_ids):
        raise _locked()

    monkeypatch.setattr(ConversationRepository, "list_metadata_for_user_ids", locked_lookup)

    message = service.send_message(conversation.id, "u1", "still stored")

    assert message.content == "still stored"
    assert _count(session_factory, MessageModel) == 1
    monkeypatch.undo()
    assert service.get_conversations("u2")[0].unread_count == 1
    assert service.list_notifications("u2") == []


def test_leaving_and_purging_is_retried_as_one_transaction(
    service, session_factory, monkeypatch
):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    service.send_message(conversation.id, "u1", "bye")
    assert service.delete_conversation(conversation.id, "u1") is False

    calls = _fail_once(monkeypatch, ConversationRepository, "_delete_conversation_rows")

    assert service.delete_conversation(conversation.id, "u2") is True
    assert calls["count"] == 2
    assert _count(session_factory, ConversationModel) == 0
    assert _count(session_factory, MessageModel) == 0
