"""Tests for direct conversation creation."""

from __future__ import annotations

from concurrent.futures import ThreadPoolExecutor

import pytest
from sqlalchemy.exc import IntegrityError

from messaging_core.domain.entities import Conversation, direct_pair_key
from messaging_core.domain.exceptions import BlockedError, InvalidRequest, NotFound
from messaging_core.infrastructure.models import (
    ConversationMetadataModel,
    ConversationModel,
    ParticipantModel,
)
from messaging_core.infrastructure.realtime import user_scope
from messaging_core.infrastructure.repositories import ConversationRepository


def _count(session_factory, model) -> int:
    session = session_factory()
    try:
        return session.query(model).count()
    finally:
        session.close()


def test_direct_conversation_is_created_once_for_both_orders(service, session_factory):
    first = service.get_or_create_direct_conversation("u1", "u2")
    second = service.get_or_create_direct_conversation("u2", "u1")

    assert first.id == second.id
    assert first.type == "direct"
    assert first.direct_key == direct_pair_key("u2", "u1") == "u1:u2"
    assert _count(session_factory, ConversationModel) == 1

    session = session_factory()
    try:
        participants = ConversationRepository(session).list_participants(first.id)
    finally:
        session.close()
    assert {participant.user_id for participant in participants} == {"u1", "u2"}


def test_concurrent_creation_yields_a_single_conversation(service, session_factory):
    pairs = [("u1", "u2") if index % 2 == 0 else ("u2", "u1") for index in range(10)]

    with ThreadPoolExecutor(max_workers=5) as executor:
        results = list(
            executor.map(
                lambda pair: service.get_or_create_direct_conversation(*pair), pairs
            )
        )

    assert len({conversation.id for conversation in results}) == 1
    assert _count(session_factory, ConversationModel) == 1
    assert _count(session_factory, ParticipantModel) == 2


def test_losing_writer_returns_the_existing_conversation(service, session_factory, monkeypatch):
    existing = service.get_or_create_direct_conversation("u1", "u2")

    original = ConversationRepository.get_direct_by_key
    calls = {"count": 0}

    def stale_lookup(self, direct_key):
        calls["count"] += 1
        if calls["count"] == 1:
            return None
        return original(self, direct_key)

    monkeypatch.setattr(ConversationRepository, "get_direct_by_key", stale_lookup)

    recovered = service.get_or_create_direct_conversation("u2", "u1")

    assert recovered.id == existing.id
    assert calls["count"] == 2
    assert _count(session_factory, ConversationModel) == 1


def test_blocked_user_cannot_open_a_direct_conversation(service, session_factory):
    service.block_user("u1", "u2")

    with pytest.raises(BlockedError) as blocked_by_other:
        service.get_or_create_direct_conversation("u2", "u1")
    assert str(blocked_by_other.value) == "You cannot message a user who has blocked you"

    with pytest.raises(BlockedError) as blocked_by_self:
        service.get_or_create_direct_conversation("u1", "u2")
    assert str(blocked_by_self.value) == "You cannot message a user you have blocked"

    assert _count(session_factory, ConversationModel) == 0


def test_self_conversation_is_rejected(service):
    with pytest.raises(InvalidRequest):
        service.get_or_create_direct_conversation("u1", "u1")


def test_unknown_user_is_not_found(service):
    with pytest.raises(NotFound):
        service.get_or_create_direct_conversation("u1", "ghost")


def test_creation_is_published_to_both_users(service, recorder):
    other = []
    service.subscribe(user_scope("u1"), recorder)
    service.subscribe(user_scope("u2"), other.append)

    conversation = service.get_or_create_direct_conversation("u1", "u2")

    inserts = recorder.changes("conversation", "insert")
    assert [payload["record"]["id"] for payload in inserts] == [conversation.id]
    assert other and other[0]["record"]["id"] == conversation.id
    assert "direct_key" in inserts[0]["record"]


def test_user_who_left_rejoins_on_next_contact(service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    assert service.delete_conversation(conversation.id, "u1") is False
    assert service.get_conversations("u1") == []

    again = service.get_or_create_direct_conversation("u1", "u2")

    assert again.id == conversation.id
    assert [summary.conversation.id for summary in service.get_conversations("u1")] == [
        conversation.id
    ]


def test_repository_writes_conversation_rows_before_dependents(session_factory, users):
    session = session_factory()
    try:
        repository = ConversationRepository(session)
        created = repository.create(
            Conversation(id=None, type="direct", created_by="u1", direct_key="u1:u2"),
            ["u1", "u2"],
        )

        with pytest.raises(IntegrityError):
            repository.create(
                Conversation(id=None, type="direct", created_by="u2", direct_key="u1:u2"),
                ["u2", "u1"],
            )

        # The session stays usable after the duplicate key was rolled back.
        assert repository.get_direct_by_key("u1:u2").id == created.id
    finally:
        session.close()

    assert _count(session_factory, ConversationModel) == 1
    assert _count(session_factory, ParticipantModel) == 2
    assert _count(session_factory, ConversationMetadataModel) == 2
