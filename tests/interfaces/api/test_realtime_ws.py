"""Tests for the realtime websocket endpoint."""

from __future__ import annotations

import asyncio
import logging

import pytest
from starlette.websockets import WebSocketDisconnect

from messaging_core.domain.entities import User
from messaging_core.infrastructure.realtime import user_scope
from messaging_core.infrastructure.security import create_access_token
from messaging_core.interfaces.api.routes.realtime import ConnectionManager, _stop_sender


def _receive_until(websocket, predicate, limit: int = 20):
    for _ in range(limit):
        payload = websocket.receive_json()
        if predicate(payload):
            return payload
    raise AssertionError("Expected realtime payload was not received")


def test_connection_without_token_is_refused(client):
    with pytest.raises(WebSocketDisconnect):
        with client.websocket_connect("/realtime/ws") as websocket:
            websocket.receive_json()


def test_conversation_events_are_streamed(client, service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    token = create_access_token({"sub": "u2"})

    with client.websocket_connect(f"/realtime/ws?token={token}") as websocket:
        websocket.send_json({"type": "ping"})
        assert _receive_until(websocket, lambda p: p.get("type") == "pong") == {"type": "pong"}

        websocket.send_json({"type": "subscribe", "conversation_id": conversation.id})
        _receive_until(websocket, lambda p: p.get("type") == "subscribed")

        message = service.send_message(conversation.id, "u1", "live!")

        change = _receive_until(
            websocket,
            lambda p: p.get("type") == "change" and p.get("table") == "message",
        )
        assert change["event"] == "insert"
        assert change["record"]["id"] == message.id
        assert change["record"]["content"] == "live!"

    assert client.app.state.realtime_connections.connection_count("u2") == 0
    assert service.channel.subscriber_count(user_scope("u2")) == 0
    assert service.channel.subscriber_count() == 0


def test_subscribing_to_a_foreign_conversation_reports_an_error(client, service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    token = create_access_token({"sub": "u3"})

    with client.websocket_connect(f"/realtime/ws?token={token}") as websocket:
        websocket.send_json({"type": "subscribe", "conversation_id": conversation.id})
        error = _receive_until(websocket, lambda p: p.get("type") == "error")

    assert error["code"] == "not_a_participant"


def test_permission_message_enables_desktop_notifications(client, service):
    conversation = service.get_or_create_direct_conversation("u1", "u2")
    token = create_access_token({"sub": "u2"})

    with client.websocket_connect(f"/realtime/ws?token={token}") as websocket:
        websocket.send_json({"type": "notification-permission", "granted": True})
        _receive_until(websocket, lambda p: p.get("type") == "notification-permission")

        service.send_message(conversation.id, "u1", "ring ring")

        desktop = _receive_until(websocket, lambda p: p.get("type") == "desktop-notification")
        assert desktop["data"]["body"] == "ring ring"
        assert desktop["data"]["tag"] == conversation.id


def test_presence_stays_online_while_another_socket_is_open(client, service):
    token = create_access_token({"sub": "u2"})
    connections = client.app.state.realtime_connections

    with client.websocket_connect(f"/realtime/ws?token={token}") as first:
        first.send_json({"type": "ping"})
        _receive_until(first, lambda p: p.get("type") == "pong")

        with client.websocket_connect(f"/realtime/ws?token={token}") as second:
            second.send_json({"type": "ping"})
            _receive_until(second, lambda p: p.get("type") == "pong")
            assert connections.connection_count("u2") == 2

        assert connections.connection_count("u2") == 1
        assert service.get_presence("u2").status == "online"

    assert connections.connection_count("u2") == 0


class _FakeConnection:
    def __init__(self, user_id: str) -> None:
        self.user = User(id=user_id, name=user_id)


def test_connection_manager_counts_sockets_per_user():
    manager = ConnectionManager()
    laptop = _FakeConnection("u1")
    phone = _FakeConnection("u1")
    other = _FakeConnection("u2")

    assert manager.connect(laptop) == 1
    assert manager.connect(phone) == 2
    assert manager.connect(other) == 1

    assert manager.disconnect(laptop) == 1
    assert manager.disconnect(laptop) == 1
    assert manager.disconnect(phone) == 0
    assert manager.connection_count("u1") == 0
    assert manager.connection_count("u2") == 1


def test_stopping_the_sender_reports_its_failure(caplog):
    async def broken_sender():
        raise RuntimeError("socket already closed")

    async def scenario():
        failed = asyncio.create_task(broken_sender())
        await asyncio.sleep(0)
        await _stop_sender(failed, "u1")

        idle = asyncio.create_task(asyncio.sleep(10))
        await _stop_sender(idle, "u1")
        return idle

    with caplog.at_level(logging.WARNING, logger="messaging_core.interfaces.api.routes.realtime"):
        idle = asyncio.run(scenario())

    assert "socket already closed" in caplog.text
    assert idle.cancelled()
