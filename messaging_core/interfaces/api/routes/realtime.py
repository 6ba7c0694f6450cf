"""Websocket endpoint streaming change events to connected clients."""

from __future__ import annotations

import asyncio
import logging
import threading
from contextlib import ExitStack
from typing import Any

from fastapi import APIRouter, HTTPException, WebSocket, WebSocketDisconnect
from starlette.concurrency import run_in_threadpool

from messaging_core.application.messaging_service import MessagingService
from messaging_core.domain.entities import SIGNAL_FOCUS, SIGNAL_UNLOAD, User
from messaging_core.domain.exceptions import MessagingError
from messaging_core.infrastructure.realtime import Subscription, presence_scope, user_scope
from messaging_core.interfaces.api.dependencies import resolve_current_user

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/realtime", tags=["realtime"])

POLICY_VIOLATION = 1008


class _Connection:
    """State of one websocket client."""

    def __init__(self, websocket: WebSocket, service: MessagingService, user: User) -> None:
        self.websocket = websocket
        self.service = service
        self.user = user
        self.queue: asyncio.Queue[dict[str, Any]] = asyncio.Queue()
        self.loop = asyncio.get_running_loop()
        self.subscriptions: dict[str, Subscription] = {}

    def listener(self, payload: dict[str, Any]) -> None:
        # Events may be published from worker threads.
        self.loop.call_soon_threadsafe(self.queue.put_nowait, payload)

    def release_all(self) -> None:
        for subscription in self.subscriptions.values():
            subscription.release()
        self.subscriptions.clear()

    async def pump(self) -> None:
        while True:
            payload = await self.queue.get()
            await self.websocket.send_json(payload)

    async def send_error(self, exc: MessagingError) -> None:
        await self.websocket.send_json(
            {"type": "error", "code": exc.code, "detail": exc.message}
        )

    async def handle(self, message: dict[str, Any]) -> None:
        message_type = message.get("type")
        service = self.service
        user_id = self.user.id

        if message_type == "ping":
            await self.websocket.send_json({"type": "pong"})
        elif message_type == "subscribe":
            conversation_id = str(message.get("conversation_id") or "")
            scope_key = f"conversation:{conversation_id}"
            if scope_key not in self.subscriptions:
                self.subscriptions[scope_key] = await run_in_threadpool(
                    service.subscribe_conversation, conversation_id, user_id, self.listener
                )
            await self.websocket.send_json(
                {"type": "subscribed", "conversation_id": conversation_id}
            )
        elif message_type == "unsubscribe":
            conversation_id = str(message.get("conversation_id") or "")
            subscription = self.subscriptions.pop(f"conversation:{conversation_id}", None)
            if subscription is not None:
                subscription.release()
        elif message_type == "watch-presence":
            for watched_id in message.get("user_ids") or []:
                scope = presence_scope(str(watched_id))
                if scope not in self.subscriptions:
                    self.subscriptions[scope] = service.subscribe(scope, self.listener)
        elif message_type == "presence":
            await run_in_threadpool(service.record_presence, user_id, str(message.get("signal")))
        elif message_type == "typing":
            conversation_id = str(message.get("conversation_id") or "")
            if message.get("typing", True):
                await run_in_threadpool(service.start_typing, conversation_id, user_id)
            else:
                await run_in_threadpool(service.stop_typing, conversation_id, user_id)
        elif message_type == "notification-permission":
            granted = service.set_notification_permission(user_id, bool(message.get("granted")))
            await self.websocket.send_json(
                {"type": "notification-permission", "granted": granted}
            )
        elif message_type == "read":
            conversation_id = str(message.get("conversation_id") or "")
            ids = [str(item) for item in message.get("message_ids") or []]
            await run_in_threadpool(service.mark_as_read, conversation_id, user_id, ids)
        else:
            logger.debug("Ignoring realtime message of type %r from %s", message_type, user_id)


class ConnectionManager:
    """Track the open realtime connections of every user."""

    def __init__(self) -> None:
        self.active_connections: dict[str, set[_Connection]] = {}
        self._lock = threading.Lock()

    def connect(self, connection: _Connection) -> int:
        with self._lock:
            connections = self.active_connections.setdefault(connection.user.id, set())
            connections.add(connection)
            return len(connections)

    def disconnect(self, connection: _Connection) -> int:
        """Forget ``connection`` and return how many the user still has open."""

        with self._lock:
            connections = self.active_connections.get(connection.user.id)
            if connections is None:
                return 0
            connections.discard(connection)
            if not connections:
                del self.active_connections[connection.user.id]
            return len(connections)

    def connection_count(self, user_id: str) -> int:
        with self._lock:
            return len(self.active_connections.get(user_id, ()))


async def _stop_sender(sender: asyncio.Task, user_id: str) -> None:
    sender.cancel()
    try:
        await sender
    except asyncio.CancelledError:
        pass
    except Exception as exc:
        logger.warning("Realtime sender for %s failed: %s", user_id, exc)


@router.websocket("/ws")
async def realtime_websocket(websocket: WebSocket) -> None:
    """Stream change events for the authenticated user.

    The user scope is subscribed on connect; conversation and presence scopes
    are added by client messages. Every subscription is released when the
    socket closes. The user is reported offline once their last socket closes.
    """

    service: MessagingService = websocket.app.state.messaging_service
    connections: ConnectionManager = websocket.app.state.realtime_connections
    token = websocket.query_params.get("token")
    if not token:
        await websocket.close(code=POLICY_VIOLATION)
        return
    try:
        user = await run_in_threadpool(resolve_current_user, token, service)
    except HTTPException:
        await websocket.close(code=POLICY_VIOLATION)
        return

    await websocket.accept()
    connection = _Connection(websocket, service, user)
    connections.connect(connection)

    with ExitStack() as stack:
        stack.enter_context(service.subscribe(user_scope(user.id), connection.listener))
        stack.callback(connection.release_all)
        sender = asyncio.create_task(connection.pump())

        try:
            await run_in_threadpool(service.record_presence, user.id, SIGNAL_FOCUS)
            while True:
                try:
                    message = await websocket.receive_json()
                except WebSocketDisconnect:
                    raise
                except ValueError:
                    continue
                if not isinstance(message, dict):
                    continue
                try:
                    await connection.handle(message)
                except MessagingError as exc:
                    await connection.send_error(exc)
        except WebSocketDisconnect:
            logger.debug("Realtime client %s disconnected", user.id)
        finally:
            await _stop_sender(sender, user.id)
            remaining = connections.disconnect(connection)
            if remaining:
                logger.debug("User %s keeps %d realtime connection(s)", user.id, remaining)
            else:
                try:
                    await run_in_threadpool(service.record_presence, user.id, SIGNAL_UNLOAD)
                except MessagingError:
                    logger.warning("Could not mark user %s offline", user.id)


__all__ = ["ConnectionManager", "router"]
