"""In-process publish/subscribe channel for realtime change events."""

from __future__ import annotations

import asyncio
import inspect
import logging
import threading
from collections import defaultdict
from typing import Any, Callable, DefaultDict, Iterable, Protocol

from anyio import from_thread

logger = logging.getLogger(__name__)


class ChannelEvent(Protocol):
    def to_payload(self) -> dict[str, Any]:
        ...


Listener = Callable[[dict[str, Any]], Any]


def conversation_scope(conversation_id: str) -> str:
    return f"conversation:{conversation_id}"


def user_scope(user_id: str) -> str:
    return f"user:{user_id}"


def presence_scope(user_id: str) -> str:
    return f"presence:{user_id}"


class Subscription:
    """Handle returned by :meth:`PropagationChannel.subscribe`.

    Usable as a context manager; :meth:`release` may be called any number of
    times.
    """

    def __init__(self, channel: "PropagationChannel", scope: str, listener: Listener) -> None:
        self._channel = channel
        self.scope = scope
        self.listener = listener
        self._released = False

    @property
    def active(self) -> bool:
        return not self._released

    def release(self) -> None:
        if self._released:
            return
        self._released = True
        self._channel._remove(self)

    def __enter__(self) -> "Subscription":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.release()


class PropagationChannel:
    """Deliver change events to listeners subscribed to named scopes."""

    def __init__(self) -> None:
        self._subscriptions: DefaultDict[str, list[Subscription]] = defaultdict(list)
        self._lock = threading.Lock()

    def subscribe(self, scope: str, listener: Listener) -> Subscription:
        """Register ``listener`` for every event published on ``scope``."""

        if not scope:
            raise ValueError("Subscription scope must not be empty")
        subscription = Subscription(self, scope, listener)
        with self._lock:
            self._subscriptions[scope].append(subscription)
        return subscription

    def publish(self, event: ChannelEvent, scopes: Iterable[str]) -> int:
        """Deliver ``event`` to the listeners of ``scopes``.

        A listener subscribed to several of the scopes receives the event once.
        Returns the number of listeners the event was handed to.
        """

        with self._lock:
            targets: list[Listener] = []
            for scope in dict.fromkeys(scopes):
                for subscription in self._subscriptions.get(scope, ()):
                    # Bound methods compare equal even when not identical.
                    if subscription.listener not in targets:
                        targets.append(subscription.listener)

        if not targets:
            return 0
        payload = event.to_payload()
        for listener in targets:
            self._deliver(listener, payload)
        return len(targets)

    def subscriber_count(self, scope: str | None = None) -> int:
        with self._lock:
            if scope is not None:
                return len(self._subscriptions.get(scope, ()))
            return sum(len(items) for items in self._subscriptions.values())

    def close(self) -> None:
        """Release every subscription."""

        with self._lock:
            subscriptions = [item for items in self._subscriptions.values() for item in items]
        for subscription in subscriptions:
            subscription.release()

    def _remove(self, subscription: Subscription) -> None:
        with self._lock:
            items = self._subscriptions.get(subscription.scope)
            if items is None:
                return
            try:
                items.remove(subscription)
            except ValueError:
                return
            if not items:
                self._subscriptions.pop(subscription.scope, None)

    def _deliver(self, listener: Listener, payload: dict[str, Any]) -> None:
        try:
            result = listener(dict(payload))
        except Exception:
            logger.exception("Realtime listener %r failed", listener)
            return
        if inspect.isawaitable(result):
            self._schedule(result)

    def _schedule(self, awaitable: Any) -> None:
        async def _run() -> None:
            try:
                await awaitable
            except Exception:
                logger.exception("Realtime listener coroutine failed")

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            try:
                if hasattr(from_thread, "start_soon"):
                    from_thread.start_soon(_run)
                else:
                    from_thread.run(_run)
            except RuntimeError:
                logger.warning("No event loop available to deliver a realtime event")
                if inspect.iscoroutine(awaitable):
                    awaitable.close()
        else:
            loop.create_task(_run())


__all__ = [
    "ChannelEvent",
    "Listener",
    "PropagationChannel",
    "Subscription",
    "conversation_scope",
    "presence_scope",
    "user_scope",
]
