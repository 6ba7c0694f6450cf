"""Realtime propagation of change events to connected clients."""

from .channel import (
    Listener,
    PropagationChannel,
    Subscription,
    conversation_scope,
    presence_scope,
    user_scope,
)
from .events import change_event, serialize_record
from .sink import NotificationSink, RealtimeNotificationSink

__all__ = [
    "Listener",
    "NotificationSink",
    "PropagationChannel",
    "RealtimeNotificationSink",
    "Subscription",
    "change_event",
    "conversation_scope",
    "presence_scope",
    "serialize_record",
    "user_scope",
]
