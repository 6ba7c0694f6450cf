"""Pydantic models describing notification payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict


class NotificationRead(BaseModel):
    """Representation of a notification delivered to the client."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    type: str
    title: str
    message: str
    read: bool
    created_at: datetime


class UnreadCount(BaseModel):
    count: int


class MarkAllReadResponse(BaseModel):
    updated: int


__all__ = ["MarkAllReadResponse", "NotificationRead", "UnreadCount"]
