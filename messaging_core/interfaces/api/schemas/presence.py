"""Pydantic models for presence and typing indicators."""

from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict


class PresenceSignal(BaseModel):
    signal: Literal["focus", "heartbeat", "blur", "unload"]


class PresenceRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    user_id: str
    status: str
    last_seen: datetime | None = None


class TypingRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    conversation_id: str
    user_id: str
    user_name: str | None = None
    started_at: datetime | None = None


__all__ = ["PresenceRead", "PresenceSignal", "TypingRead"]
