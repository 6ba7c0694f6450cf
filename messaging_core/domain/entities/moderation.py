"""Domain entities for user blocks and abuse reports."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass
class Block:
    """Directed edge: ``blocker_id`` no longer accepts messages from ``blocked_id``."""

    blocker_id: str
    blocked_id: str
    reason: str | None = None
    created_at: datetime | None = None


@dataclass
class UserReport:
    """Report filed by a user against another user."""

    id: str | None
    reporter_id: str
    reported_id: str
    reason: str
    description: str | None = None
    conversation_id: str | None = None
    message_id: str | None = None
    created_at: datetime | None = None


__all__ = ["Block", "UserReport"]
