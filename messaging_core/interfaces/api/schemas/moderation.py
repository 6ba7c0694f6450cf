"""Pydantic models for blocks and reports."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class BlockCreate(BaseModel):
    reason: str | None = Field(default=None, max_length=255)


class BlockRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    blocker_id: str
    blocked_id: str
    reason: str | None = None
    created_at: datetime | None = None


class BlockStatus(BaseModel):
    user_id: str
    blocked: bool


class ReportCreate(BaseModel):
    reported_id: str = Field(..., min_length=1)
    reason: str = Field(..., min_length=1, max_length=120)
    description: str | None = None
    conversation_id: str | None = None
    message_id: str | None = None


class ReportRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    reporter_id: str
    reported_id: str
    reason: str
    description: str | None = None
    conversation_id: str | None = None
    message_id: str | None = None
    created_at: datetime


__all__ = ["BlockCreate", "BlockRead", "BlockStatus", "ReportCreate", "ReportRead"]
