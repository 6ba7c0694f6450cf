"""Pydantic models describing user profiles."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict


class UserRead(BaseModel):
    """Public profile shown next to messages and participants."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    avatar: str | None = None


__all__ = ["UserRead"]
