"""Domain entity representing a user profile issued by the identity provider."""

from dataclasses import dataclass


@dataclass
class User:
    """Public profile attributes used to render conversations."""

    id: str
    name: str
    avatar: str | None = None
