"""SQLAlchemy model for the user profile table."""

from sqlalchemy import Column, DateTime, String

from messaging_core.infrastructure.database import Base
from messaging_core.utils import now_in_app_naive_datetime


class UserModel(Base):
    """Profile copy of a user owned by the identity provider."""

    __tablename__ = "user"

    id = Column(String(64), primary_key=True)
    name = Column(String(120), nullable=False)
    avatar = Column(String(512), nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)


__all__ = ["UserModel"]
