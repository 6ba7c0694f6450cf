"""SQLAlchemy model for user presence."""

from sqlalchemy import Column, DateTime, ForeignKey, String

from messaging_core.infrastructure.database import Base
from messaging_core.utils import now_in_app_naive_datetime


class UserPresenceModel(Base):
    """Latest presence state of a user; no history is kept."""

    __tablename__ = "user_presence"

    user_id = Column(String(64), ForeignKey("user.id"), primary_key=True)
    status = Column(String(10), nullable=False, default="offline")
    last_seen = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)
    updated_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)


__all__ = ["UserPresenceModel"]
