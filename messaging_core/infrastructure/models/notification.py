"""SQLAlchemy model for persisted notifications."""

from sqlalchemy import Boolean, Column, DateTime, ForeignKey, String, Text
from sqlalchemy.sql import expression

from messaging_core.infrastructure.database import Base
from messaging_core.utils import now_in_app_naive_datetime

from .conversation import new_identifier


class NotificationModel(Base):
    """Database representation for user notifications."""

    __tablename__ = "notification"

    id = Column(String(36), primary_key=True, default=new_identifier)
    user_id = Column(String(64), ForeignKey("user.id"), nullable=False, index=True)
    type = Column(String(50), nullable=False)
    title = Column(String(160), nullable=False)
    message = Column(Text, nullable=False)
    read = Column(Boolean, nullable=False, default=False, server_default=expression.false())
    created_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)


__all__ = ["NotificationModel"]
