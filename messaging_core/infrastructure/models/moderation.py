"""SQLAlchemy models for blocks and user reports."""

from sqlalchemy import Column, DateTime, ForeignKey, String, Text

from messaging_core.infrastructure.database import Base
from messaging_core.utils import now_in_app_naive_datetime

from .conversation import new_identifier


class BlockModel(Base):
    """Directed block edge between two users."""

    __tablename__ = "blocked_user"

    blocker_id = Column(String(64), ForeignKey("user.id"), primary_key=True)
    blocked_id = Column(String(64), ForeignKey("user.id"), primary_key=True, index=True)
    reason = Column(String(255), nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)


class UserReportModel(Base):
    """Abuse report filed against a user."""

    __tablename__ = "user_report"

    id = Column(String(36), primary_key=True, default=new_identifier)
    reporter_id = Column(String(64), ForeignKey("user.id"), nullable=False, index=True)
    reported_id = Column(String(64), ForeignKey("user.id"), nullable=False, index=True)
    # Plain references: reports outlive the conversations they point at.
    conversation_id = Column(String(36), nullable=True)
    message_id = Column(String(36), nullable=True)
    reason = Column(String(120), nullable=False)
    description = Column(Text, nullable=True)
    created_at = Column(DateTime, nullable=False, default=now_in_app_naive_datetime)


__all__ = ["BlockModel", "UserReportModel"]
