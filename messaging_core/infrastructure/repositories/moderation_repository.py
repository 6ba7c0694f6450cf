"""Persistence helpers for blocks and user reports."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Iterable

from sqlalchemy import and_, or_
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from messaging_core.domain.entities import Block, UserReport
from messaging_core.infrastructure.models import BlockModel, UserReportModel
from messaging_core.infrastructure.models.conversation import new_identifier
from messaging_core.utils import (
    ensure_app_naive_datetime,
    ensure_app_timezone,
    now_in_app_timezone,
)


class ModerationRepository:
    """Store block edges and abuse reports."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get_block(self, blocker_id: str, blocked_id: str) -> Block | None:
        model = self.session.get(BlockModel, (blocker_id, blocked_id))
        if model is None:
            return None
        return self._block_to_entity(model)

    def add_block(self, block: Block) -> Block:
        """Create the edge unless it already exists and return the stored edge."""

        existing = self.session.get(BlockModel, (block.blocker_id, block.blocked_id))
        if existing is not None:
            return self._block_to_entity(existing)

        model = BlockModel(
            blocker_id=block.blocker_id,
            blocked_id=block.blocked_id,
            reason=block.reason,
            created_at=ensure_app_naive_datetime(block.created_at or now_in_app_timezone()),
        )
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            existing = self.session.get(BlockModel, (block.blocker_id, block.blocked_id))
            if existing is None:
                raise
            return self._block_to_entity(existing)
        self.session.refresh(model)
        return self._block_to_entity(model)

    def remove_block(self, blocker_id: str, blocked_id: str) -> bool:
        deleted = (
            self.session.query(BlockModel)
            .filter(BlockModel.blocker_id == blocker_id, BlockModel.blocked_id == blocked_id)
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return bool(deleted)

    def list_blocked(self, blocker_id: str) -> Sequence[Block]:
        query = (
            self.session.query(BlockModel)
            .filter(BlockModel.blocker_id == blocker_id)
            .order_by(BlockModel.created_at.desc())
        )
        return [self._block_to_entity(model) for model in query.all()]

    def is_blocked_either(self, user_id: str, other_user_id: str) -> bool:
        query = self.session.query(BlockModel).filter(
            or_(
                and_(BlockModel.blocker_id == user_id, BlockModel.blocked_id == other_user_id),
                and_(BlockModel.blocker_id == other_user_id, BlockModel.blocked_id == user_id),
            )
        )
        return self.session.query(query.exists()).scalar()

    def blocked_by_any(self, blocker_ids: Iterable[str], blocked_id: str) -> set[str]:
        """Return the subset of ``blocker_ids`` that have blocked ``blocked_id``."""

        ids = {blocker_id for blocker_id in blocker_ids if blocker_id}
        if not ids:
            return set()
        rows = (
            self.session.query(BlockModel.blocker_id)
            .filter(BlockModel.blocker_id.in_(ids), BlockModel.blocked_id == blocked_id)
            .all()
        )
        return {blocker_id for (blocker_id,) in rows}

    def create_report(self, report: UserReport) -> UserReport:
        model = UserReportModel(
            id=report.id or new_identifier(),
            reporter_id=report.reporter_id,
            reported_id=report.reported_id,
            conversation_id=report.conversation_id,
            message_id=report.message_id,
            reason=report.reason,
            description=report.description,
            created_at=ensure_app_naive_datetime(report.created_at or now_in_app_timezone()),
        )
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._report_to_entity(model)

    @staticmethod
    def _block_to_entity(model: BlockModel) -> Block:
        return Block(
            blocker_id=model.blocker_id,
            blocked_id=model.blocked_id,
            reason=model.reason,
            created_at=ensure_app_timezone(model.created_at),
        )

    @staticmethod
    def _report_to_entity(model: UserReportModel) -> UserReport:
        return UserReport(
            id=model.id,
            reporter_id=model.reporter_id,
            reported_id=model.reported_id,
            reason=model.reason,
            description=model.description,
            conversation_id=model.conversation_id,
            message_id=model.message_id,
            created_at=ensure_app_timezone(model.created_at),
        )


__all__ = ["ModerationRepository"]
