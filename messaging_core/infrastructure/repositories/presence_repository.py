"""Persistence helpers for presence and typing indicators."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime
from typing import Iterable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from messaging_core.domain.entities import TypingIndicator, UserPresence
from messaging_core.infrastructure.models import TypingIndicatorModel, UserPresenceModel
from messaging_core.utils import ensure_app_naive_datetime, ensure_app_timezone


class PresenceRepository:
    """Keep the latest presence row of every user."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> UserPresence | None:
        model = self.session.get(UserPresenceModel, user_id)
        if model is None:
            return None
        return self._to_entity(model)

    def get_map(self, user_ids: Iterable[str]) -> dict[str, UserPresence]:
        ids = {user_id for user_id in user_ids if user_id}
        if not ids:
            return {}
        models = (
            self.session.query(UserPresenceModel)
            .filter(UserPresenceModel.user_id.in_(ids))
            .all()
        )
        return {model.user_id: self._to_entity(model) for model in models}

    def upsert(self, user_id: str, status: str, *, seen_at: datetime) -> UserPresence:
        stored = ensure_app_naive_datetime(seen_at)
        for attempt in range(2):
            model = self.session.get(UserPresenceModel, user_id)
            if model is None:
                model = UserPresenceModel(user_id=user_id)
            model.status = status
            model.last_seen = stored
            model.updated_at = stored
            self.session.add(model)
            try:
                self.session.commit()
            except IntegrityError:
                # Two first signals raced; the second pass updates the winner.
                self.session.rollback()
                if attempt:
                    raise
                continue
            break
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserPresenceModel) -> UserPresence:
        return UserPresence(
            user_id=model.user_id,
            status=model.status,
            last_seen=ensure_app_timezone(model.last_seen),
            updated_at=ensure_app_timezone(model.updated_at),
        )


class TypingIndicatorRepository:
    """Store short lived typing indicators."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def upsert(self, conversation_id: str, user_id: str, *, started_at: datetime) -> TypingIndicator:
        stored = ensure_app_naive_datetime(started_at)
        model = self.session.get(TypingIndicatorModel, (conversation_id, user_id))
        if model is None:
            model = TypingIndicatorModel(conversation_id=conversation_id, user_id=user_id)
        model.started_at = stored
        self.session.add(model)
        try:
            self.session.commit()
        except IntegrityError:
            self.session.rollback()
            model = self.session.get(TypingIndicatorModel, (conversation_id, user_id))
            if model is None:
                raise
            model.started_at = stored
            self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    def delete(self, conversation_id: str, user_id: str) -> bool:
        deleted = (
            self.session.query(TypingIndicatorModel)
            .filter(
                TypingIndicatorModel.conversation_id == conversation_id,
                TypingIndicatorModel.user_id == user_id,
            )
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return bool(deleted)

    def list_active(self, conversation_id: str, *, since: datetime) -> Sequence[TypingIndicator]:
        query = (
            self.session.query(TypingIndicatorModel)
            .filter(TypingIndicatorModel.conversation_id == conversation_id)
            .filter(TypingIndicatorModel.started_at >= ensure_app_naive_datetime(since))
            .order_by(TypingIndicatorModel.started_at.asc())
        )
        return [self._to_entity(model) for model in query.all()]

    def purge_expired(self, *, before: datetime) -> int:
        deleted = (
            self.session.query(TypingIndicatorModel)
            .filter(TypingIndicatorModel.started_at < ensure_app_naive_datetime(before))
            .delete(synchronize_session=False)
        )
        self.session.commit()
        return int(deleted or 0)

    @staticmethod
    def _to_entity(model: TypingIndicatorModel) -> TypingIndicator:
        return TypingIndicator(
            conversation_id=model.conversation_id,
            user_id=model.user_id,
            started_at=ensure_app_timezone(model.started_at),
        )


__all__ = ["PresenceRepository", "TypingIndicatorRepository"]
