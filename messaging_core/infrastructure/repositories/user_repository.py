"""Persistence helpers for user profiles."""

from __future__ import annotations

from typing import Iterable

from sqlalchemy.orm import Session

from messaging_core.domain.entities import User
from messaging_core.infrastructure.models import UserModel


class UserRepository:
    """Read user profiles mirrored from the identity provider."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, user_id: str) -> User | None:
        model = self.session.get(UserModel, user_id)
        if model is None:
            return None
        return self._to_entity(model)

    def get_map_by_ids(self, user_ids: Iterable[str]) -> dict[str, User]:
        ids = {user_id for user_id in user_ids if user_id}
        if not ids:
            return {}
        models = self.session.query(UserModel).filter(UserModel.id.in_(ids)).all()
        return {model.id: self._to_entity(model) for model in models}

    def upsert(self, user: User) -> User:
        """Create or refresh the profile copy of ``user``."""

        model = self.session.get(UserModel, user.id)
        if model is None:
            model = UserModel(id=user.id)
        model.name = user.name
        model.avatar = user.avatar
        self.session.add(model)
        self.session.commit()
        self.session.refresh(model)
        return self._to_entity(model)

    @staticmethod
    def _to_entity(model: UserModel) -> User:
        return User(id=model.id, name=model.name, avatar=model.avatar)


__all__ = ["UserRepository"]
