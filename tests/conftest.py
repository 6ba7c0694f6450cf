"""Shared fixtures for the messaging test-suite."""

from __future__ import annotations

import os
import pathlib
import sys
from typing import Any

import pytest

PROJECT_ROOT = pathlib.Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

os.environ.setdefault("JWT_SECRET_KEY", "test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from messaging_core.application.messaging_service import MessagingService
from messaging_core.config import get_settings
from messaging_core.domain.entities import User
from messaging_core.infrastructure.database import (
    build_engine,
    build_session_factory,
    initialize_database,
)
from messaging_core.infrastructure.repositories import UserRepository


class InMemoryAttachmentStore:
    """Attachment store keeping uploads in a dictionary."""

    base_url = "https://storage.test/message-attachments/"

    def __init__(self) -> None:
        self.blobs: dict[str, tuple[bytes, str | None]] = {}

    def upload(self, blob_path: str, data: bytes, *, content_type: str | None = None) -> str:
        self.blobs[blob_path] = (data, content_type)
        return self.base_url + blob_path

    def delete(self, url: str) -> None:
        if not url.startswith(self.base_url):
            raise ValueError("URL does not point into container message-attachments")
        self.blobs.pop(url[len(self.base_url):], None)


class RecordingListener:
    """Channel listener remembering every payload it receives."""

    def __init__(self) -> None:
        self.payloads: list[dict[str, Any]] = []

    def __call__(self, payload: dict[str, Any]) -> None:
        self.payloads.append(payload)

    def changes(self, table: str, event: str | None = None) -> list[dict[str, Any]]:
        return [
            payload
            for payload in self.payloads
            if payload.get("type") == "change"
            and payload["table"] == table
            and (event is None or payload["event"] == event)
        ]

    def of_type(self, payload_type: str) -> list[dict[str, Any]]:
        return [payload for payload in self.payloads if payload.get("type") == payload_type]


@pytest.fixture()
def engine(tmp_path):
    engine = build_engine(f"sqlite:///{tmp_path / 'messaging.db'}")
    initialize_database(engine)
    yield engine
    engine.dispose()


@pytest.fixture()
def session_factory(engine):
    return build_session_factory(engine)


@pytest.fixture()
def users(session_factory) -> dict[str, User]:
    session = session_factory()
    try:
        repository = UserRepository(session)
        return {
            user.id: repository.upsert(user)
            for user in (
                User(id="u1", name="Alice"),
                User(id="u2", name="Bob"),
                User(id="u3", name="Carol", avatar="https://avatars.test/carol.png"),
            )
        }
    finally:
        session.close()


@pytest.fixture()
def attachment_store() -> InMemoryAttachmentStore:
    return InMemoryAttachmentStore()


@pytest.fixture()
def service(session_factory, users, attachment_store):
    service = MessagingService(
        session_factory,
        attachment_store=attachment_store,
        settings=get_settings(),
    )
    yield service
    service.close()


@pytest.fixture()
def recorder() -> RecordingListener:
    return RecordingListener()
