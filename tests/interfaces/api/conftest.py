"""Fixtures for the HTTP and websocket interface tests."""

from __future__ import annotations

import pytest

pytest.importorskip("fastapi")
from fastapi.testclient import TestClient

from messaging_core.infrastructure.security import create_access_token
from messaging_core.main import create_app


def auth_headers(user_id: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {create_access_token({'sub': user_id})}"}


@pytest.fixture()
def client(service):
    """Return a test client bound to the per-test messaging service."""

    return TestClient(create_app(service))


@pytest.fixture()
def alice():
    return auth_headers("u1")


@pytest.fixture()
def bob():
    return auth_headers("u2")


@pytest.fixture()
def carol():
    return auth_headers("u3")
