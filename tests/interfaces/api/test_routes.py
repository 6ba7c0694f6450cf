"""Integration tests for the messaging HTTP endpoints."""

from __future__ import annotations

from datetime import timedelta

from messaging_core.infrastructure.security import create_access_token


def _direct(client, headers, other_id: str) -> str:
    response = client.post("/conversations/direct", json={"user_id": other_id}, headers=headers)
    assert response.status_code == 200
    return response.json()["id"]


def test_requests_without_valid_token_are_rejected(client):
    assert client.get("/conversations/").status_code == 401

    bad = client.get("/conversations/", headers={"Authorization": "Bearer nope"})
    assert bad.status_code == 401

    expired = create_access_token({"sub": "u1"}, expires_delta=timedelta(minutes=-5))
    response = client.get("/conversations/", headers={"Authorization": f"Bearer {expired}"})
    assert response.status_code == 401

    unknown = create_access_token({"sub": "ghost"})
    response = client.get("/conversations/", headers={"Authorization": f"Bearer {unknown}"})
    assert response.status_code == 401


def test_conversation_message_flow(client, alice, bob):
    conversation_id = _direct(client, alice, "u2")
    assert _direct(client, bob, "u1") == conversation_id

    sent = client.post(
        f"/conversations/{conversation_id}/messages",
        json={"content": "hi Bob"},
        headers=alice,
    )
    assert sent.status_code == 201
    message = sent.json()
    assert message["sender"]["name"] == "Alice"
    assert message["read_by"] == ["u1"]

    listing = client.get("/conversations/", headers=bob).json()
    assert listing[0]["conversation"]["id"] == conversation_id
    assert listing[0]["unread_count"] == 1
    assert listing[0]["last_message"]["content"] == "hi Bob"
    assert listing[0]["other_participants"][0]["user"]["name"] == "Alice"

    page = client.get(f"/conversations/{conversation_id}/messages", headers=bob)
    assert page.status_code == 200
    assert [item["id"] for item in page.json()] == [message["id"]]
    assert sorted(page.json()[0]["read_by"]) == ["u1", "u2"]

    assert client.get("/conversations/", headers=bob).json()[0]["unread_count"] == 0


def test_group_creation_and_leave(client, alice, bob, carol):
    created = client.post(
        "/conversations/",
        json={"participant_ids": ["u2", "u3"], "name": "Tenants"},
        headers=alice,
    )
    assert created.status_code == 201
    group_id = created.json()["id"]

    left = client.delete(f"/conversations/{group_id}", headers=carol)
    assert left.status_code == 200
    assert left.json() == {"purged": False}

    forbidden = client.get(f"/conversations/{group_id}/messages", headers=carol)
    assert forbidden.status_code == 403
    assert forbidden.json()["code"] == "not_a_participant"


def test_metadata_patch(client, alice):
    conversation_id = _direct(client, alice, "u2")

    response = client.patch(
        f"/conversations/{conversation_id}/metadata",
        json={"archived": True},
        headers=alice,
    )

    assert response.status_code == 200
    assert response.json()["archived"] is True
    assert client.get("/conversations/", headers=alice).json() == []
    archived = client.get("/conversations/?include_archived=true", headers=alice).json()
    assert [item["conversation"]["id"] for item in archived] == [conversation_id]


def test_explicit_read_endpoint(client, alice, bob):
    conversation_id = _direct(client, alice, "u2")
    message_id = client.post(
        f"/conversations/{conversation_id}/messages", json={"content": "x"}, headers=alice
    ).json()["id"]

    first = client.post(
        f"/conversations/{conversation_id}/read", json={"message_ids": [message_id]}, headers=bob
    )
    second = client.post(
        f"/conversations/{conversation_id}/read", json={"message_ids": [message_id]}, headers=bob
    )

    assert first.json() == {"marked": [message_id]}
    assert second.json() == {"marked": []}


def test_error_mapping(client, alice, bob):
    missing = client.get("/conversations/missing/messages", headers=alice)
    assert missing.status_code == 404
    assert missing.json() == {"detail": "Conversation not found", "code": "not_found"}

    assert client.post("/blocks/u1", headers=bob).status_code == 201
    blocked = client.post("/conversations/direct", json={"user_id": "u2"}, headers=alice)
    assert blocked.status_code == 403
    assert blocked.json() == {
        "detail": "You cannot message a user who has blocked you",
        "code": "blocked",
    }

    invalid = client.post("/conversations/direct", json={"user_id": "u1"}, headers=alice)
    assert invalid.status_code == 422
    assert invalid.json()["code"] == "invalid_request"


def test_block_endpoints(client, alice):
    assert client.get("/blocks/u2", headers=alice).json() == {"user_id": "u2", "blocked": False}

    created = client.post("/blocks/u2", json={"reason": "spam"}, headers=alice)
    assert created.status_code == 201
    assert created.json()["reason"] == "spam"
    assert client.get("/blocks/u2", headers=alice).json()["blocked"] is True
    assert [item["blocked_id"] for item in client.get("/blocks/", headers=alice).json()] == ["u2"]

    assert client.delete("/blocks/u2", headers=alice).status_code == 204
    assert client.get("/blocks/u2", headers=alice).json()["blocked"] is False


def test_report_endpoint(client, alice):
    response = client.post(
        "/reports/", json={"reported_id": "u2", "reason": "spam"}, headers=alice
    )

    assert response.status_code == 201
    assert response.json()["reporter_id"] == "u1"


def test_attachment_upload(client, alice, attachment_store):
    response = client.post(
        "/attachments/",
        files={"file": ("flyer.png", b"\x89PNG", "image/png")},
        headers=alice,
    )

    assert response.status_code == 201
    body = response.json()
    assert body["name"] == "flyer.png"
    assert body["type"] == "image/png"
    assert len(attachment_store.blobs) == 1


def test_oversized_attachment_maps_to_413(client, alice, attachment_store):
    response = client.post(
        "/attachments/",
        files={"file": ("big.png", b"0" * (5 * 1024 * 1024 + 1), "image/png")},
        headers=alice,
    )

    assert response.status_code == 413
    assert response.json()["code"] == "attachment_rejected"
    assert attachment_store.blobs == {}


def test_notification_endpoints(client, alice, bob):
    conversation_id = _direct(client, alice, "u2")
    client.post(f"/conversations/{conversation_id}/messages", json={"content": "a"}, headers=alice)
    client.post(f"/conversations/{conversation_id}/messages", json={"content": "b"}, headers=alice)

    assert client.get("/notifications/unread-count", headers=bob).json() == {"count": 2}
    notifications = client.get("/notifications/", headers=bob).json()
    assert notifications[0]["title"] == "New message from Alice"

    read = client.post(f"/notifications/{notifications[0]['id']}/read", headers=bob)
    assert read.json()["read"] is True
    assert client.post("/notifications/read-all", headers=bob).json() == {"updated": 1}
    assert client.post(f"/notifications/{notifications[0]['id']}/read", headers=alice).status_code == 404


def test_presence_and_typing_endpoints(client, alice, bob):
    conversation_id = _direct(client, alice, "u2")

    assert client.post("/presence/", json={"signal": "focus"}, headers=alice).json()[
        "status"
    ] == "online"
    statuses = client.get("/presence/?user_id=u1&user_id=u2", headers=bob).json()
    assert [(item["user_id"], item["status"]) for item in statuses] == [
        ("u1", "online"),
        ("u2", "offline"),
    ]
    assert client.post("/presence/", json={"signal": "nap"}, headers=alice).status_code == 422

    assert client.post(f"/conversations/{conversation_id}/typing", headers=alice).status_code == 200
    typing = client.get(f"/conversations/{conversation_id}/typing", headers=bob).json()
    assert [item["user_name"] for item in typing] == ["Alice"]
    assert client.delete(f"/conversations/{conversation_id}/typing", headers=alice).status_code == 204
    assert client.get(f"/conversations/{conversation_id}/typing", headers=bob).json() == []
