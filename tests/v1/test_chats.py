"""Tests for one-to-one conversation endpoints."""

from __future__ import annotations

import pytest
from fastapi import HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from aura_talk.api.v1.endpoints.chats import resolve_conversation
from aura_talk.services.conversation import ConversationEngine, conversation_id


def test_send_and_read_a_conversation(client, alice, bob, auth_headers) -> None:
    alice_identity, _ = alice
    bob_identity, _ = bob

    sent = client.post(
        f"/api/v1/chats/{bob_identity.uid}/messages",
        json={"text": "hey bob"},
        headers=auth_headers(alice_identity),
    )
    assert sent.status_code == status.HTTP_201_CREATED
    assert sent.json()["receiver_id"] == bob_identity.uid
    assert sent.json()["seen"] is False

    window = client.get(
        f"/api/v1/chats/{alice_identity.uid}/messages", headers=auth_headers(bob_identity)
    )
    assert [m["text"] for m in window.json()] == ["hey bob"]


def test_chat_list_shows_partner_and_summary(client, alice, bob, auth_headers) -> None:
    alice_identity, _ = alice
    bob_identity, _ = bob
    client.post(
        f"/api/v1/chats/{bob_identity.uid}/messages",
        json={"text": "latest"},
        headers=auth_headers(alice_identity),
    )

    response = client.get("/api/v1/chats", headers=auth_headers(bob_identity))

    assert response.status_code == status.HTTP_200_OK
    [entry] = response.json()
    assert entry["id"] == conversation_id(alice_identity.uid, bob_identity.uid)
    assert entry["last_message"] == "latest"
    assert entry["partner"]["username"] == "alice"


def test_cannot_message_yourself(client, alice, auth_headers) -> None:
    identity, _ = alice

    response = client.post(
        f"/api/v1/chats/{identity.uid}/messages",
        json={"text": "me"},
        headers=auth_headers(identity),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST


def test_unknown_partner_is_404(client, alice, auth_headers) -> None:
    identity, _ = alice

    response = client.get("/api/v1/chats/nobody/messages", headers=auth_headers(identity))

    assert response.status_code == status.HTTP_404_NOT_FOUND
    assert response.json()["detail"] == "Recipient not found"


def test_missing_partner_uid_is_400(db_session, alice) -> None:
    _, profile = alice

    with pytest.raises(HTTPException) as excinfo:
        resolve_conversation(db_session, profile, "")

    assert excinfo.value.status_code == status.HTTP_400_BAD_REQUEST
    assert excinfo.value.detail == "A recipient is required"


def test_blank_direct_message_is_rejected(client, alice, bob, auth_headers) -> None:
    alice_identity, _ = alice
    bob_identity, _ = bob

    response = client.post(
        f"/api/v1/chats/{bob_identity.uid}/messages",
        json={"text": ""},
        headers=auth_headers(alice_identity),
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert client.get("/api/v1/chats", headers=auth_headers(alice_identity)).json() == []


def test_summary_failure_reports_error_but_keeps_message(
    client, alice, bob, auth_headers, mocker
) -> None:
    alice_identity, _ = alice
    bob_identity, _ = bob
    mocker.patch.object(
        ConversationEngine, "_upsert_summary", side_effect=SQLAlchemyError("write failed")
    )

    response = client.post(
        f"/api/v1/chats/{bob_identity.uid}/messages",
        json={"text": "partial"},
        headers=auth_headers(alice_identity),
    )

    assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
    window = client.get(
        f"/api/v1/chats/{bob_identity.uid}/messages", headers=auth_headers(alice_identity)
    )
    assert [m["text"] for m in window.json()] == ["partial"]
    assert client.get("/api/v1/chats", headers=auth_headers(alice_identity)).json() == []


def test_direct_message_reactions(client, alice, bob, auth_headers) -> None:
    alice_identity, _ = alice
    bob_identity, _ = bob
    sent = client.post(
        f"/api/v1/chats/{bob_identity.uid}/messages",
        json={"text": "like this"},
        headers=auth_headers(alice_identity),
    ).json()

    response = client.post(
        f"/api/v1/chats/{alice_identity.uid}/messages/{sent['id']}/reactions",
        json={"emoji": "❤️"},
        headers=auth_headers(bob_identity),
    )

    assert response.status_code == status.HTTP_200_OK
    assert response.json()["reactions"] == {"❤️": [bob_identity.uid]}
