"""Tests for the world channel endpoints."""

from __future__ import annotations

from fastapi import status


def test_post_and_list_world_messages(client, alice, bob, auth_headers) -> None:
    alice_identity, _ = alice
    bob_identity, _ = bob

    first = client.post(
        "/api/v1/world/messages", json={"text": "hello all"}, headers=auth_headers(alice_identity)
    )
    second = client.post(
        "/api/v1/world/messages",
        json={"text": "hi alice", "reply_to": first.json()["id"]},
        headers=auth_headers(bob_identity),
    )
    assert first.status_code == status.HTTP_201_CREATED
    assert second.json()["reply_to"] == first.json()["id"]

    response = client.get("/api/v1/world/messages", headers=auth_headers(bob_identity))

    assert response.status_code == status.HTTP_200_OK
    messages = response.json()
    assert [m["text"] for m in messages] == ["hello all", "hi alice"]
    assert messages[0]["sender_username"] == "alice"
    assert messages[0]["receiver_id"] is None


def test_blank_world_message_is_rejected(client, alice, auth_headers) -> None:
    identity, _ = alice

    response = client.post(
        "/api/v1/world/messages", json={"text": "  \n "}, headers=auth_headers(identity)
    )

    assert response.status_code == status.HTTP_400_BAD_REQUEST
    assert client.get("/api/v1/world/messages", headers=auth_headers(identity)).json() == []


def test_world_reaction_toggles(client, alice, bob, auth_headers) -> None:
    alice_identity, _ = alice
    bob_identity, _ = bob
    posted = client.post(
        "/api/v1/world/messages", json={"text": "react"}, headers=auth_headers(alice_identity)
    ).json()
    url = f"/api/v1/world/messages/{posted['id']}/reactions"

    added = client.post(url, json={"emoji": "🎉"}, headers=auth_headers(bob_identity))
    removed = client.post(url, json={"emoji": "🎉"}, headers=auth_headers(bob_identity))

    assert added.json() == {"added": True, "reactions": {"🎉": [bob_identity.uid]}}
    assert removed.json() == {"added": False, "reactions": {}}


def test_reaction_on_unknown_message(client, alice, auth_headers) -> None:
    identity, _ = alice

    response = client.post(
        "/api/v1/world/messages/9999/reactions",
        json={"emoji": "🎉"},
        headers=auth_headers(identity),
    )

    assert response.status_code == status.HTTP_404_NOT_FOUND
