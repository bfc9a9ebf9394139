"""Tests for the live snapshot WebSockets."""

from __future__ import annotations

import pytest
from fastapi import WebSocketDisconnect

from aura_talk.api.v1.endpoints.live import CLOSE_NOT_FOUND, CLOSE_UNAUTHORIZED
from aura_talk.services.conversation import WorldChannel
from aura_talk.services.identity import IdentityProvider


def _token(db_session, identity) -> str:
    return IdentityProvider(db_session).issue_token(identity)


def test_world_socket_sends_initial_snapshot(client, db_session, alice) -> None:
    identity, profile = alice
    WorldChannel(db_session).send(profile, "already here")

    with client.websocket_connect(f"/api/v1/ws/world?token={_token(db_session, identity)}") as ws:
        frame = ws.receive_json()

    assert frame["type"] == "snapshot"
    assert [item["text"] for item in frame["items"]] == ["already here"]


def test_chat_list_socket_sends_initial_snapshot(client, db_session, alice, bob) -> None:
    alice_identity, _ = alice
    bob_identity, _ = bob
    client.post(
        f"/api/v1/chats/{bob_identity.uid}/messages",
        json={"text": "ping"},
        headers={"Authorization": f"Bearer {_token(db_session, alice_identity)}"},
    )

    with client.websocket_connect(f"/api/v1/ws/chats?token={_token(db_session, bob_identity)}") as ws:
        frame = ws.receive_json()

    [entry] = frame["items"]
    assert entry["partner"]["uid"] == alice_identity.uid
    assert entry["last_message"] == "ping"


def test_conversation_socket_sends_window(client, db_session, alice, bob) -> None:
    alice_identity, _ = alice
    bob_identity, _ = bob
    token = _token(db_session, alice_identity)

    with client.websocket_connect(f"/api/v1/ws/chats/{bob_identity.uid}?token={token}") as ws:
        frame = ws.receive_json()

    assert frame == {"type": "snapshot", "items": []}


def test_invalid_token_closes_with_4001(client) -> None:
    with client.websocket_connect("/api/v1/ws/world?token=garbage") as ws:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()

    assert exc_info.value.code == CLOSE_UNAUTHORIZED


def test_unknown_partner_closes_with_4004(client, db_session, alice) -> None:
    identity, _ = alice

    with client.websocket_connect(
        f"/api/v1/ws/chats/nobody?token={_token(db_session, identity)}"
    ) as ws:
        with pytest.raises(WebSocketDisconnect) as exc_info:
            ws.receive_json()

    assert exc_info.value.code == CLOSE_NOT_FOUND
