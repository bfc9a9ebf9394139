"""Tests for the contact search endpoint."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from fastapi import status

from aura_talk.api.v1.dependencies import get_suggestion_client_dep
from aura_talk.services.suggestions import (
    SuggestionClient,
    SuggestionResult,
    SuggestionServiceError,
)


@pytest.fixture()
def suggestion_client(app) -> AsyncMock:
    client = AsyncMock(spec=SuggestionClient)
    client.enabled = True
    client.suggest.return_value = SuggestionResult()
    app.dependency_overrides[get_suggestion_client_dep] = lambda: client
    yield client
    app.dependency_overrides.pop(get_suggestion_client_dep, None)


def test_exact_search_without_suggestions(client, alice, bob, auth_headers) -> None:
    identity, _ = alice

    response = client.post(
        "/api/v1/contacts/search", json={"query": "Bob"}, headers=auth_headers(identity)
    )

    assert response.status_code == status.HTTP_200_OK
    data = response.json()
    assert [p["username"] for p in data["exact_matches"]] == ["bob"]
    assert data["suggestions"] == []


def test_search_defaults_existing_contacts_to_chat_partners(
    client, alice, bob, carol, auth_headers, suggestion_client
) -> None:
    alice_identity, _ = alice
    bob_identity, _ = bob
    client.post(
        f"/api/v1/chats/{bob_identity.uid}/messages",
        json={"text": "hi"},
        headers=auth_headers(alice_identity),
    )
    suggestion_client.suggest.return_value = SuggestionResult(
        search_results=["ghost"], suggested_contacts=["carol"]
    )

    response = client.post(
        "/api/v1/contacts/search", json={"query": "car"}, headers=auth_headers(alice_identity)
    )

    suggestion_client.suggest.assert_awaited_once_with("car", ["bob"])
    data = response.json()
    assert data["exact_matches"] == []
    assert [p["username"] for p in data["suggestions"]] == ["carol"]


def test_search_reports_service_failure(client, alice, auth_headers, suggestion_client) -> None:
    identity, _ = alice
    suggestion_client.suggest.side_effect = SuggestionServiceError("down")

    response = client.post(
        "/api/v1/contacts/search",
        json={"query": "bob", "existing_contacts": []},
        headers=auth_headers(identity),
    )

    assert response.status_code == status.HTTP_502_BAD_GATEWAY
    assert response.json()["detail"] == "Contact search failed."
