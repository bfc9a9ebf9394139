"""Tests for the authentication endpoints."""

from __future__ import annotations

from fastapi import status

from aura_talk.models import UsernameIndex
from aura_talk.services.identity import GoogleAccount, GoogleSignInError

SIGNUP = {"username": "Dana", "email": "dana@example.com", "password": "secret123"}


def test_signup_returns_token_and_profile(client, db_session) -> None:
    response = client.post("/api/v1/auth/signup", json=SIGNUP)

    assert response.status_code == status.HTTP_201_CREATED
    data = response.json()
    assert data["created"] is True
    assert data["token_type"] == "bearer"
    assert data["profile"]["username"] == "Dana"
    assert db_session.get(UsernameIndex, "dana").uid == data["profile"]["uid"]

    me = client.get(
        "/api/v1/auth/me", headers={"Authorization": f"Bearer {data['access_token']}"}
    )
    assert me.status_code == status.HTTP_200_OK
    assert me.json()["email"] == "dana@example.com"


def test_signup_with_taken_username_conflicts(client, alice) -> None:
    response = client.post("/api/v1/auth/signup", json={**SIGNUP, "username": "ALICE"})

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"]["field"] == "username"


def test_signup_with_registered_email_conflicts(client, alice) -> None:
    response = client.post("/api/v1/auth/signup", json={**SIGNUP, "email": "alice@example.com"})

    assert response.status_code == status.HTTP_409_CONFLICT
    assert response.json()["detail"]["field"] == "email"


def test_signup_validates_username_shape(client) -> None:
    for username in ["ab", "a" * 21, "has space", "dash-ed"]:
        response = client.post("/api/v1/auth/signup", json={**SIGNUP, "username": username})
        assert response.status_code == 422


def test_login_and_logout(client) -> None:
    client.post("/api/v1/auth/signup", json=SIGNUP)

    bad = client.post(
        "/api/v1/auth/login", json={"email": "dana@example.com", "password": "nope"}
    )
    assert bad.status_code == status.HTTP_401_UNAUTHORIZED
    assert bad.json()["detail"] == "Invalid email or password."

    good = client.post(
        "/api/v1/auth/login", json={"email": "DANA@example.com", "password": "secret123"}
    )
    assert good.status_code == status.HTTP_200_OK
    assert good.json()["created"] is False
    headers = {"Authorization": f"Bearer {good.json()['access_token']}"}

    logout = client.post("/api/v1/auth/logout", headers=headers)
    assert logout.status_code == status.HTTP_200_OK
    assert logout.json() == {"status": "signed_out"}

    after = client.get("/api/v1/auth/me", headers=headers)
    assert after.status_code == status.HTTP_401_UNAUTHORIZED


def test_me_requires_a_token(client) -> None:
    response = client.get("/api/v1/auth/me")
    assert response.status_code in (status.HTTP_401_UNAUTHORIZED, status.HTTP_403_FORBIDDEN)


def test_google_sign_in_creates_a_profile(client, mocker) -> None:
    mocker.patch(
        "aura_talk.api.v1.endpoints.auth.verify_google_id_token",
        new=mocker.AsyncMock(
            return_value=GoogleAccount(sub="g-9", email="ivy@gmail.com", picture=None)
        ),
    )

    first = client.post("/api/v1/auth/google", json={"id_token": "tok"})
    second = client.post("/api/v1/auth/google", json={"id_token": "tok"})

    assert first.status_code == status.HTTP_200_OK
    assert first.json()["created"] is True
    assert first.json()["profile"]["username"] == "ivy"
    assert second.json()["created"] is False
    assert second.json()["profile"]["uid"] == first.json()["profile"]["uid"]


def test_google_sign_in_rejected_token(client, mocker) -> None:
    mocker.patch(
        "aura_talk.api.v1.endpoints.auth.verify_google_id_token",
        new=mocker.AsyncMock(side_effect=GoogleSignInError("bad token")),
    )

    response = client.post("/api/v1/auth/google", json={"id_token": "tok"})

    assert response.status_code == status.HTTP_401_UNAUTHORIZED
