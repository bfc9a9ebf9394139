"""Tests for the identity provider and chat session lifecycle."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta

import httpx
import pytest

from aura_talk.core import security
from aura_talk.services.identity import (
    AUTH_SIGNED_IN,
    AUTH_SIGNED_OUT,
    ChatSession,
    GoogleSignInError,
    IdentityProvider,
    InvalidCredentialsError,
    InvalidTokenError,
    ProfileMissingError,
    RecentLoginRequiredError,
    on_auth_state_change,
    verify_google_id_token,
)


def test_password_hash_round_trip() -> None:
    hashed = security.hash_password("hunter22")
    assert security.verify_password("hunter22", hashed)
    assert not security.verify_password("hunter23", hashed)
    assert not security.verify_password("hunter22", "not-a-hash")


def test_password_hash_uses_bcrypt() -> None:
    hashed = security.hash_password("hunter22")
    assert hashed.startswith("$2b$")
    assert hashed != security.hash_password("hunter22")


def test_password_hash_accepts_long_passwords() -> None:
    long_password = "x" * 100
    hashed = security.hash_password(long_password)
    assert security.verify_password(long_password, hashed)


def test_authenticate_checks_password(db_session) -> None:
    provider = IdentityProvider(db_session)
    identity = provider.create_identity("Gail@Example.com", "secret123")

    assert provider.authenticate("gail@example.com", "secret123").uid == identity.uid
    with pytest.raises(InvalidCredentialsError):
        provider.authenticate("gail@example.com", "wrong")
    with pytest.raises(InvalidCredentialsError):
        provider.authenticate("nobody@example.com", "secret123")


def test_listeners_receive_sign_in_and_sign_out(db_session, alice, mocker) -> None:
    identity, _ = alice
    listener = mocker.Mock()
    unsubscribe = on_auth_state_change(listener)
    try:
        provider = IdentityProvider(db_session)
        provider.signed_in(identity)
        provider.sign_out(identity.uid)
    finally:
        unsubscribe()

    events = [call.args[0] for call in listener.call_args_list]
    assert events == [AUTH_SIGNED_IN, AUTH_SIGNED_OUT]

    IdentityProvider(db_session).signed_in(identity)
    assert listener.call_count == 2


def test_session_init_loads_profile(db_session, alice, session_for) -> None:
    identity, profile = alice

    session = session_for(identity)

    assert session.uid == identity.uid
    assert session.require_profile().username == profile.username


def test_session_without_profile(db_session, user_factory, session_for) -> None:
    identity, _ = user_factory("nobody", with_profile=False)

    session = session_for(identity)

    assert session.profile is None
    with pytest.raises(ProfileMissingError):
        session.require_profile()


def test_teardown_revokes_outstanding_tokens(db_session, alice) -> None:
    identity, _ = alice
    provider = IdentityProvider(db_session)
    token = provider.issue_token(identity)
    session = ChatSession.init(provider, token)

    session.teardown()

    assert session.profile is None
    with pytest.raises(InvalidTokenError):
        ChatSession.init(provider, token)


def test_garbage_token_is_rejected(db_session) -> None:
    with pytest.raises(InvalidTokenError):
        ChatSession.init(IdentityProvider(db_session), "not-a-jwt")


def test_recent_login_window(db_session, alice) -> None:
    identity, _ = alice
    provider = IdentityProvider(db_session)

    fresh = ChatSession.init(provider, provider.issue_token(identity))
    fresh.require_recent_login()

    stale_token = security.create_access_token(
        identity.uid,
        identity.token_version,
        issued_at=datetime.now(UTC) - timedelta(minutes=10),
    )
    stale = ChatSession.init(provider, stale_token)
    with pytest.raises(RecentLoginRequiredError):
        stale.require_recent_login()


@pytest.mark.asyncio
async def test_verify_google_id_token_accepts_verified_email() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["id_token"] == "tok"
        return httpx.Response(
            200,
            json={
                "sub": "1234",
                "email": "hana@gmail.com",
                "email_verified": "true",
                "picture": "https://img/h.png",
            },
        )

    async with httpx.AsyncClient(transport=httpx.MockTransport(handler)) as client:
        account = await verify_google_id_token("tok", client=client)

    assert account.sub == "1234"
    assert account.email == "hana@gmail.com"
    assert account.picture == "https://img/h.png"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status_code", "payload"),
    [
        (400, {"error": "invalid_token"}),
        (200, {"sub": "1", "email": "x@gmail.com", "email_verified": "false"}),
    ],
)
async def test_verify_google_id_token_rejects(status_code: int, payload: dict) -> None:
    transport = httpx.MockTransport(lambda request: httpx.Response(status_code, json=payload))

    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(GoogleSignInError):
            await verify_google_id_token("tok", client=client)


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "response",
    [
        httpx.Response(200, text="<html>not json</html>"),
        httpx.Response(200, json=["not", "an", "object"]),
    ],
)
async def test_verify_google_id_token_rejects_malformed_body(response: httpx.Response) -> None:
    transport = httpx.MockTransport(lambda request: response)

    async with httpx.AsyncClient(transport=transport) as client:
        with pytest.raises(GoogleSignInError, match="invalid response"):
            await verify_google_id_token("tok", client=client)
