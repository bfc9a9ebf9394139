# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from itertools import count

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "aura-talk-test-secret")
os.environ.setdefault("DATABASE_URL", "sqlite://")
os.environ["SUGGESTION_SERVICE_URL"] = ""

from aura_talk.db.session import Base
from aura_talk.db.session import get_db as app_get_session
from aura_talk.main import app as fastapi_app
from aura_talk.models import AuthIdentity, UserProfile, UsernameIndex
from aura_talk.services.identity import ChatSession, IdentityProvider, new_uid
from aura_talk.services.live import ChangeFeed

TEST_DB_URL = "sqlite://"

_EMAIL_COUNTER = count(1)

UserFactory = Callable[..., tuple[AuthIdentity, UserProfile]]


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(
        bind=engine,
        autocommit=False,
        autoflush=False,
        expire_on_commit=False,
    )
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit, so each test starts from empty tables.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def feed() -> ChangeFeed:
    """A private change feed so subscriptions never see other tests."""
    return ChangeFeed()


@pytest.fixture()
def user_factory(db_session: Session) -> UserFactory:
    """Persist an identity, profile and index entry without hashing a password."""

    def _create(
        username: str,
        *,
        email: str | None = None,
        with_profile: bool = True,
    ) -> tuple[AuthIdentity, UserProfile | None]:
        uid = new_uid()
        email = email or f"user{next(_EMAIL_COUNTER)}@example.com"
        identity = AuthIdentity(uid=uid, email=email, provider="password")
        db_session.add(identity)
        profile = None
        if with_profile:
            profile = UserProfile(uid=uid, username=username, email=email)
            db_session.add(profile)
            db_session.add(UsernameIndex(username_lower=username.lower(), uid=uid))
        db_session.commit()
        return identity, profile

    return _create


@pytest.fixture()
def alice(user_factory: UserFactory) -> tuple[AuthIdentity, UserProfile]:
    return user_factory("alice", email="alice@example.com")


@pytest.fixture()
def bob(user_factory: UserFactory) -> tuple[AuthIdentity, UserProfile]:
    return user_factory("bob", email="bob@example.com")


@pytest.fixture()
def carol(user_factory: UserFactory) -> tuple[AuthIdentity, UserProfile]:
    return user_factory("carol", email="carol@example.com")


@pytest.fixture()
def session_for(db_session: Session) -> Callable[[AuthIdentity], ChatSession]:
    """Open a chat session for an identity through a freshly issued token."""

    def _open(identity: AuthIdentity) -> ChatSession:
        provider = IdentityProvider(db_session)
        return ChatSession.init(provider, provider.issue_token(identity))

    return _open


@pytest.fixture()
def auth_headers(db_session: Session) -> Callable[[AuthIdentity], dict[str, str]]:
    """Return authorization headers for an identity."""

    def _headers(identity: AuthIdentity) -> dict[str, str]:
        token = IdentityProvider(db_session).issue_token(identity)
        return {"Authorization": f"Bearer {token}"}

    return _headers
