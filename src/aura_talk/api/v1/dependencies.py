"""Shared API dependencies for authentication and service construction."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from aura_talk.db.session import get_db
from aura_talk.models import UserProfile
from aura_talk.services.blob_storage import LocalBlobStorage, get_blob_storage
from aura_talk.services.contacts import ContactDiscovery
from aura_talk.services.conversation import ConversationEngine, WorldChannel
from aura_talk.services.identity import (
    ChatSession,
    IdentityProvider,
    InvalidTokenError,
    ProfileMissingError,
)
from aura_talk.services.live import ChangeFeed, get_change_feed
from aura_talk.services.profile import ProfileService
from aura_talk.services.suggestions import SuggestionClient, get_suggestion_client

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def get_identity_provider(db: SessionDep) -> IdentityProvider:
    return IdentityProvider(db)


IdentityProviderDep = Annotated[IdentityProvider, Depends(get_identity_provider)]


def open_chat_session(provider: IdentityProvider, token: str) -> ChatSession:
    """Build a session from a raw token, translating failures to 401."""
    try:
        return ChatSession.init(provider, token)
    except InvalidTokenError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
        ) from err


def get_chat_session(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
    provider: IdentityProviderDep,
) -> ChatSession:
    """Get the session of the authenticated caller from the bearer token."""
    return open_chat_session(provider, credentials.credentials)


ChatSessionDep = Annotated[ChatSession, Depends(get_chat_session)]


def get_current_profile(session: ChatSessionDep) -> UserProfile:
    """Return the caller's profile; accounts without one cannot chat."""
    try:
        return session.require_profile()
    except ProfileMissingError as err:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail="Profile not found",
        ) from err


CurrentProfileDep = Annotated[UserProfile, Depends(get_current_profile)]


def get_change_feed_dep() -> ChangeFeed:
    return get_change_feed()


ChangeFeedDep = Annotated[ChangeFeed, Depends(get_change_feed_dep)]


def get_conversation_engine(db: SessionDep, feed: ChangeFeedDep) -> ConversationEngine:
    return ConversationEngine(db, feed)


def get_world_channel(db: SessionDep, feed: ChangeFeedDep) -> WorldChannel:
    return WorldChannel(db, feed)


ConversationEngineDep = Annotated[ConversationEngine, Depends(get_conversation_engine)]
WorldChannelDep = Annotated[WorldChannel, Depends(get_world_channel)]


def get_suggestion_client_dep() -> SuggestionClient:
    return get_suggestion_client()


def get_contact_discovery(
    db: SessionDep,
    session: ChatSessionDep,
    client: Annotated[SuggestionClient, Depends(get_suggestion_client_dep)],
) -> ContactDiscovery:
    return ContactDiscovery(db, session, client)


ContactDiscoveryDep = Annotated[ContactDiscovery, Depends(get_contact_discovery)]


def get_blob_storage_dep() -> LocalBlobStorage:
    return get_blob_storage()


def get_profile_service(
    db: SessionDep,
    session: ChatSessionDep,
    storage: Annotated[LocalBlobStorage, Depends(get_blob_storage_dep)],
) -> ProfileService:
    return ProfileService(db, session, storage)


ProfileServiceDep = Annotated[ProfileService, Depends(get_profile_service)]
