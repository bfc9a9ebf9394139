"""Identity provider and the per-request chat session handle.

The provider owns sign-in identities (email/password or Google) and the
uids they assign. Everything else in the service keys off those uids and
reads the signed-in user through an explicitly passed :class:`ChatSession`.
"""

from __future__ import annotations

import logging
import uuid
from collections.abc import Callable
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

import httpx
from jose import JWTError
from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aura_talk.core import security
from aura_talk.core.exceptions import AuthenticationError, ConflictError, ExternalServiceError
from aura_talk.core.settings import settings
from aura_talk.models import AuthIdentity, UserProfile
from aura_talk.models.identity import PROVIDER_GOOGLE, PROVIDER_PASSWORD

logger = logging.getLogger(__name__)

AUTH_SIGNED_IN = "signed_in"
AUTH_SIGNED_OUT = "signed_out"

AuthStateListener = Callable[[str, AuthIdentity, Session], None]


class EmailAlreadyInUseError(ConflictError):
    """Raised when an identity with the same email already exists."""


class InvalidCredentialsError(AuthenticationError):
    """Raised when email/password do not match an identity."""


class InvalidTokenError(AuthenticationError):
    """Raised when an access token is malformed, expired or revoked."""


class RecentLoginRequiredError(AuthenticationError):
    """Raised when a sensitive operation needs a fresher sign-in."""


class ProfileMissingError(AuthenticationError):
    """Raised when a signed-in identity has no profile record."""


class GoogleSignInError(ExternalServiceError):
    """Raised when a Google ID token cannot be verified."""


_listeners: list[AuthStateListener] = []


def on_auth_state_change(callback: AuthStateListener) -> Callable[[], None]:
    """Register a callback fired on sign-in and sign-out.

    Returns:
        A callable that removes the registration.
    """
    _listeners.append(callback)

    def unsubscribe() -> None:
        if callback in _listeners:
            _listeners.remove(callback)

    return unsubscribe


def new_uid() -> str:
    """Return a fresh identity uid (hex, so it never contains ``_``)."""
    return uuid.uuid4().hex


@dataclass(frozen=True)
class GoogleAccount:
    """Claims taken from a verified Google ID token."""

    sub: str
    email: str
    picture: str | None = None


class IdentityProvider:
    """Creates, authenticates and revokes sign-in identities."""

    def __init__(self, db: Session) -> None:
        self.db = db

    def _notify(self, event: str, identity: AuthIdentity) -> None:
        for listener in list(_listeners):
            try:
                listener(event, identity, self.db)
            except Exception:  # pragma: no cover - listener bugs must not break sign-in
                logger.exception("Auth state listener failed for %s", event)

    def get(self, uid: str) -> AuthIdentity | None:
        return self.db.get(AuthIdentity, uid)

    def get_by_email(self, email: str) -> AuthIdentity | None:
        return self.db.scalars(
            select(AuthIdentity).where(AuthIdentity.email == email.strip().lower())
        ).first()

    def create_identity(self, email: str, password: str) -> AuthIdentity:
        """Create an email/password identity and commit it.

        Raises:
            EmailAlreadyInUseError: If the email is already registered.
        """
        normalized = email.strip().lower()
        if self.get_by_email(normalized) is not None:
            raise EmailAlreadyInUseError("This email is already registered.")

        identity = AuthIdentity(
            uid=new_uid(),
            email=normalized,
            password_hash=security.hash_password(password),
            provider=PROVIDER_PASSWORD,
        )
        self.db.add(identity)
        try:
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            if self.get_by_email(normalized) is not None:
                raise EmailAlreadyInUseError("This email is already registered.") from err
            raise
        self.db.refresh(identity)
        logger.info("Created identity %s", identity.uid)
        return identity

    def get_or_create_google_identity(self, account: GoogleAccount) -> tuple[AuthIdentity, bool]:
        """Return the identity linked to a Google account, creating it if needed."""
        identity = self.db.scalars(
            select(AuthIdentity).where(AuthIdentity.google_sub == account.sub)
        ).first()
        if identity is None:
            identity = self.get_by_email(account.email)
            if identity is not None:
                identity.google_sub = account.sub
                identity.photo_url = account.picture
                self.db.commit()
        if identity is not None:
            return identity, False

        identity = AuthIdentity(
            uid=new_uid(),
            email=account.email.strip().lower(),
            provider=PROVIDER_GOOGLE,
            google_sub=account.sub,
            photo_url=account.picture,
        )
        self.db.add(identity)
        self.db.commit()
        self.db.refresh(identity)
        logger.info("Created Google identity %s", identity.uid)
        return identity, True

    def delete_identity(self, uid: str) -> None:
        """Remove an identity; used to undo a half-finished signup."""
        identity = self.get(uid)
        if identity is None:
            return
        self.db.delete(identity)
        self.db.commit()
        logger.info("Deleted identity %s", uid)

    def authenticate(self, email: str, password: str) -> AuthIdentity:
        """Verify email/password credentials.

        Raises:
            InvalidCredentialsError: On unknown email or wrong password.
        """
        identity = self.get_by_email(email)
        if (
            identity is None
            or identity.password_hash is None
            or not security.verify_password(password, identity.password_hash)
        ):
            raise InvalidCredentialsError("Invalid email or password.")
        self.signed_in(identity)
        return identity

    def signed_in(self, identity: AuthIdentity) -> None:
        self._notify(AUTH_SIGNED_IN, identity)

    def sign_out(self, uid: str) -> None:
        """Revoke every token issued so far for ``uid``."""
        identity = self.get(uid)
        if identity is None:
            return
        identity.token_version += 1
        self.db.commit()
        self._notify(AUTH_SIGNED_OUT, identity)

    def update_email(self, uid: str, email: str) -> AuthIdentity:
        identity = self.get(uid)
        if identity is None:
            raise InvalidTokenError("Unknown identity")
        normalized = email.strip().lower()
        other = self.get_by_email(normalized)
        if other is not None and other.uid != uid:
            raise EmailAlreadyInUseError("This email is already registered.")
        identity.email = normalized
        return identity

    def issue_token(self, identity: AuthIdentity) -> str:
        return security.create_access_token(identity.uid, identity.token_version)

    def resolve_token(self, token: str) -> tuple[AuthIdentity, datetime]:
        """Return the identity and issue time for a bearer token.

        Raises:
            InvalidTokenError: If the token is invalid, expired or revoked.
        """
        try:
            payload = security.decode_access_token(token)
        except JWTError as err:
            raise InvalidTokenError("Could not validate credentials") from err

        identity = self.get(str(payload["sub"]))
        if identity is None or int(payload["ver"]) != identity.token_version:
            raise InvalidTokenError("Could not validate credentials")
        issued_at = datetime.fromtimestamp(int(payload.get("iat", 0)), UTC)
        return identity, issued_at


async def verify_google_id_token(
    id_token: str, *, client: httpx.AsyncClient | None = None
) -> GoogleAccount:
    """Verify a Google ID token against Google's tokeninfo endpoint.

    Raises:
        GoogleSignInError: If Google rejects the token, the audience does not
            match ``GOOGLE_CLIENT_ID``, or the email is unverified.
    """
    owns_client = client is None
    http = client or httpx.AsyncClient(timeout=httpx.Timeout(10.0))
    try:
        response = await http.get(settings.google_tokeninfo_url, params={"id_token": id_token})
    except httpx.HTTPError as exc:
        raise GoogleSignInError(f"Google token verification failed: {exc}") from exc
    finally:
        if owns_client:
            await http.aclose()

    if response.status_code != 200:
        raise GoogleSignInError(f"Google rejected the token ({response.status_code})")

    try:
        claims: dict[str, Any] = response.json()
    except ValueError as exc:
        raise GoogleSignInError("Google returned an invalid response") from exc
    if not isinstance(claims, dict):
        raise GoogleSignInError("Google returned an invalid response")
    if settings.google_client_id and claims.get("aud") != settings.google_client_id:
        raise GoogleSignInError("Token was issued for a different client")
    if str(claims.get("email_verified", "")).lower() != "true" or not claims.get("email"):
        raise GoogleSignInError("Google account email is not verified")
    if not claims.get("sub"):
        raise GoogleSignInError("Token has no subject")

    return GoogleAccount(sub=str(claims["sub"]), email=str(claims["email"]), picture=claims.get("picture"))


@dataclass
class ChatSession:
    """Handle on the signed-in user, passed explicitly to services.

    Lifecycle: :meth:`init` from a bearer token at the start of a request or
    socket, :meth:`refresh` after the profile changes, :meth:`teardown` on
    sign-out.
    """

    provider: IdentityProvider
    identity: AuthIdentity
    issued_at: datetime
    profile: UserProfile | None = field(default=None)

    @classmethod
    def init(cls, provider: IdentityProvider, token: str) -> ChatSession:
        identity, issued_at = provider.resolve_token(token)
        session = cls(provider=provider, identity=identity, issued_at=issued_at)
        session.refresh()
        return session

    @property
    def uid(self) -> str:
        return self.identity.uid

    def refresh(self) -> UserProfile | None:
        """Reload the profile from the store."""
        self.profile = self.provider.db.get(UserProfile, self.uid)
        return self.profile

    def require_profile(self) -> UserProfile:
        if self.profile is None:
            raise ProfileMissingError("No profile exists for this account")
        return self.profile

    def require_recent_login(self) -> None:
        """Refuse sensitive operations on tokens older than the configured window."""
        age = (datetime.now(UTC) - self.issued_at).total_seconds()
        if age > settings.recent_login_seconds:
            raise RecentLoginRequiredError("Please sign in again to complete this action.")

    def teardown(self) -> None:
        """Sign out, revoking this and every other outstanding token."""
        self.provider.sign_out(self.uid)
        self.profile = None
