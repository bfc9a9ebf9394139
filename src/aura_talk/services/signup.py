"""Account creation with username reservation.

A username is reserved through the ``username_index`` reverse index. The
profile and its index entry are always written together in one commit, and
a signup that created an identity but failed to write the profile deletes
that identity again.
"""

from __future__ import annotations

import logging
import random
import re
from dataclasses import dataclass
from enum import Enum

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aura_talk.core.exceptions import ConflictError
from aura_talk.models import AuthIdentity, UserProfile, UsernameIndex
from aura_talk.schemas.user import USERNAME_MAX_LENGTH, USERNAME_MIN_LENGTH
from aura_talk.services.identity import GoogleAccount, IdentityProvider

logger = logging.getLogger(__name__)

_INVALID_USERNAME_CHARS = re.compile(r"[^a-zA-Z0-9_]")
SOCIAL_SUFFIX_RANGE = 1000
SOCIAL_SUFFIX_ATTEMPTS = 10


class SignupState(Enum):
    """Progress of a username reservation."""

    CHECKING_AVAILABILITY = "checking-availability"
    RESERVED = "reserved"
    PROFILE_CREATED = "profile-created"
    REJECTED = "rejected"


class UsernameTakenError(ConflictError):
    """Raised when the requested username is already reserved."""

    field = "username"


@dataclass
class SignupOutcome:
    """Result of a completed signup or social login."""

    identity: AuthIdentity
    profile: UserProfile
    state: SignupState
    created: bool = True


def is_username_available(db: Session, username: str, *, uid: str | None = None) -> bool:
    """True if nobody else owns ``username`` (case-insensitive)."""
    entry = db.get(UsernameIndex, username.lower())
    return entry is None or (uid is not None and entry.uid == uid)


def add_profile_with_index(
    db: Session,
    uid: str,
    username: str,
    email: str,
    profile_pic: str | None = None,
) -> UserProfile:
    """Stage a profile and its reverse-index entry; the caller commits."""
    profile = UserProfile(uid=uid, username=username, email=email, profile_pic=profile_pic)
    db.add(profile)
    db.add(UsernameIndex(username_lower=username.lower(), uid=uid))
    return profile


def username_from_email(email: str) -> str:
    """Derive a valid username from the local part of an email address."""
    local = _INVALID_USERNAME_CHARS.sub("_", email.split("@", 1)[0])
    local = local[:USERNAME_MAX_LENGTH]
    if len(local) < USERNAME_MIN_LENGTH:
        local = local.ljust(USERNAME_MIN_LENGTH, "_")
    return local


class SignupService:
    """Drives the signup state machine against the identity provider and store."""

    def __init__(self, db: Session, provider: IdentityProvider | None = None) -> None:
        self.db = db
        self.provider = provider or IdentityProvider(db)
        self.state = SignupState.CHECKING_AVAILABILITY

    def sign_up(self, username: str, email: str, password: str) -> SignupOutcome:
        """Create an email/password account with a unique username.

        Raises:
            UsernameTakenError: If the username is reserved; nothing is written.
            EmailAlreadyInUseError: If the email already has an identity.
        """
        self.state = SignupState.CHECKING_AVAILABILITY
        if not is_username_available(self.db, username):
            self.state = SignupState.REJECTED
            raise UsernameTakenError("This username is already taken.")

        identity = self.provider.create_identity(email, password)
        self.state = SignupState.RESERVED

        try:
            profile = add_profile_with_index(self.db, identity.uid, username, identity.email)
            self.db.commit()
        except Exception as err:
            self.db.rollback()
            logger.warning(
                "Profile write failed for new identity %s; removing identity", identity.uid
            )
            self.provider.delete_identity(identity.uid)
            self.state = SignupState.REJECTED
            if isinstance(err, SQLAlchemyError) and not is_username_available(self.db, username):
                # Lost a race for the same username.
                raise UsernameTakenError("This username is already taken.") from err
            raise

        self.db.refresh(profile)
        self.state = SignupState.PROFILE_CREATED
        self.provider.signed_in(identity)
        return SignupOutcome(identity=identity, profile=profile, state=self.state)

    def sign_in_with_google(self, account: GoogleAccount) -> SignupOutcome:
        """Sign in with a verified Google account, creating a profile on first use."""
        identity, _ = self.provider.get_or_create_google_identity(account)
        profile = self.db.get(UserProfile, identity.uid)
        if profile is not None:
            self.state = SignupState.PROFILE_CREATED
            self.provider.signed_in(identity)
            return SignupOutcome(identity=identity, profile=profile, state=self.state, created=False)

        base = username_from_email(identity.email)
        username = base
        attempts = 0
        while not is_username_available(self.db, username):
            if attempts >= SOCIAL_SUFFIX_ATTEMPTS:
                self.state = SignupState.REJECTED
                raise UsernameTakenError("Could not find a free username for this account.")
            suffix = str(random.randrange(SOCIAL_SUFFIX_RANGE))
            username = base[: USERNAME_MAX_LENGTH - len(suffix)] + suffix
            attempts += 1
        self.state = SignupState.RESERVED

        try:
            profile = add_profile_with_index(
                self.db, identity.uid, username, identity.email, identity.photo_url
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            self.state = SignupState.REJECTED
            raise

        self.db.refresh(profile)
        self.state = SignupState.PROFILE_CREATED
        self.provider.signed_in(identity)
        return SignupOutcome(identity=identity, profile=profile, state=self.state)
