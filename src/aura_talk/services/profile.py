"""Profile settings: username, email and avatar changes."""

from __future__ import annotations

import logging
from typing import BinaryIO

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from aura_talk.models import AuthIdentity, UserProfile, UsernameIndex
from aura_talk.services.blob_storage import LocalBlobStorage, ProgressCallback, get_blob_storage
from aura_talk.services.identity import AUTH_SIGNED_IN, ChatSession
from aura_talk.services.signup import UsernameTakenError, is_username_available

logger = logging.getLogger(__name__)


class ProfileService:
    """Applies settings changes for the signed-in user.

    Each step commits on its own, in order: username, email, avatar. A failed
    avatar upload therefore leaves earlier edits in place.
    """

    def __init__(
        self,
        db: Session,
        session: ChatSession,
        storage: LocalBlobStorage | None = None,
    ) -> None:
        self.db = db
        self.session = session
        self.storage = storage or get_blob_storage()

    def rename(self, new_username: str) -> UserProfile:
        """Swap the reverse-index entry and the profile username in one commit."""
        profile = self.session.require_profile()
        if new_username == profile.username:
            return profile
        if not is_username_available(self.db, new_username, uid=profile.uid):
            raise UsernameTakenError("This username is already taken.")

        old_key = profile.username.lower()
        new_key = new_username.lower()
        try:
            if old_key != new_key:
                old_entry = self.db.get(UsernameIndex, old_key)
                if old_entry is not None:
                    self.db.delete(old_entry)
                    self.db.flush()
                self.db.add(UsernameIndex(username_lower=new_key, uid=profile.uid))
            profile.username = new_username
            profile.touch()
            self.db.commit()
        except SQLAlchemyError as err:
            self.db.rollback()
            if not is_username_available(self.db, new_username, uid=profile.uid):
                raise UsernameTakenError("This username is already taken.") from err
            raise
        logger.info("User %s renamed to %s", profile.uid, new_username)
        return profile

    def change_email(self, new_email: str) -> UserProfile:
        """Change the sign-in and profile email; needs a recent sign-in."""
        profile = self.session.require_profile()
        if new_email.strip().lower() == profile.email.strip().lower():
            return profile
        self.session.require_recent_login()

        try:
            self.session.provider.update_email(profile.uid, new_email)
            profile.email = new_email.strip().lower()
            profile.touch()
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            raise
        return profile

    def change_avatar(
        self,
        stream: BinaryIO,
        *,
        size_hint: int | None = None,
        progress: ProgressCallback | None = None,
    ) -> UserProfile:
        """Upload a new avatar and point the profile at it."""
        profile = self.session.require_profile()
        url = self.storage.upload(profile.uid, stream, size_hint=size_hint, progress=progress)
        profile.profile_pic = url
        profile.touch()
        self.db.commit()
        return profile

    def update_settings(
        self,
        *,
        username: str | None = None,
        email: str | None = None,
        avatar: BinaryIO | None = None,
        avatar_size: int | None = None,
        progress: ProgressCallback | None = None,
    ) -> UserProfile:
        """Apply any combination of settings changes in a fixed order."""
        profile = self.session.require_profile()
        if username is not None:
            profile = self.rename(username)
        if email is not None:
            profile = self.change_email(email)
        if avatar is not None:
            profile = self.change_avatar(avatar, size_hint=avatar_size, progress=progress)
        self.session.refresh()
        return profile


def touch_last_active(event: str, identity: AuthIdentity, db: Session) -> None:
    """Auth-state listener bumping ``last_active`` on every sign-in."""
    if event != AUTH_SIGNED_IN:
        return
    profile = db.get(UserProfile, identity.uid)
    if profile is None:
        return
    profile.touch()
    db.commit()
