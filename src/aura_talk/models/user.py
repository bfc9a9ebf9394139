# src/aura_talk/models/user.py
"""SQLAlchemy models for user profiles and the username reverse index."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from aura_talk.db.session import Base
from aura_talk.db.time import utcnow


class UserProfile(Base):
    """Public profile record, exactly one per identity uid."""

    __tablename__ = "user_profile"

    uid: Mapped[str] = mapped_column(String(64), primary_key=True)
    username: Mapped[str] = mapped_column(String(20), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False)
    profile_pic: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
    last_active: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)

    def touch(self) -> None:
        """Advance ``last_active`` without ever moving it backwards."""
        now = utcnow()
        current = self.last_active
        if current is not None and current.tzinfo is None:
            now = now.replace(tzinfo=None)
        if current is None or now > current:
            self.last_active = now


class UsernameIndex(Base):
    """Reverse index from lowercased username to the owning uid.

    Username uniqueness is enforced through this table rather than a
    constraint on ``user_profile``.
    """

    __tablename__ = "username_index"

    username_lower: Mapped[str] = mapped_column(String(20), primary_key=True)
    uid: Mapped[str] = mapped_column(String(64), unique=True, nullable=False)
