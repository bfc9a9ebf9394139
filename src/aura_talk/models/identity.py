# src/aura_talk/models/identity.py
"""Authentication identities owned by the identity provider."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, Integer, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from aura_talk.db.session import Base
from aura_talk.db.time import utcnow

PROVIDER_PASSWORD = "password"
PROVIDER_GOOGLE = "google"


class AuthIdentity(Base):
    """Sign-in identity; the uid it assigns is the stable key for everything else."""

    __tablename__ = "auth_identity"

    uid: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str] = mapped_column(String(320), unique=True, nullable=False)
    password_hash: Mapped[str | None] = mapped_column(Text, nullable=True)
    provider: Mapped[str] = mapped_column(String(16), nullable=False, default=PROVIDER_PASSWORD)
    google_sub: Mapped[str | None] = mapped_column(String(255), unique=True, nullable=True)
    photo_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Bumped on sign-out; tokens carrying an older version are rejected.
    token_version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)
