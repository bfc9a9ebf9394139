# src/aura_talk/models/chat.py
"""Models describing message logs and conversation summaries."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import (
    JSON,
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from aura_talk.db.session import Base
from aura_talk.db.time import utcnow


class Chat(Base):
    """Denormalized summary of a two-party conversation.

    ``last_message``/``last_message_timestamp`` copy the latest successfully
    written message; they are maintained by a second, non-atomic write.
    """

    __tablename__ = "chat"

    id: Mapped[str] = mapped_column(String(160), primary_key=True)
    member_low: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    member_high: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    members: Mapped[list[str]] = mapped_column(JSON, nullable=False)
    last_message: Mapped[str | None] = mapped_column(Text, nullable=True)
    last_message_timestamp: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    updated_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), default=utcnow)


class Message(Base):
    """Entry in an append-only message log.

    World-channel entries leave ``receiver_id`` and ``seen`` empty; direct
    messages always carry both. Sender fields are a snapshot taken at send
    time and are not joined against the live profile.
    """

    __tablename__ = "message"
    __table_args__ = (Index("ix_message_channel_timestamp", "channel_id", "timestamp", "id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    channel_id: Mapped[str] = mapped_column(String(160), nullable=False)

    sender_id: Mapped[str] = mapped_column(String(64), nullable=False)
    sender_username: Mapped[str] = mapped_column(String(20), nullable=False)
    sender_profile_pic: Mapped[str | None] = mapped_column(Text, nullable=True)

    text: Mapped[str] = mapped_column(Text, nullable=False)
    timestamp: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    receiver_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    seen: Mapped[bool | None] = mapped_column(Boolean, nullable=True)
    reply_to: Mapped[int | None] = mapped_column(Integer, nullable=True)

    reactions: Mapped[list[MessageReaction]] = relationship(
        "MessageReaction",
        cascade="all, delete-orphan",
        order_by="MessageReaction.user_id",
        lazy="selectin",
    )

    @property
    def reaction_map(self) -> dict[str, list[str]]:
        """Return reactions as ``{emoji: [uid, ...]}`` with uids sorted."""
        grouped: dict[str, list[str]] = {}
        for reaction in self.reactions:
            grouped.setdefault(reaction.emoji, []).append(reaction.user_id)
        return {emoji: sorted(uids) for emoji, uids in grouped.items()}


class MessageReaction(Base):
    """A single user's emoji reaction to a message."""

    __tablename__ = "message_reaction"
    __table_args__ = (UniqueConstraint("message_id", "emoji", "user_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    message_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("message.id", ondelete="CASCADE"), nullable=False, index=True
    )
    emoji: Mapped[str] = mapped_column(String(32), nullable=False)
    user_id: Mapped[str] = mapped_column(String(64), nullable=False)
