"""Message and conversation Pydantic schemas."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field, field_validator

from .user import PublicProfile

if TYPE_CHECKING:
    from aura_talk.models import Message


class MessageCreate(BaseModel):
    """Schema for sending a message to the world channel or a conversation."""

    text: str = Field(..., description="Message body; blank text is rejected")
    reply_to: int | None = Field(None, description="Id of a message in the same log")


class ReactionToggle(BaseModel):
    """Schema for adding or removing an emoji reaction."""

    emoji: str = Field(..., description="Emoji symbol to toggle")

    @field_validator("emoji")
    @classmethod
    def strip_emoji(cls, v: str) -> str:
        return v.strip()


class MessageResponse(BaseModel):
    """Message as delivered to clients and subscription snapshots."""

    id: int
    sender_id: str
    sender_username: str
    sender_profile_pic: str | None = None
    text: str
    timestamp: datetime
    receiver_id: str | None = None
    seen: bool | None = None
    reply_to: int | None = None
    reactions: dict[str, list[str]] = Field(default_factory=dict)

    @classmethod
    def from_message(cls, message: Message) -> MessageResponse:
        """Build the payload, flattening reactions into an emoji map."""
        return cls(
            id=message.id,
            sender_id=message.sender_id,
            sender_username=message.sender_username,
            sender_profile_pic=message.sender_profile_pic,
            text=message.text,
            timestamp=message.timestamp,
            receiver_id=message.receiver_id,
            seen=message.seen,
            reply_to=message.reply_to,
            reactions=message.reaction_map,
        )


class ChatEntryResponse(BaseModel):
    """Conversation list entry joined with the partner's profile."""

    id: str
    members: list[str]
    last_message: str | None = None
    last_message_timestamp: datetime | None = None
    updated_at: datetime
    partner: PublicProfile


class ReactionResult(BaseModel):
    """Outcome of a reaction toggle."""

    added: bool
    reactions: dict[str, list[str]]
