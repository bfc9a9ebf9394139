# src/aura_talk/models/__init__.py
"""SQLAlchemy models for the Aura Talk application."""

from .chat import Chat, Message, MessageReaction
from .identity import AuthIdentity
from .user import UserProfile, UsernameIndex

__all__ = [
    "AuthIdentity",
    "Chat", "Message", "MessageReaction",
    "UserProfile", "UsernameIndex",
]
