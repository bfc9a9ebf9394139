# src/aura_talk/services/__init__.py
"""Business logic services for the Aura Talk application."""

from .contacts import ContactDiscovery
from .conversation import ConversationEngine, WorldChannel
from .identity import ChatSession, IdentityProvider
from .profile import ProfileService
from .signup import SignupService

__all__ = [
    "ConversationEngine",
    "WorldChannel",
    "ContactDiscovery",
    "IdentityProvider",
    "ChatSession",
    "SignupService",
    "ProfileService",
]
