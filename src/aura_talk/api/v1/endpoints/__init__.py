# src/aura_talk/api/v1/endpoints/__init__.py
"""API endpoint modules for version 1."""

from .auth import router as auth_router
from .chats import router as chats_router
from .contacts import router as contacts_router
from .live import router as live_router
from .users import router as users_router
from .world import router as world_router

__all__ = [
    "auth_router",
    "users_router",
    "world_router",
    "chats_router",
    "contacts_router",
    "live_router",
]
