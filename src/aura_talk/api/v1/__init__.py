# src/aura_talk/api/v1/__init__.py
"""Version 1 API endpoints."""

from .endpoints import (
    auth_router,
    chats_router,
    contacts_router,
    live_router,
    users_router,
    world_router,
)

__all__ = [
    "auth_router",
    "users_router",
    "world_router",
    "chats_router",
    "contacts_router",
    "live_router",
]
