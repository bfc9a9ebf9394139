# src/aura_talk/main.py
"""Main entry point for the Aura Talk application."""

from __future__ import annotations

import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.staticfiles import StaticFiles

from aura_talk.api.v1 import (
    auth_router,
    chats_router,
    contacts_router,
    live_router,
    users_router,
    world_router,
)
from aura_talk.core.settings import settings
from aura_talk.services.identity import on_auth_state_change
from aura_talk.services.profile import touch_last_active
from aura_talk.services.suggestions import get_suggestion_client

logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title=f"{settings.app_name} API",
    description="Real-time chat: world channel, direct messages and contact discovery",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(auth_router, prefix="/api/v1")
app.include_router(users_router, prefix="/api/v1")
app.include_router(world_router, prefix="/api/v1")
app.include_router(chats_router, prefix="/api/v1")
app.include_router(contacts_router, prefix="/api/v1")
app.include_router(live_router, prefix="/api/v1")

# Uploaded avatars
app.mount(
    settings.avatar_base_url,
    StaticFiles(directory=settings.avatar_storage_dir, check_dir=False),
    name="avatars",
)


@app.on_event("startup")
async def on_startup() -> None:
    logging.basicConfig(level=settings.log_level.upper())
    app.state.unsubscribe_last_active = on_auth_state_change(touch_last_active)
    logger.info("%s %s started", settings.app_name, settings.app_version)


@app.on_event("shutdown")
async def on_shutdown() -> None:
    unsubscribe = getattr(app.state, "unsubscribe_last_active", None)
    if unsubscribe:
        unsubscribe()
    await get_suggestion_client().close()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": f"{settings.app_name} API",
        "version": settings.app_version,
        "description": "Real-time chat: world channel, direct messages and contact discovery",
        "docs": "/docs",
        "redoc": "/redoc",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("aura_talk.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
