"""WebSocket endpoints streaming live window snapshots.

Each frame carries the complete current window, never a delta. Browsers
cannot set headers on a WebSocket handshake, so the access token travels as
the ``token`` query parameter.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

from fastapi import APIRouter, Query, WebSocket
from sqlalchemy.orm import Session

from aura_talk.models import UserProfile
from aura_talk.schemas.common import SnapshotFrame
from aura_talk.services.conversation import ConversationEngine, WorldChannel, conversation_id
from aura_talk.services.identity import ChatSession, IdentityProvider, InvalidTokenError
from aura_talk.services.live import WindowSubscription

from ..dependencies import ChangeFeedDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/ws", tags=["live"])

CLOSE_UNAUTHORIZED = 4001
CLOSE_NOT_FOUND = 4004


async def _authenticate(websocket: WebSocket, db: Session, token: str) -> UserProfile | None:
    """Accept the socket and resolve the caller, closing it on failure."""
    await websocket.accept()
    try:
        session = ChatSession.init(IdentityProvider(db), token)
    except InvalidTokenError:
        await websocket.close(code=CLOSE_UNAUTHORIZED)
        return None
    if session.profile is None:
        await websocket.close(code=CLOSE_NOT_FOUND)
        return None
    return session.profile


async def _stream(websocket: WebSocket, subscription: WindowSubscription[Any]) -> None:
    """Forward snapshots until either side goes away."""

    async def pump() -> None:
        async for items in subscription:
            frame = SnapshotFrame(items=items)
            await websocket.send_json(frame.model_dump(mode="json"))

    async def drain() -> None:
        while True:
            event = await websocket.receive()
            if event["type"] == "websocket.disconnect":
                return

    tasks = {asyncio.create_task(pump()), asyncio.create_task(drain())}
    try:
        done, _ = await asyncio.wait(tasks, return_when=asyncio.FIRST_COMPLETED)
    finally:
        subscription.close()
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
    for task in done:
        if not task.cancelled() and task.exception() is not None:
            logger.warning("Live stream on %s ended: %s", subscription.key, task.exception())


@router.websocket("/world")
async def world_stream(
    websocket: WebSocket,
    db: SessionDep,
    feed: ChangeFeedDep,
    token: str = Query(...),
) -> None:
    """Stream the world channel window."""
    if await _authenticate(websocket, db, token) is None:
        return
    await _stream(websocket, WorldChannel(db, feed).subscribe())


@router.websocket("/chats")
async def chat_list_stream(
    websocket: WebSocket,
    db: SessionDep,
    feed: ChangeFeedDep,
    token: str = Query(...),
) -> None:
    """Stream the caller's conversation list."""
    profile = await _authenticate(websocket, db, token)
    if profile is None:
        return
    await _stream(websocket, ConversationEngine(db, feed).subscribe_chats(profile.uid))


@router.websocket("/chats/{partner_uid}")
async def conversation_stream(
    websocket: WebSocket,
    partner_uid: str,
    db: SessionDep,
    feed: ChangeFeedDep,
    token: str = Query(...),
) -> None:
    """Stream one conversation's message window."""
    profile = await _authenticate(websocket, db, token)
    if profile is None:
        return
    if partner_uid == profile.uid or db.get(UserProfile, partner_uid) is None:
        await websocket.close(code=CLOSE_NOT_FOUND)
        return
    chat_id = conversation_id(profile.uid, partner_uid)
    await _stream(websocket, ConversationEngine(db, feed).subscribe(chat_id))
