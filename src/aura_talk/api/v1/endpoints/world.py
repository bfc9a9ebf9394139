"""World channel endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query, status

from aura_talk.schemas.message import MessageCreate, MessageResponse, ReactionResult, ReactionToggle
from aura_talk.services.conversation import (
    EmptyMessageError,
    InvalidReactionError,
    MessageNotFoundError,
    MessageTooLongError,
)

from ..dependencies import CurrentProfileDep, WorldChannelDep

router = APIRouter(prefix="/world", tags=["world"])


@router.get("/messages", response_model=list[MessageResponse])
async def list_world_messages(
    channel: WorldChannelDep,
    _: CurrentProfileDep,
    limit: int | None = Query(None, ge=1, description="Window size, capped server-side"),
) -> list[MessageResponse]:
    """Return the latest world messages, oldest first."""
    return [MessageResponse.from_message(m) for m in channel.window(limit=limit)]


@router.post("/messages", status_code=status.HTTP_201_CREATED, response_model=MessageResponse)
async def post_world_message(
    payload: MessageCreate,
    channel: WorldChannelDep,
    profile: CurrentProfileDep,
) -> MessageResponse:
    """Broadcast a message to every signed-in user."""
    try:
        message = channel.send(profile, payload.text, reply_to=payload.reply_to)
    except (EmptyMessageError, MessageTooLongError) as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    return MessageResponse.from_message(message)


@router.post("/messages/{message_id}/reactions", response_model=ReactionResult)
async def toggle_world_reaction(
    message_id: int,
    payload: ReactionToggle,
    channel: WorldChannelDep,
    profile: CurrentProfileDep,
) -> ReactionResult:
    """Add the caller's reaction, or remove it if already present."""
    try:
        added, reactions = channel.toggle_reaction(message_id, profile.uid, payload.emoji)
    except InvalidReactionError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    except MessageNotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found") from err
    return ReactionResult(added=added, reactions=reactions)
