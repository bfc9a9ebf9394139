# src/aura_talk/api/v1/endpoints/chats.py
"""One-to-one conversation endpoints."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, Query, status

from aura_talk.models import UserProfile
from aura_talk.schemas.message import (
    ChatEntryResponse,
    MessageCreate,
    MessageResponse,
    ReactionResult,
    ReactionToggle,
)
from aura_talk.services.conversation import (
    EmptyMessageError,
    InvalidReactionError,
    MessageNotFoundError,
    MessageTooLongError,
    SummaryWriteError,
    conversation_id,
)

from ..dependencies import ConversationEngineDep, CurrentProfileDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/chats", tags=["chats"])


def resolve_conversation(db: SessionDep, profile: UserProfile, partner_uid: str) -> str:
    """Return the conversation id with ``partner_uid`` or raise 400/404."""
    chat_id = conversation_id(profile.uid, partner_uid)
    if chat_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="A recipient is required",
        )
    if partner_uid == profile.uid:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Cannot start a conversation with yourself",
        )
    if db.get(UserProfile, partner_uid) is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Recipient not found")
    return chat_id


@router.get("", response_model=list[ChatEntryResponse])
async def list_chats(engine: ConversationEngineDep, profile: CurrentProfileDep) -> list[ChatEntryResponse]:
    """List the caller's conversations, most recent first."""
    return [entry.to_response() for entry in engine.list_chats(profile.uid)]


@router.get("/{partner_uid}/messages", response_model=list[MessageResponse])
async def list_messages(
    partner_uid: str,
    db: SessionDep,
    engine: ConversationEngineDep,
    profile: CurrentProfileDep,
    limit: int | None = Query(None, ge=1, description="Window size, capped server-side"),
) -> list[MessageResponse]:
    """Return the latest messages with ``partner_uid``, oldest first."""
    chat_id = resolve_conversation(db, profile, partner_uid)
    return [MessageResponse.from_message(m) for m in engine.window(chat_id, limit)]


@router.post(
    "/{partner_uid}/messages",
    status_code=status.HTTP_201_CREATED,
    response_model=MessageResponse,
)
async def send_message(
    partner_uid: str,
    payload: MessageCreate,
    db: SessionDep,
    engine: ConversationEngineDep,
    profile: CurrentProfileDep,
) -> MessageResponse:
    """Send a direct message and refresh the conversation summary."""
    chat_id = resolve_conversation(db, profile, partner_uid)
    try:
        message = engine.send(chat_id, profile, partner_uid, payload.text, reply_to=payload.reply_to)
    except (EmptyMessageError, MessageTooLongError) as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    except SummaryWriteError as err:
        logger.error("Message %s delivered without summary update", err.message.id)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Message sent, but the conversation list could not be updated.",
        ) from err
    return MessageResponse.from_message(message)


@router.post("/{partner_uid}/messages/{message_id}/reactions", response_model=ReactionResult)
async def toggle_reaction(
    partner_uid: str,
    message_id: int,
    payload: ReactionToggle,
    db: SessionDep,
    engine: ConversationEngineDep,
    profile: CurrentProfileDep,
) -> ReactionResult:
    """Toggle the caller's reaction on a message in this conversation."""
    chat_id = resolve_conversation(db, profile, partner_uid)
    try:
        added, reactions = engine.toggle_reaction(chat_id, message_id, profile.uid, payload.emoji)
    except InvalidReactionError as err:
        raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=str(err)) from err
    except MessageNotFoundError as err:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Message not found") from err
    return ReactionResult(added=added, reactions=reactions)
