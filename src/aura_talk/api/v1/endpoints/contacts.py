"""Contact search endpoint."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status

from aura_talk.schemas.contacts import ContactSearchRequest, ContactSearchResponse
from aura_talk.schemas.user import PublicProfile
from aura_talk.services.suggestions import SuggestionServiceError

from ..dependencies import ContactDiscoveryDep, ConversationEngineDep, CurrentProfileDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/contacts", tags=["contacts"])


@router.post("/search", response_model=ContactSearchResponse)
async def search_contacts(
    payload: ContactSearchRequest,
    discovery: ContactDiscoveryDep,
    engine: ConversationEngineDep,
    profile: CurrentProfileDep,
) -> ContactSearchResponse:
    """Find users by exact username plus AI-assisted suggestions."""
    existing = payload.existing_contacts
    if existing is None:
        existing = [entry.partner.username for entry in engine.list_chats(profile.uid)]

    try:
        result = await discovery.search(payload.query, existing)
    except SuggestionServiceError as err:
        logger.warning("Contact search failed: %s", err)
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Contact search failed.",
        ) from err

    return ContactSearchResponse(
        exact_matches=[PublicProfile.model_validate(p) for p in result.exact_matches],
        suggestions=[PublicProfile.model_validate(p) for p in result.suggestions],
    )
