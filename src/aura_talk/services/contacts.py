"""Contact discovery: exact lookups merged with AI suggestions."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field

from sqlalchemy.orm import Session

from aura_talk.models import UserProfile, UsernameIndex
from aura_talk.services.identity import ChatSession
from aura_talk.services.suggestions import SuggestionClient, SuggestionResult

logger = logging.getLogger(__name__)


@dataclass
class ContactSearchResult:
    """Profiles resolved from a search; both lists exclude the caller."""

    exact_matches: list[UserProfile] = field(default_factory=list)
    suggestions: list[UserProfile] = field(default_factory=list)


class ContactDiscovery:
    """Finds users by username for the signed-in caller."""

    def __init__(
        self,
        db: Session,
        session: ChatSession,
        suggestions: SuggestionClient | None = None,
    ) -> None:
        self.db = db
        self.session = session
        self.suggestions = suggestions

    def resolve_usernames(self, usernames: list[str]) -> list[UserProfile]:
        """Map usernames to profiles through the reverse index.

        Unknown names are dropped silently. Output follows input order and
        duplicates are kept.
        """
        profiles: list[UserProfile] = []
        for username in usernames:
            entry = self.db.get(UsernameIndex, username.strip().lower())
            if entry is None:
                continue
            profile = self.db.get(UserProfile, entry.uid)
            if profile is not None:
                profiles.append(profile)
        return profiles

    async def search(
        self, raw_query: str, existing_contact_usernames: list[str]
    ) -> ContactSearchResult:
        """Search for contacts by username.

        The trimmed query is always tried as an exact username. When a
        suggestion client is enabled, its search results are added to the
        exact candidates and its suggested contacts form the suggestion list.

        Raises:
            SuggestionServiceError: If the configured suggestion service fails.
        """
        query = raw_query.strip()
        if not query:
            return ContactSearchResult()

        ai = SuggestionResult()
        if self.suggestions is not None and self.suggestions.enabled:
            ai = await self.suggestions.suggest(query, existing_contact_usernames)
            logger.debug(
                "Suggestion service proposed %d matches and %d contacts",
                len(ai.search_results),
                len(ai.suggested_contacts),
            )

        own_uid = self.session.uid
        exact: list[UserProfile] = []
        seen: set[str] = set()
        for profile in self.resolve_usernames([query, *ai.search_results]):
            if profile.uid == own_uid or profile.uid in seen:
                continue
            seen.add(profile.uid)
            exact.append(profile)

        suggested: list[UserProfile] = []
        for profile in self.resolve_usernames(ai.suggested_contacts):
            if profile.uid == own_uid or profile.uid in seen:
                continue
            seen.add(profile.uid)
            suggested.append(profile)

        return ContactSearchResult(exact_matches=exact, suggestions=suggested)
