"""HTTP client for the AI contact suggestion service.

The service receives the raw query plus the caller's known contacts and
answers with two lists of plain usernames. Nothing it returns is trusted:
callers must resolve every name through the username index.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from typing import Any

import httpx

from aura_talk.core.exceptions import ExternalServiceError
from aura_talk.core.settings import settings

logger = logging.getLogger(__name__)

HTTP_OK = 200
MAX_NAMES_PER_LIST = 25


class SuggestionServiceError(ExternalServiceError):
    """Raised when the suggestion service fails or answers malformed data."""


class SuggestionServiceDisabledError(SuggestionServiceError):
    """Raised when no suggestion endpoint is configured."""


@dataclass(frozen=True)
class SuggestionConfig:
    """Immutable configuration for suggestion requests."""

    url: str | None
    token: str | None
    timeout_seconds: float

    @property
    def enabled(self) -> bool:
        return bool(self.url)


@dataclass(frozen=True)
class SuggestionResult:
    """Untrusted usernames returned by the service."""

    search_results: list[str] = field(default_factory=list)
    suggested_contacts: list[str] = field(default_factory=list)


def load_suggestion_config() -> SuggestionConfig:
    """Build configuration object from global settings."""
    return SuggestionConfig(
        url=settings.suggestion_service_url,
        token=settings.suggestion_service_token,
        timeout_seconds=float(settings.suggestion_timeout_seconds),
    )


def _names(payload: dict[str, Any], key: str) -> list[str]:
    value = payload.get(key) or []
    if not isinstance(value, list):
        raise SuggestionServiceError(f"Suggestion response field {key!r} is not a list")
    names = [item.strip() for item in value if isinstance(item, str) and item.strip()]
    return names[:MAX_NAMES_PER_LIST]


class SuggestionClient:
    """Async HTTP wrapper around the suggestion endpoint."""

    def __init__(
        self,
        config: SuggestionConfig | None = None,
        *,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        self.config = config or load_suggestion_config()
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._client_lock = asyncio.Lock()

    @property
    def enabled(self) -> bool:
        return self.config.enabled

    async def _ensure_client(self) -> httpx.AsyncClient:
        if not self.enabled:
            raise SuggestionServiceDisabledError("Contact suggestions are not configured")

        async with self._client_lock:
            if self._client is None:
                headers = {}
                if self.config.token:
                    headers["Authorization"] = f"Bearer {self.config.token}"
                self._client = httpx.AsyncClient(
                    timeout=httpx.Timeout(self.config.timeout_seconds),
                    headers=headers,
                    transport=self._transport,
                )
        return self._client

    async def suggest(self, query: str, existing_contacts: list[str]) -> SuggestionResult:
        """Ask the service for matches and suggestions.

        Raises:
            SuggestionServiceDisabledError: If no endpoint is configured.
            SuggestionServiceError: On transport errors, non-200 answers or
                malformed payloads.
        """
        client = await self._ensure_client()
        try:
            response = await client.post(
                self.config.url or "",
                json={"query": query, "existingContacts": existing_contacts},
            )
        except httpx.HTTPError as exc:
            logger.warning("Suggestion request failed: %s", exc)
            raise SuggestionServiceError(f"Suggestion request failed: {exc}") from exc

        if response.status_code != HTTP_OK:
            raise SuggestionServiceError(
                f"Suggestion service responded with {response.status_code}"
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise SuggestionServiceError("Suggestion service returned invalid JSON") from exc
        if not isinstance(payload, dict):
            raise SuggestionServiceError("Suggestion service returned an unexpected payload")

        return SuggestionResult(
            search_results=_names(payload, "searchResults"),
            suggested_contacts=_names(payload, "suggestedContacts"),
        )

    async def close(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


_suggestion_client: SuggestionClient | None = None


def get_suggestion_client() -> SuggestionClient:
    """Return the shared suggestion client."""
    global _suggestion_client
    if _suggestion_client is None:
        _suggestion_client = SuggestionClient()
    return _suggestion_client
