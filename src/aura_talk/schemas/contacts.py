"""Contact discovery Pydantic schemas."""

from pydantic import BaseModel, Field

from .user import PublicProfile


class ContactSearchRequest(BaseModel):
    """Search request; existing contacts default to the caller's chat partners."""

    query: str = Field(..., max_length=100, description="Free-text search query")
    existing_contacts: list[str] | None = Field(
        None,
        description="Usernames already known to the caller",
    )


class ContactSearchResponse(BaseModel):
    """Resolved search results; unknown usernames never appear here."""

    exact_matches: list[PublicProfile]
    suggestions: list[PublicProfile]
