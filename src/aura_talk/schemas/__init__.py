"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .common import SnapshotFrame, StatusResponse
from .contacts import ContactSearchRequest, ContactSearchResponse
from .message import (
    ChatEntryResponse,
    MessageCreate,
    MessageResponse,
    ReactionResult,
    ReactionToggle,
)
from .user import (
    AuthResponse,
    GoogleLoginRequest,
    LoginRequest,
    ProfileResponse,
    ProfileUpdateRequest,
    PublicProfile,
    SignupRequest,
)

__all__ = [
    "SnapshotFrame", "StatusResponse",
    "ContactSearchRequest", "ContactSearchResponse",
    "ChatEntryResponse", "MessageCreate", "MessageResponse", "ReactionResult", "ReactionToggle",
    "AuthResponse", "GoogleLoginRequest", "LoginRequest", "ProfileResponse",
    "ProfileUpdateRequest", "PublicProfile", "SignupRequest",
]
