"""User-related Pydantic schemas."""

import re
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator

USERNAME_PATTERN = re.compile(r"^[a-zA-Z0-9_]+$")
EMAIL_PATTERN = re.compile(r"^[^@\s]+@[^@\s]+\.[^@\s]+$")
USERNAME_MIN_LENGTH = 3
USERNAME_MAX_LENGTH = 20
PASSWORD_MIN_LENGTH = 6


def validate_username(value: str) -> str:
    """Apply the shared username shape rules."""
    if len(value) < USERNAME_MIN_LENGTH:
        raise ValueError("Username must be at least 3 characters.")
    if len(value) > USERNAME_MAX_LENGTH:
        raise ValueError("Username must be at most 20 characters.")
    if not USERNAME_PATTERN.match(value):
        raise ValueError("Username can only contain letters, numbers, and underscores.")
    return value


def validate_email(value: str) -> str:
    """Reject strings that are obviously not email addresses."""
    value = value.strip()
    if not EMAIL_PATTERN.match(value):
        raise ValueError("Invalid email address.")
    return value


class SignupRequest(BaseModel):
    """Schema for email/password registration."""

    username: str = Field(..., description="Unique handle, 3-20 letters, digits or underscores")
    email: str = Field(..., description="Email address used to sign in")
    password: str = Field(..., description="Password (at least 6 characters)")

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str) -> str:
        return validate_username(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email(v)

    @field_validator("password")
    @classmethod
    def check_password(cls, v: str) -> str:
        if len(v) < PASSWORD_MIN_LENGTH:
            raise ValueError("Password must be at least 6 characters.")
        return v


class LoginRequest(BaseModel):
    """Schema for email/password login."""

    email: str = Field(..., description="Registered email address")
    password: str = Field(..., description="Account password")

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str) -> str:
        return validate_email(v)


class GoogleLoginRequest(BaseModel):
    """Schema for signing in with a Google ID token."""

    id_token: str = Field(..., min_length=1, description="Google-issued ID token")


class ProfileResponse(BaseModel):
    """Response schema for user profile information."""

    uid: str
    username: str
    email: str
    profile_pic: str | None = None
    created_at: datetime
    last_active: datetime

    model_config = ConfigDict(from_attributes=True)


class PublicProfile(BaseModel):
    """Profile fields other users are allowed to see."""

    uid: str
    username: str
    profile_pic: str | None = None

    model_config = ConfigDict(from_attributes=True)


class AuthResponse(BaseModel):
    """Access token plus the profile of the signed-in user."""

    access_token: str = Field(..., description="JWT access token")
    token_type: str = Field("bearer", description="Token type (always 'bearer')")
    profile: ProfileResponse
    created: bool = Field(False, description="True if a new account was created")


class ProfileUpdateRequest(BaseModel):
    """Schema for updating username and/or email."""

    username: str | None = Field(None, description="New username")
    email: str | None = Field(None, description="New email (requires a recent login)")

    @field_validator("username")
    @classmethod
    def check_username(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_username(v)

    @field_validator("email")
    @classmethod
    def check_email(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return validate_email(v)
