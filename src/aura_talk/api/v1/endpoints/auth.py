# src/aura_talk/api/v1/endpoints/auth.py
"""Authentication endpoints for the Aura Talk API."""

from __future__ import annotations

import logging

from fastapi import APIRouter, HTTPException, status
from sqlalchemy.exc import SQLAlchemyError

from aura_talk.models import AuthIdentity, UserProfile
from aura_talk.schemas.common import StatusResponse
from aura_talk.schemas.user import (
    AuthResponse,
    GoogleLoginRequest,
    LoginRequest,
    ProfileResponse,
    SignupRequest,
)
from aura_talk.services.identity import (
    EmailAlreadyInUseError,
    GoogleSignInError,
    IdentityProvider,
    InvalidCredentialsError,
    verify_google_id_token,
)
from aura_talk.services.signup import SignupService, UsernameTakenError

from ..dependencies import ChatSessionDep, CurrentProfileDep, IdentityProviderDep, SessionDep

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["authentication"])

UNEXPECTED_ERROR = "An unexpected error occurred."


def _auth_response(
    provider: IdentityProvider,
    identity: AuthIdentity,
    profile: UserProfile,
    *,
    created: bool = False,
) -> AuthResponse:
    return AuthResponse(
        access_token=provider.issue_token(identity),
        token_type="bearer",
        profile=ProfileResponse.model_validate(profile),
        created=created,
    )


@router.post(
    "/signup",
    summary="Create an account with email, password and username",
    status_code=status.HTTP_201_CREATED,
    response_model=AuthResponse,
)
async def sign_up(payload: SignupRequest, db: SessionDep, provider: IdentityProviderDep) -> AuthResponse:
    """Reserve a username and create the account behind it."""
    service = SignupService(db, provider)
    try:
        outcome = service.sign_up(payload.username, payload.email, payload.password)
    except UsernameTakenError as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"field": "username", "message": str(err)},
        ) from err
    except EmailAlreadyInUseError as err:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail={"field": "email", "message": str(err)},
        ) from err
    except SQLAlchemyError as err:
        logger.error("Signup failed: %s", err)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail=UNEXPECTED_ERROR,
        ) from err

    return _auth_response(provider, outcome.identity, outcome.profile, created=True)


@router.post("/login", summary="Sign in with email and password", response_model=AuthResponse)
async def login(payload: LoginRequest, db: SessionDep, provider: IdentityProviderDep) -> AuthResponse:
    """Authenticate with email/password credentials."""
    try:
        identity = provider.authenticate(payload.email, payload.password)
    except InvalidCredentialsError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid email or password.",
        ) from err

    profile = db.get(UserProfile, identity.uid)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Profile not found")
    return _auth_response(provider, identity, profile)


@router.post("/google", summary="Sign in with a Google ID token", response_model=AuthResponse)
async def login_with_google(
    payload: GoogleLoginRequest,
    db: SessionDep,
    provider: IdentityProviderDep,
) -> AuthResponse:
    """Sign in with Google, creating the profile on first use."""
    try:
        account = await verify_google_id_token(payload.id_token)
    except GoogleSignInError as err:
        logger.warning("Google sign-in rejected: %s", err)
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not sign in with Google. Please try again.",
        ) from err

    service = SignupService(db, provider)
    try:
        outcome = service.sign_in_with_google(account)
    except (UsernameTakenError, SQLAlchemyError) as err:
        logger.error("Google profile creation failed: %s", err)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Could not sign in with Google. Please try again.",
        ) from err

    return _auth_response(provider, outcome.identity, outcome.profile, created=outcome.created)


@router.post("/logout", summary="Sign out and revoke outstanding tokens", response_model=StatusResponse)
async def logout(session: ChatSessionDep) -> StatusResponse:
    session.teardown()
    return StatusResponse(status="signed_out")


@router.get("/me", summary="Return the signed-in user's profile", response_model=ProfileResponse)
async def me(profile: CurrentProfileDep) -> ProfileResponse:
    return ProfileResponse.model_validate(profile)
