"""Profile settings endpoints."""

from __future__ import annotations

from fastapi import APIRouter, File, HTTPException, UploadFile, status

from aura_talk.models import UserProfile
from aura_talk.schemas.user import ProfileResponse, ProfileUpdateRequest, PublicProfile
from aura_talk.services.blob_storage import BlobStorageError, BlobTooLargeError
from aura_talk.services.identity import EmailAlreadyInUseError, RecentLoginRequiredError
from aura_talk.services.signup import UsernameTakenError

from ..dependencies import CurrentProfileDep, ProfileServiceDep, SessionDep

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/profile", response_model=ProfileResponse)
async def get_my_profile(profile: CurrentProfileDep) -> ProfileResponse:
    """Return the caller's full profile."""
    return ProfileResponse.model_validate(profile)


@router.patch("/me/profile", response_model=ProfileResponse)
async def update_my_profile(
    payload: ProfileUpdateRequest,
    profile: CurrentProfileDep,
    service: ProfileServiceDep,
) -> ProfileResponse:
    """Change username and/or email.

    The username is applied first; an email change that then fails for lack
    of a recent sign-in leaves the new username in place.
    """
    try:
        updated = service.update_settings(username=payload.username, email=payload.email)
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
    except RecentLoginRequiredError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=str(err),
        ) from err
    return ProfileResponse.model_validate(updated)


@router.put("/me/avatar", response_model=ProfileResponse)
async def upload_avatar(
    profile: CurrentProfileDep,
    service: ProfileServiceDep,
    file: UploadFile = File(...),
) -> ProfileResponse:
    """Upload a new profile picture."""
    if file.content_type and not file.content_type.startswith("image/"):
        raise HTTPException(
            status_code=status.HTTP_415_UNSUPPORTED_MEDIA_TYPE,
            detail="Profile picture must be an image",
        )
    try:
        updated = service.update_settings(avatar=file.file, avatar_size=file.size)
    except BlobTooLargeError as err:
        raise HTTPException(
            status_code=413,
            detail=str(err),
        ) from err
    except BlobStorageError as err:
        raise HTTPException(
            status_code=status.HTTP_502_BAD_GATEWAY,
            detail="Update failed. An unexpected error occurred.",
        ) from err
    return ProfileResponse.model_validate(updated)


@router.get("/{uid}", response_model=PublicProfile)
async def get_user(uid: str, db: SessionDep, _: CurrentProfileDep) -> PublicProfile:
    """Return another user's public profile."""
    profile = db.get(UserProfile, uid)
    if profile is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="User not found")
    return PublicProfile.model_validate(profile)
