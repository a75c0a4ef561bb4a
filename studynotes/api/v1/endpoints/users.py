from __future__ import annotations

from typing import TYPE_CHECKING
from uuid import UUID  # noqa: TCH003

from fastapi import APIRouter, Depends

from studynotes.api.v1.errors import to_http_exception
from studynotes.api.v1.schemas.user import UserRead
from studynotes.core.errors import StudyNotesError
from studynotes.dependencies import get_current_user, get_user_service

if TYPE_CHECKING:
    from studynotes.core.schemas.auth import AuthUser
    from studynotes.core.services.user_service import UserService


router = APIRouter()


@router.get("/me", response_model=UserRead)
async def get_me(
    current_user: AuthUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    """Return the caller's profile, creating it from the token on first use."""
    try:
        user = await service.sync_profile(current_user)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return UserRead.model_validate(user)


@router.get("/{user_id}", response_model=UserRead)
async def get_user(
    user_id: UUID,
    current_user: AuthUser = Depends(get_current_user),
    service: UserService = Depends(get_user_service),
):
    try:
        user = await service.get_user(user_id)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return UserRead.model_validate(user)
