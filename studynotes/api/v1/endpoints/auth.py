from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends, HTTPException, Request, status
from fastapi.responses import JSONResponse

from studynotes.api.v1.schemas.auth import (
    AuthResponse,
    GoogleSignInComplete,
    GoogleSignInUrl,
    RefreshRequest,
)
from studynotes.core.errors import AuthCancelled
from studynotes.dependencies import (
    get_auth_service,
    get_current_user,
)
from studynotes.utils.logging import get_logger

if TYPE_CHECKING:
    from studynotes.core.schemas.auth import AuthUser

logger = get_logger(__name__)

# Configure router with authentication-specific settings
router = APIRouter(
    responses={
        401: {"description": "Unauthorized"},
        403: {"description": "Forbidden"},
        429: {"description": "Too many requests"}
    }
)


@router.get("/google", response_model=GoogleSignInUrl)
async def google_sign_in(auth_service=Depends(get_auth_service)):
    """Return the URL that starts the Google sign-in redirect."""
    try:
        return GoogleSignInUrl(url=await auth_service.google_sign_in_url())
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail=str(err),
        ) from err


@router.post("/google/complete", response_model=AuthResponse)
async def complete_google_sign_in(
    request: Request,
    payload: GoogleSignInComplete,
    auth_service=Depends(get_auth_service),
):
    """Finish Google sign-in. A dismissed prompt is not an error."""
    try:
        return await auth_service.complete_google_sign_in(request, payload)
    except AuthCancelled:
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"status": "cancelled"},
        )
    except HTTPException as http_exc:
        raise http_exc
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err
    except Exception as err:
        logger.error("Unexpected error during Google sign-in", extra={"error": str(err)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from err


@router.post("/signout")
async def sign_out(
    current_user: AuthUser = Depends(get_current_user),
    auth_service=Depends(get_auth_service),
):
    """Sign out the current user."""
    try:
        result = await auth_service.sign_out(current_user)
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content=result
        )
    except Exception as err:
        logger.error("Unexpected error during signout", extra={"error": str(err)})
        return JSONResponse(
            status_code=status.HTTP_200_OK,
            content={"message": "Signed out successfully"}
        )


@router.get("/validate")
async def validate_token(current_user: AuthUser = Depends(get_current_user)):
    """Validate the current user's token and return user info."""
    return {
        "id": current_user.id,
        "email": current_user.email,
        "role": current_user.role,
        "display_name": current_user.display_name,
    }


@router.post("/refresh", response_model=AuthResponse)
async def refresh_token(
    payload: RefreshRequest,
    auth_service=Depends(get_auth_service),
):
    """Refresh the access token using a refresh token."""
    try:
        return await auth_service.refresh_token(payload.refresh_token)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=str(err),
        ) from err
    except Exception as err:
        logger.error("Unexpected error refreshing token", extra={"error": str(err)})
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Internal server error",
        ) from err
