from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from studynotes.api.v1.schemas.auth import AuthResponse, GoogleSignInComplete
from studynotes.config import settings
from studynotes.core.errors import AuthCancelled
from studynotes.core.schemas.auth import AuthUser
from studynotes.dependencies import rate_limit_by_ip
from studynotes.utils.logging import get_logger

if TYPE_CHECKING:
    from fastapi import Request

    from studynotes.core.services.user_service import UserService


logger = get_logger(__name__)

# Provider error codes meaning the user closed or declined the prompt
CANCELLED_ERRORS = frozenset({"access_denied", "popup_closed", "popup_closed_by_user", "user_cancelled"})


class AuthService:
    """Google sign-in through Supabase Auth, plus session upkeep."""

    def __init__(self, supabase_client: Any, user_service: UserService):
        self.supabase = supabase_client
        self.user_service = user_service

    async def google_sign_in_url(self) -> str:
        """Return the provider URL the browser should be sent to."""
        options: dict[str, Any] = {"scopes": "email profile"}
        if settings.oauth_redirect_url:
            options["redirect_to"] = settings.oauth_redirect_url
        try:
            resp = await asyncio.to_thread(
                lambda: self.supabase.auth.sign_in_with_oauth({"provider": "google", "options": options})
            )
        except Exception as err:
            logger.warning("OAuth URL request failed", extra={"error_type": type(err).__name__})
            raise ValueError("Google sign-in is unavailable. Please try again.") from err
        return resp.url

    async def complete_google_sign_in(self, request: Request, payload: GoogleSignInComplete) -> AuthResponse:
        """Finish the redirect flow and reconcile the user's profile.

        Raises AuthCancelled when the user dismissed the provider prompt.
        """
        rate_limit_by_ip(request, "signin")

        if payload.error:
            if payload.error.lower() in CANCELLED_ERRORS:
                logger.info("User cancelled Google sign-in")
                raise AuthCancelled(payload.error_description or "Sign-in cancelled")
            logger.warning(
                "Google sign-in failed",
                extra={"error": payload.error, "error_summary": (payload.error_description or "")[:100]},
            )
            raise ValueError("Failed to sign in. Please try again.")

        if not payload.access_token:
            raise ValueError("Access token is required")

        token = payload.access_token
        try:
            resp = await asyncio.to_thread(lambda: self.supabase.auth.get_user(token))
        except Exception as err:
            error_msg = str(err).lower()
            logger.warning(
                "Sign in failed",
                extra={
                    "error_type": type(err).__name__,
                    "error_summary": error_msg[:100] if error_msg else "Unknown error",
                },
            )
            if "invalid" in error_msg or "expired" in error_msg:
                raise ValueError("Token is invalid or expired") from err
            raise ValueError("Authentication service error. Please try again.") from err

        user = getattr(resp, "user", None)
        if not user or not getattr(user, "id", None):
            raise ValueError("Invalid user data")

        identity = AuthUser.from_supabase_user(user)
        profile = await self.user_service.sync_profile(identity)

        logger.info("User signed in successfully", extra={"user_id": str(profile.id)})

        return AuthResponse(
            access_token=token,
            token_type="bearer",
            expires_in=payload.expires_in,
            refresh_token=payload.refresh_token,
            user={
                "id": str(profile.id),
                "email": profile.email,
                "display_name": profile.display_name,
                "photo_url": profile.photo_url,
            },
        )

    async def sign_out(self, current_user: AuthUser) -> dict[str, str]:
        """Handle user signout with business logic."""
        try:
            await asyncio.to_thread(lambda: self.supabase.auth.sign_out())
            logger.info("User signed out successfully", extra={"user_id": str(current_user.id)})
        except Exception as err:
            logger.warning("Sign out failed", extra={"error": str(err), "user_id": str(current_user.id)})
        return {"message": "Signed out successfully"}

    async def refresh_token(self, refresh_token: str | None) -> AuthResponse:
        """Exchange a refresh token for a new session."""
        if not refresh_token:
            raise ValueError("Refresh token is required")

        try:
            resp = await asyncio.to_thread(
                lambda: self.supabase.auth.refresh_session(refresh_token)
            )
        except Exception as err:
            error_msg = str(err).lower()

            logger.warning("Token refresh failed", extra={"error": error_msg[:100]})

            if "invalid" in error_msg or "expired" in error_msg:
                raise ValueError("Invalid or expired refresh token") from err
            raise ValueError("Failed to refresh token") from err

        if not resp.user or not resp.session:
            raise ValueError("Invalid refresh token")

        return AuthResponse(
            access_token=resp.session.access_token,
            token_type="bearer",
            expires_in=resp.session.expires_in,
            refresh_token=resp.session.refresh_token,
            user={
                "id": str(resp.user.id),
                "email": resp.user.email or "",
            },
        )
