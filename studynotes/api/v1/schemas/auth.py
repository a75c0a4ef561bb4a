from __future__ import annotations

from pydantic import BaseModel, Field


class GoogleSignInUrl(BaseModel):
    """Provider URL that starts the Google sign-in redirect."""

    url: str = Field(..., description="Google consent screen URL")


class GoogleSignInComplete(BaseModel):
    """Result of the Google redirect as received by the browser."""

    access_token: str | None = Field(default=None, description="Supabase access token from the redirect")
    refresh_token: str | None = Field(default=None, description="Refresh token from the redirect")
    expires_in: int = Field(default=3600, description="Token lifetime in seconds")
    error: str | None = Field(default=None, description="Provider error code, e.g. access_denied")
    error_description: str | None = None


class RefreshRequest(BaseModel):
    refresh_token: str | None = Field(default=None, description="Refresh token for token renewal")


class AuthResponse(BaseModel):
    """Response containing user session and access token."""

    access_token: str = Field(..., description="JWT access token for API calls")
    token_type: str = Field(default="bearer", description="Token type")
    expires_in: int = Field(..., description="Token expiration time in seconds")
    refresh_token: str | None = Field(default=None, description="Refresh token for token renewal")
    user: dict = Field(..., description="User information (id, email, display_name, photo_url)")
