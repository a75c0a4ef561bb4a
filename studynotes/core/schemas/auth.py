from __future__ import annotations

from typing import Any
from uuid import UUID  # noqa: TCH003

from studynotes.core.models.base import AppBaseModel


class AuthUser(AppBaseModel):
    """Authenticated user extracted from the Supabase JWT."""

    id: UUID
    email: str
    role: str | None = None
    display_name: str = ""
    photo_url: str | None = None

    @classmethod
    def from_supabase_user(cls, user: Any) -> AuthUser:
        """Build from a Supabase auth user, reading Google profile metadata."""
        metadata = getattr(user, "user_metadata", None) or {}
        return cls(
            id=user.id,
            email=getattr(user, "email", None) or metadata.get("email") or "",
            role=getattr(user, "role", None),
            display_name=metadata.get("full_name") or metadata.get("name") or "",
            photo_url=metadata.get("avatar_url") or metadata.get("picture"),
        )
