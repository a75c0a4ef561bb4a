from __future__ import annotations

from uuid import UUID  # noqa: TCH003

from pydantic import Field

from .base import TimestampedModel


class User(TimestampedModel):
    """Application profile mirrored from the identity provider."""

    id: UUID = Field(..., description="Identity provider subject")
    email: str = ""
    display_name: str = ""
    photo_url: str | None = None
