from __future__ import annotations

from datetime import datetime  # noqa: TCH003
from uuid import UUID  # noqa: TCH003

from studynotes.core.models.base import AppBaseModel


class UserRead(AppBaseModel):
    id: UUID
    email: str
    display_name: str
    photo_url: str | None
    created_at: datetime
    updated_at: datetime
