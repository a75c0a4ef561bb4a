from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from studynotes.core.models.base import utcnow
from studynotes.core.repositories.user_repository import UserRepository

if TYPE_CHECKING:
    from uuid import UUID

    from studynotes.core.models.user import User


class InMemoryUserRepository(UserRepository):
    """Dictionary-backed profile storage."""

    def __init__(self) -> None:
        self._users: dict[UUID, User] = {}

    async def get(self, user_id: UUID) -> User | None:
        await asyncio.sleep(0)
        return self._users.get(user_id)

    async def create(self, user: User) -> User:
        await asyncio.sleep(0)
        now = utcnow()
        stored = user.model_copy(update={"created_at": now, "updated_at": now})
        self._users[stored.id] = stored
        return stored

    async def update_fields(self, user_id: UUID, changes: dict[str, Any]) -> User | None:
        await asyncio.sleep(0)
        existing = self._users.get(user_id)
        if existing is None:
            return None
        sanitized = {k: v for k, v in (changes or {}).items() if k not in {"id", "created_at"}}
        sanitized["updated_at"] = utcnow()
        merged = existing.model_copy(update=sanitized)
        self._users[user_id] = merged
        return merged
