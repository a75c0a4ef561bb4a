from __future__ import annotations

from typing import TYPE_CHECKING, Any

from studynotes.core.models.user import User
from studynotes.core.repositories.implementations.supabase.note_repository import (
    SERVER_NOW,
    run_query,
)
from studynotes.core.repositories.user_repository import UserRepository

if TYPE_CHECKING:
    from uuid import UUID

    from supabase import Client


class SupabaseUserRepository(UserRepository):
    """Profiles in the `users` table; `id` matches `auth.users.id`."""

    TABLE_NAME = "users"

    def __init__(self, client: Client) -> None:
        self._client: Client = client

    async def get(self, user_id: UUID) -> User | None:
        resp = await run_query(
            lambda: self._client.table(self.TABLE_NAME)
            .select("*")
            .eq("id", str(user_id))
            .limit(1)
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        return self._row_to_user(items[0])

    async def create(self, user: User) -> User:
        row = user.model_dump(mode="json", exclude={"created_at", "updated_at"})
        resp = await run_query(
            lambda: self._client.table(self.TABLE_NAME)
            .insert(row)
            .execute()
        )
        items = resp.data or []
        return self._row_to_user(items[0]) if items else user

    async def update_fields(self, user_id: UUID, changes: dict[str, Any]) -> User | None:
        sanitized = {k: v for k, v in (changes or {}).items() if k not in {"id", "created_at"}}
        sanitized["updated_at"] = SERVER_NOW
        resp = await run_query(
            lambda: self._client.table(self.TABLE_NAME)
            .update(sanitized)
            .eq("id", str(user_id))
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        return self._row_to_user(items[0])

    @staticmethod
    def _row_to_user(row: dict[str, Any]) -> User:
        normalized = {k: v for k, v in row.items() if k in User.model_fields}
        for key in ("email", "display_name"):
            if normalized.get(key) is None:
                normalized[key] = ""
        return User.model_validate(normalized)
