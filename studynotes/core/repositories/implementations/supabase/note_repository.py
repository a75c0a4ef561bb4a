from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

import httpx
from pydantic import TypeAdapter
from supabase import PostgrestAPIError

from studynotes.core.errors import BackendQueryError
from studynotes.core.models.note import Note
from studynotes.core.repositories.note_repository import (
    IMMUTABLE_FIELDS,
    NoteChangeFeed,
    NoteRepository,
)
from studynotes.core.schemas.note_search import NoteOrder
from studynotes.utils.logging import get_logger

logger = get_logger(__name__)

if TYPE_CHECKING:
    from collections.abc import Callable, Sequence
    from uuid import UUID

    from supabase import Client

    from studynotes.core.schemas.note_search import NoteListFilter


def like_pattern(query: str) -> str:
    """ILIKE pattern matching `query` as a literal substring."""
    escaped = query.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")
    return f"%{escaped}%"


# Postgres resolves this literal to the transaction timestamp
SERVER_NOW = "now"

_JSON_ROW = TypeAdapter(dict[str, Any])


async def run_query(func: Callable[[], Any]) -> Any:
    """Run a blocking PostgREST call in a thread, normalizing backend errors."""
    try:
        return await asyncio.to_thread(func)
    except PostgrestAPIError as err:
        raise BackendQueryError(getattr(err, "message", None) or str(err)) from err
    except httpx.HTTPError as err:
        raise BackendQueryError(f"Backend request failed: {err}") from err


class SupabasePollingChangeFeed(NoteChangeFeed):
    """Change feed that polls a cheap fingerprint of the notes table.

    The fingerprint is (row count, latest updated_at): inserts and deletes
    move the count, updates move the timestamp.
    """

    def __init__(self, client: Client, table: str, interval: float) -> None:
        self._client = client
        self._table = table
        self._interval = interval
        self._fingerprint: tuple[int | None, str | None] | None = None
        self._closed = False

    async def start(self) -> None:
        self._fingerprint = await self._read_fingerprint()

    async def wait(self) -> None:
        if self._fingerprint is None:
            await self.start()
        while not self._closed:
            await asyncio.sleep(self._interval)
            current = await self._read_fingerprint()
            if current != self._fingerprint:
                self._fingerprint = current
                return

    def close(self) -> None:
        self._closed = True

    async def _read_fingerprint(self) -> tuple[int | None, str | None]:
        resp = await run_query(
            lambda: self._client.table(self._table)
            .select("updated_at", count="exact")
            .order("updated_at", desc=True)
            .limit(1)
            .execute()
        )
        rows = resp.data or []
        latest = rows[0].get("updated_at") if rows else None
        return resp.count, latest


class SupabaseNoteRepository(NoteRepository):
    """Supabase implementation of the NoteRepository.

    Uses Supabase's PostgREST client. Assumes a `notes` table with columns
    matching the `Note` model fields, `created_at`/`updated_at` defaulting to
    now(), and RLS policies restricting update/delete to `author_id = auth.uid()`.
    """

    TABLE_NAME = "notes"

    def __init__(self, client: Client, *, poll_interval: float = 2.0) -> None:
        self._client: Client = client
        self._poll_interval = poll_interval

    async def create(self, note: Note) -> Note:
        row = self._note_to_row(note)
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .insert(row)
            .execute()
        )
        data = self._first(resp.data)
        return self._row_to_note(data)

    async def get(self, note_id: UUID) -> Note | None:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .select("*")
            .eq("id", str(note_id))
            .limit(1)
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        return self._row_to_note(items[0])

    async def list(self, filters: NoteListFilter) -> Sequence[Note]:
        def _query():
            q = self._apply_filters(self._client.table(self.TABLE_NAME).select("*"), filters)
            return q.execute()

        resp = await self._run(_query)
        items = resp.data or []
        return [self._row_to_note(i) for i in items]

    async def search(self, query: str, filters: NoteListFilter) -> Sequence[Note]:
        """Case-insensitive substring search over title, content, author name and tags.

        The predicate lives in the `search_notes(p_pattern)` SQL function
        (see supabase/migrations); structural filters and ordering are
        chained onto the rpc call like on a table select.
        """
        params = {"p_pattern": like_pattern(query)}

        def _rpc():
            q = self._client.rpc("search_notes", params=params)
            return self._apply_filters(q, filters).execute()

        resp = await self._run(_rpc)
        items = resp.data or []
        logger.debug("Backend search returned %d notes", len(items))
        return [self._row_to_note(i) for i in items]

    async def update_fields(self, note_id: UUID, changes: dict[str, Any]) -> Note | None:
        sanitized: dict[str, Any] = _JSON_ROW.dump_python(
            {k: v for k, v in (changes or {}).items() if k not in IMMUTABLE_FIELDS},
            mode="json",
        )
        sanitized["updated_at"] = SERVER_NOW

        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .update(sanitized)
            .eq("id", str(note_id))
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        return self._row_to_note(items[0])

    async def delete(self, note_id: UUID) -> bool:
        resp = await self._run(
            lambda: self._client.table(self.TABLE_NAME)
            .delete()
            .eq("id", str(note_id))
            .execute()
        )
        items = resp.data or []
        return len(items) > 0

    def watch(self) -> NoteChangeFeed:
        return SupabasePollingChangeFeed(self._client, self.TABLE_NAME, self._poll_interval)

    @staticmethod
    def _apply_filters(q: Any, filters: NoteListFilter) -> Any:
        if filters.author_id is not None:
            q = q.eq("author_id", str(filters.author_id))
        if filters.is_public is not None:
            q = q.eq("is_public", filters.is_public)
        if filters.subject is not None:
            q = q.eq("subject", filters.subject)
        if filters.tags:
            q = q.ov("tags", filters.tags)

        if filters.order == NoteOrder.POPULAR:
            q = q.order("like_count", desc=True).order("view_count", desc=True)
        else:
            q = q.order("created_at", desc=True)

        if filters.limit is not None:
            q = q.limit(filters.limit)
        return q

    @staticmethod
    async def _run(func: Callable[[], Any]) -> Any:
        return await run_query(func)

    @staticmethod
    def _first(data: Any) -> dict[str, Any]:
        if isinstance(data, list) and data:
            return data[0]
        if isinstance(data, dict):
            return data
        return {}

    @staticmethod
    def _row_to_note(row: dict[str, Any]) -> Note:
        # Normalize nullable columns for Pydantic constraints
        normalized = {k: v for k, v in row.items() if k in Note.model_fields}
        if normalized.get("tags") is None:
            normalized["tags"] = []
        if normalized.get("content") is None:
            normalized["content"] = ""
        if normalized.get("subject") is None:
            normalized["subject"] = ""
        return Note.model_validate(normalized)

    @staticmethod
    def _note_to_row(note: Note) -> dict[str, Any]:
        data = note.model_dump(mode="json")
        # Timestamps are assigned by the database defaults
        data.pop("created_at", None)
        data.pop("updated_at", None)
        data["view_count"] = 0
        data["like_count"] = 0
        if data.get("tags") is None:
            data["tags"] = []
        return data
