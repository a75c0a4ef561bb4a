from __future__ import annotations

from typing import TYPE_CHECKING, Any

from studynotes.core.models.counter import CounterRecord
from studynotes.core.repositories.counter_repository import CounterRepository
from studynotes.core.repositories.implementations.supabase.note_repository import run_query

if TYPE_CHECKING:
    from collections.abc import Sequence

    from supabase import Client

    from studynotes.core.models.counter import CounterCollection


class SupabaseCounterRepository(CounterRepository):
    """Counters stored in the `tags` and `subjects` tables, keyed by `name`.

    Writes are plain upserts: the read and the write are separate requests,
    so concurrent increments can overwrite each other.
    """

    def __init__(self, client: Client) -> None:
        self._client: Client = client

    async def get(self, collection: CounterCollection, name: str) -> CounterRecord | None:
        resp = await run_query(
            lambda: self._client.table(collection.value)
            .select("name, color, count")
            .eq("name", name)
            .limit(1)
            .execute()
        )
        items = resp.data or []
        if not items:
            return None
        return self._row_to_record(items[0])

    async def save(self, collection: CounterCollection, record: CounterRecord) -> CounterRecord:
        row = record.model_dump()
        resp = await run_query(
            lambda: self._client.table(collection.value)
            .upsert(row, on_conflict="name")
            .execute()
        )
        items = resp.data or []
        return self._row_to_record(items[0]) if items else record

    async def list(self, collection: CounterCollection) -> Sequence[CounterRecord]:
        resp = await run_query(
            lambda: self._client.table(collection.value)
            .select("name, color, count")
            .execute()
        )
        return [self._row_to_record(r) for r in resp.data or []]

    @staticmethod
    def _row_to_record(row: dict[str, Any]) -> CounterRecord:
        return CounterRecord(
            name=row["name"],
            color=row.get("color") or "",
            count=row.get("count") or 0,
        )
