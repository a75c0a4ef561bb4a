from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING

from studynotes.core.repositories.counter_repository import CounterRepository

if TYPE_CHECKING:
    from collections.abc import Sequence

    from studynotes.core.models.counter import CounterCollection, CounterRecord


class InMemoryCounterRepository(CounterRepository):
    """Dictionary-backed counter storage, one table per collection."""

    def __init__(self) -> None:
        self._tables: dict[CounterCollection, dict[str, CounterRecord]] = {}

    async def get(self, collection: CounterCollection, name: str) -> CounterRecord | None:
        await asyncio.sleep(0)
        return self._tables.get(collection, {}).get(name)

    async def save(self, collection: CounterCollection, record: CounterRecord) -> CounterRecord:
        await asyncio.sleep(0)
        stored = record.model_copy()
        self._tables.setdefault(collection, {})[record.name] = stored
        return stored

    async def list(self, collection: CounterCollection) -> Sequence[CounterRecord]:
        await asyncio.sleep(0)
        return list(self._tables.get(collection, {}).values())
