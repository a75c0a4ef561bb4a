from __future__ import annotations

import asyncio
from datetime import timedelta
from typing import TYPE_CHECKING, Any

from studynotes.core.models.base import utcnow
from studynotes.core.repositories.note_repository import (
    IMMUTABLE_FIELDS,
    NoteChangeFeed,
    NoteRepository,
    matches_text,
)
from studynotes.core.schemas.note_search import NoteOrder

if TYPE_CHECKING:
    from collections.abc import Sequence
    from datetime import datetime
    from uuid import UUID

    from studynotes.core.models.note import Note
    from studynotes.core.schemas.note_search import NoteListFilter


class InMemoryChangeFeed(NoteChangeFeed):
    """Queue-backed feed fed by the owning repository on every mutation."""

    def __init__(self, owner: InMemoryNoteRepository) -> None:
        self._owner = owner
        self._events: asyncio.Queue[str] = asyncio.Queue()
        self._closed = False

    def notify(self, kind: str) -> None:
        if not self._closed:
            self._events.put_nowait(kind)

    async def wait(self) -> None:
        await self._events.get()
        # Collapse a burst of queued changes into one wake-up
        while not self._events.empty():
            self._events.get_nowait()

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        self._owner._detach(self)


class InMemoryNoteRepository(NoteRepository):
    """In-process implementation of the NoteRepository contract.

    Used by the test suite and for running the API without a Supabase
    project. Every call yields to the event loop once, like a network hop,
    so read-then-write sequences interleave the way they do against the
    real backend.
    """

    def __init__(self) -> None:
        self._notes: dict[UUID, Note] = {}
        self._feeds: list[InMemoryChangeFeed] = []
        self._clock = utcnow()

    async def create(self, note: Note) -> Note:
        await asyncio.sleep(0)
        now = self._now()
        stored = note.model_copy(
            update={"view_count": 0, "like_count": 0, "created_at": now, "updated_at": now}
        )
        self._notes[stored.id] = stored
        self._publish("insert")
        return stored

    async def get(self, note_id: UUID) -> Note | None:
        await asyncio.sleep(0)
        return self._notes.get(note_id)

    async def list(self, filters: NoteListFilter) -> Sequence[Note]:
        await asyncio.sleep(0)
        return self._select(filters)

    async def search(self, query: str, filters: NoteListFilter) -> Sequence[Note]:
        await asyncio.sleep(0)
        return [n for n in self._select(filters) if matches_text(n, query)]

    async def update_fields(self, note_id: UUID, changes: dict[str, Any]) -> Note | None:
        await asyncio.sleep(0)
        existing = self._notes.get(note_id)
        if existing is None:
            return None
        sanitized = {k: v for k, v in (changes or {}).items() if k not in IMMUTABLE_FIELDS}
        sanitized["updated_at"] = self._now()
        # Revalidate so invariants hold on the merged note
        merged = type(existing).model_validate({**existing.model_dump(), **sanitized})
        self._notes[note_id] = merged
        self._publish("update")
        return merged

    async def delete(self, note_id: UUID) -> bool:
        await asyncio.sleep(0)
        removed = self._notes.pop(note_id, None) is not None
        if removed:
            self._publish("delete")
        return removed

    def _now(self) -> datetime:
        # Server clock: strictly increasing even within one clock tick
        now = utcnow()
        if now <= self._clock:
            now = self._clock + timedelta(microseconds=1)
        self._clock = now
        return now

    def watch(self) -> NoteChangeFeed:
        feed = InMemoryChangeFeed(self)
        self._feeds.append(feed)
        return feed

    def _detach(self, feed: InMemoryChangeFeed) -> None:
        if feed in self._feeds:
            self._feeds.remove(feed)

    def _publish(self, kind: str) -> None:
        for feed in list(self._feeds):
            feed.notify(kind)

    def _select(self, filters: NoteListFilter) -> list[Note]:
        notes = list(self._notes.values())
        if filters.author_id is not None:
            notes = [n for n in notes if n.author_id == filters.author_id]
        if filters.is_public is not None:
            notes = [n for n in notes if n.is_public == filters.is_public]
        if filters.subject is not None:
            notes = [n for n in notes if n.subject == filters.subject]
        if filters.tags:
            wanted = set(filters.tags)
            notes = [n for n in notes if wanted.intersection(n.tags)]

        if filters.order == NoteOrder.POPULAR:
            notes.sort(key=lambda n: (n.like_count, n.view_count), reverse=True)
        else:
            notes.sort(key=lambda n: n.created_at, reverse=True)

        if filters.limit is not None:
            notes = notes[: filters.limit]
        return notes
