"""Supabase adapters against a recording stand-in for the PostgREST builder."""

import asyncio
from types import SimpleNamespace
from uuid import uuid4

import pytest
from supabase import PostgrestAPIError

from studynotes.core.errors import BackendQueryError
from studynotes.core.models.counter import CounterCollection, CounterRecord
from studynotes.core.models.note import Note
from studynotes.core.repositories.implementations.supabase.counter_repository import (
    SupabaseCounterRepository,
)
from studynotes.core.repositories.implementations.supabase.note_repository import (
    SERVER_NOW,
    SupabaseNoteRepository,
    SupabasePollingChangeFeed,
    like_pattern,
)
from studynotes.core.schemas.note_search import NoteListFilter, NoteOrder


class RecordingQuery:
    """Chainable builder that records calls and returns canned rows."""

    def __init__(self, rows=None, error: Exception | None = None) -> None:
        self.rows = rows or []
        self.error = error
        self.calls: list[tuple] = []

    def __getattr__(self, name):
        def method(*args, **kwargs):
            self.calls.append((name, args, kwargs))
            return self

        return method

    def execute(self):
        if self.error is not None:
            raise self.error
        return SimpleNamespace(data=self.rows, count=len(self.rows))

    def called(self, name: str) -> list[tuple]:
        return [c for c in self.calls if c[0] == name]


class FakeClient:
    def __init__(self, query: RecordingQuery) -> None:
        self.query = query
        self.tables: list[str] = []
        self.rpcs: list[tuple[str, dict]] = []

    def table(self, name: str) -> RecordingQuery:
        self.tables.append(name)
        return self.query

    def rpc(self, name: str, params: dict) -> RecordingQuery:
        self.rpcs.append((name, params))
        return self.query


def _row(**fields) -> dict:
    row = {
        "id": str(uuid4()),
        "title": "Calc Notes",
        "content": None,
        "note_type": "markdown",
        "tags": None,
        "subject": None,
        "is_public": True,
        "author_id": str(uuid4()),
        "author_name": "Ada",
        "author_email": "ada@example.edu",
        "file_url": None,
        "file_name": None,
        "file_size": None,
        "view_count": 3,
        "like_count": 1,
        "created_at": "2024-03-01T10:00:00+00:00",
        "updated_at": "2024-03-01T10:00:00+00:00",
        "search_vector": "'calc':1",
    }
    row.update(fields)
    return row


@pytest.mark.asyncio
async def test_list_pushes_filters_and_popular_order():
    query = RecordingQuery([_row()])
    repo = SupabaseNoteRepository(FakeClient(query))
    author_id = uuid4()

    notes = await repo.list(
        NoteListFilter(author_id=author_id, is_public=True, tags=["calc"], limit=5, order=NoteOrder.POPULAR)
    )

    assert notes[0].tags == []
    assert notes[0].content == ""
    assert ("eq", ("author_id", str(author_id)), {}) in query.calls
    assert ("ov", ("tags", ["calc"]), {}) in query.calls
    assert query.called("order") == [
        ("order", ("like_count",), {"desc": True}),
        ("order", ("view_count",), {"desc": True}),
    ]
    assert query.called("limit") == [("limit", (5,), {})]


@pytest.mark.asyncio
async def test_search_calls_rpc_with_filters_chained():
    query = RecordingQuery([_row(tags=["Calculus"])])
    client = FakeClient(query)
    repo = SupabaseNoteRepository(client)

    notes = await repo.search("calc", NoteListFilter(is_public=True, subject="Mathematics"))

    assert client.rpcs == [("search_notes", {"p_pattern": "%calc%"})]
    assert client.tables == []
    assert ("eq", ("is_public", True), {}) in query.calls
    assert ("eq", ("subject", "Mathematics"), {}) in query.calls
    assert notes[0].tags == ["Calculus"]


@pytest.mark.parametrize(
    ("text", "pattern"),
    [
        ("calc", "%calc%"),
        ("a_b", "%a\\_b%"),
        ("100%", "%100\\%%"),
        ("c:\\tmp", "%c:\\\\tmp%"),
        ("f(x), g(x)", "%f(x), g(x)%"),
    ],
)
def test_like_pattern_escapes_wildcards(text, pattern):
    assert like_pattern(text) == pattern


@pytest.mark.asyncio
async def test_missing_search_function_raises_backend_query_error():
    error = PostgrestAPIError({"message": "Could not find the function public.search_notes", "code": "PGRST202"})
    repo = SupabaseNoteRepository(FakeClient(RecordingQuery(error=error)))

    with pytest.raises(BackendQueryError):
        await repo.search("calc", NoteListFilter())


@pytest.mark.asyncio
async def test_api_errors_become_backend_query_errors():
    query = RecordingQuery(error=PostgrestAPIError({"message": "column does not exist", "code": "42703"}))
    repo = SupabaseNoteRepository(FakeClient(query))

    with pytest.raises(BackendQueryError, match="column does not exist"):
        await repo.list(NoteListFilter())


@pytest.mark.asyncio
async def test_create_lets_database_assign_timestamps():
    query = RecordingQuery([_row()])
    repo = SupabaseNoteRepository(FakeClient(query))

    await repo.create(Note(title="Calc Notes", content="x", author_id=uuid4(), like_count=7))

    (_, (row,), _) = query.called("insert")[0]
    assert "created_at" not in row
    assert "updated_at" not in row
    assert row["like_count"] == 0


@pytest.mark.asyncio
async def test_update_drops_immutable_fields_and_stamps_server_time():
    query = RecordingQuery([_row(title="Renamed")])
    repo = SupabaseNoteRepository(FakeClient(query))

    updated = await repo.update_fields(uuid4(), {"title": "Renamed", "author_id": uuid4()})

    (_, (payload,), _) = query.called("update")[0]
    assert payload == {"title": "Renamed", "updated_at": SERVER_NOW}
    assert updated.title == "Renamed"


@pytest.mark.asyncio
async def test_get_missing_row_returns_none():
    repo = SupabaseNoteRepository(FakeClient(RecordingQuery([])))

    assert await repo.get(uuid4()) is None
    assert await repo.delete(uuid4()) is False


@pytest.mark.asyncio
async def test_polling_feed_fires_when_fingerprint_moves():
    query = RecordingQuery([{"updated_at": "2024-03-01T10:00:00+00:00"}])
    feed = SupabasePollingChangeFeed(FakeClient(query), "notes", interval=0)
    await feed.start()

    query.rows = [{"updated_at": "2024-03-01T10:05:00+00:00"}]
    await asyncio.wait_for(feed.wait(), timeout=1)

    feed.close()
    await asyncio.wait_for(feed.wait(), timeout=1)


@pytest.mark.asyncio
async def test_counter_save_upserts_on_name():
    query = RecordingQuery([{"name": "calc", "color": "orange", "count": 2}])
    repo = SupabaseCounterRepository(FakeClient(query))

    saved = await repo.save(CounterCollection.TAGS, CounterRecord(name="calc", color="orange", count=2))

    assert query.called("upsert")[0][2] == {"on_conflict": "name"}
    assert saved.count == 2
