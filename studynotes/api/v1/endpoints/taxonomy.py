from __future__ import annotations

from typing import TYPE_CHECKING

from fastapi import APIRouter, Depends

from studynotes.api.v1.errors import to_http_exception
from studynotes.api.v1.schemas.taxonomy import CounterRead
from studynotes.core.errors import StudyNotesError
from studynotes.core.models.counter import CounterCollection
from studynotes.core.models.note import SUBJECT_CATALOG, NoteType
from studynotes.dependencies import get_counter_store, get_current_user

if TYPE_CHECKING:
    from studynotes.core.schemas.auth import AuthUser
    from studynotes.core.services.counter_service import CounterStore


router = APIRouter()


async def _list(store: CounterStore, collection: CounterCollection) -> list[CounterRead]:
    try:
        records = await store.list_counters(collection)
    except StudyNotesError as err:
        raise to_http_exception(err) from err
    return [CounterRead.model_validate(r) for r in records]


@router.get("/tags", response_model=list[CounterRead])
async def list_tags(
    current_user: AuthUser = Depends(get_current_user),
    store: CounterStore = Depends(get_counter_store),
) -> list[CounterRead]:
    """Return tag usage counters, most used first."""
    return await _list(store, CounterCollection.TAGS)


@router.get("/subjects", response_model=list[CounterRead])
async def list_subjects(
    current_user: AuthUser = Depends(get_current_user),
    store: CounterStore = Depends(get_counter_store),
) -> list[CounterRead]:
    """Return subject usage counters, most used first."""
    return await _list(store, CounterCollection.SUBJECTS)


@router.get("/note-types", response_model=list[str])
async def list_note_types() -> list[str]:
    """Return all supported note types for client-side filtering.

    Enum values are serialized to their string representation per Pydantic/JSON rules.
    """
    return [t.value for t in NoteType]


@router.get("/subject-catalog", response_model=list[str])
async def list_subject_catalog() -> list[str]:
    return list(SUBJECT_CATALOG)
