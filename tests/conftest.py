"""Shared fixtures: in-memory repositories and an API client wired to them."""

import os

# Settings are read at import time
os.environ.setdefault("APP_BACKEND", "memory")
os.environ.setdefault("APP_ENABLE_RATE_LIMITING", "false")

import asyncio
from uuid import uuid4

import pytest
from fastapi.testclient import TestClient

from studynotes.core.repositories.implementations.memory.counter_repository import (
    InMemoryCounterRepository,
)
from studynotes.core.repositories.implementations.memory.note_repository import (
    InMemoryNoteRepository,
)
from studynotes.core.repositories.implementations.memory.user_repository import (
    InMemoryUserRepository,
)
from studynotes.core.schemas.auth import AuthUser
from studynotes.core.schemas.note_draft import NoteDraft
from studynotes.core.services.counter_service import CounterStore
from studynotes.core.services.note_service import NoteService
from studynotes.core.services.storage_service import InMemoryStorageService
from studynotes.dependencies import (
    get_counter_repository,
    get_current_user,
    get_current_user_ws,
    get_note_repository,
    get_storage_service,
    get_user_repository,
)
from studynotes.main import app


@pytest.fixture
def note_repo() -> InMemoryNoteRepository:
    return InMemoryNoteRepository()


@pytest.fixture
def counter_repo() -> InMemoryCounterRepository:
    return InMemoryCounterRepository()


@pytest.fixture
def user_repo() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@pytest.fixture
def storage() -> InMemoryStorageService:
    return InMemoryStorageService("notes")


@pytest.fixture
def counter_store(counter_repo) -> CounterStore:
    return CounterStore(counter_repo)


@pytest.fixture
def note_service(note_repo, counter_store) -> NoteService:
    return NoteService(note_repo, counter_store)


@pytest.fixture
def author() -> AuthUser:
    return AuthUser(id=uuid4(), email="ada@example.edu", display_name="Ada Student")


@pytest.fixture
def reader() -> AuthUser:
    return AuthUser(id=uuid4(), email="grace@example.edu", display_name="Grace Reader")


@pytest.fixture
def make_note(note_service, author):
    """Create a markdown note through the service; keyword args override the draft."""

    async def _make(author_user: AuthUser | None = None, **fields):
        draft = {
            "title": "Untitled",
            "content": "Some content",
            "is_public": True,
        }
        draft.update(fields)
        return await note_service.create_note(NoteDraft(**draft), author=author_user or author)

    return _make


async def _wait_until(predicate, timeout: float = 2.0) -> None:
    """Poll `predicate` on the event loop until it holds or the timeout expires."""
    loop = asyncio.get_running_loop()
    deadline = loop.time() + timeout
    while not predicate():
        if loop.time() > deadline:
            raise AssertionError("condition not reached in time")
        await asyncio.sleep(0.01)


@pytest.fixture
def current_user(author) -> dict:
    """Mutable holder for the identity the API sees; swap `user` to act as someone else."""
    return {"user": author}


@pytest.fixture
def client(note_repo, counter_repo, user_repo, storage, current_user):
    app.dependency_overrides[get_current_user] = lambda: current_user["user"]
    app.dependency_overrides[get_current_user_ws] = lambda: current_user["user"]
    app.dependency_overrides[get_note_repository] = lambda: note_repo
    app.dependency_overrides[get_counter_repository] = lambda: counter_repo
    app.dependency_overrides[get_user_repository] = lambda: user_repo
    app.dependency_overrides[get_storage_service] = lambda: storage
    # One portal for the whole test so HTTP calls and websockets share a loop
    with TestClient(app) as test_client:
        yield test_client
    app.dependency_overrides.clear()


@pytest.fixture
def wait_until():
    return _wait_until
