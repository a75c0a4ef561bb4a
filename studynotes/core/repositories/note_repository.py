from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from collections.abc import Sequence
    from uuid import UUID

    from studynotes.core.models.note import Note
    from studynotes.core.schemas.note_search import NoteListFilter


# Fields a partial update may never touch
IMMUTABLE_FIELDS = frozenset({"id", "author_id", "created_at", "updated_at"})


class NoteChangeFeed(ABC):
    """Notification handle for changes to the note collection."""

    async def start(self) -> None:
        """Establish the baseline that later waits compare against."""
        return None

    @abstractmethod
    async def wait(self) -> None:  # pragma: no cover - interface only
        """Return once the collection has changed since the previous wait."""

    @abstractmethod
    def close(self) -> None:  # pragma: no cover
        """Detach from the change source. Must be idempotent."""


class NoteRepository(ABC):
    """Abstract repository interface for notes.

    Contract used by services and dependency injection. Implementations should
    perform I/O (database, network) and therefore expose async methods.
    """

    @abstractmethod
    async def create(self, note: Note) -> Note:  # pragma: no cover - interface only
        """Persist a new note with zeroed counters and server timestamps."""

    @abstractmethod
    async def get(self, note_id: UUID) -> Note | None:  # pragma: no cover
        """Fetch a note by id or return None if not found."""

    @abstractmethod
    async def list(self, filters: NoteListFilter) -> Sequence[Note]:  # pragma: no cover
        """Return notes matching the filter in the filter's order.

        `recent` sorts by creation time descending. `popular` sorts by
        like_count descending, then view_count descending.
        """

    @abstractmethod
    async def search(self, query: str, filters: NoteListFilter) -> Sequence[Note]:  # pragma: no cover
        """Backend-assisted text search within the structural filters.

        Raises BackendQueryError when the backend cannot run the query.
        """

    @abstractmethod
    async def update_fields(self, note_id: UUID, changes: dict[str, Any]) -> Note | None:  # pragma: no cover
        """Merge changes into a note, refreshing updated_at. None if missing."""

    @abstractmethod
    async def delete(self, note_id: UUID) -> bool:  # pragma: no cover
        """Delete a note by id. Return True if a row was removed, False otherwise."""

    @abstractmethod
    def watch(self) -> NoteChangeFeed:  # pragma: no cover
        """Open a change feed for the note collection."""


def matches_text(note: Note, query: str) -> bool:
    """Case-insensitive substring match over title, content, author and tags."""
    needle = query.lower()
    return (
        needle in note.title.lower()
        or needle in note.content.lower()
        or needle in note.author_name.lower()
        or any(needle in tag.lower() for tag in note.tags)
    )
