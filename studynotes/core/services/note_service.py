from __future__ import annotations

from typing import TYPE_CHECKING, Any
from uuid import UUID, uuid4

from studynotes.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    StudyNotesError,
    ValidationError,
)
from studynotes.core.models.note import FILE_FIELDS, Note, NoteType, normalize_tags
from studynotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from studynotes.core.repositories.note_repository import NoteRepository
    from studynotes.core.schemas.auth import AuthUser
    from studynotes.core.schemas.note_draft import NoteDraft
    from studynotes.core.schemas.note_search import NoteListFilter
    from studynotes.core.services.counter_service import CounterStore


logger = get_logger(__name__)

EDITABLE_FIELDS = frozenset(
    {"title", "content", "note_type", "tags", "subject", "is_public", *FILE_FIELDS}
)
# Editable fields that must always hold a value
REQUIRED_FIELDS = frozenset({"title", "note_type", "is_public"})


def check_note_fields(
    *,
    title: str | None,
    content: str | None,
    note_type: NoteType,
    file_fields: dict[str, Any],
) -> None:
    """Raise ValidationError unless the fields describe a valid note."""
    if not (title or "").strip():
        raise ValidationError("Please enter a title")
    if note_type == NoteType.MARKDOWN:
        if not (content or "").strip():
            raise ValidationError("Markdown notes need some content")
        return
    present = [file_fields.get(name) is not None for name in FILE_FIELDS]
    if not all(present):
        if any(present):
            raise ValidationError("File reference is incomplete")
        raise ValidationError(f"A {note_type.value} note needs an uploaded file")


class NoteService:
    """Note use cases: author-only edits, visibility rules and counters."""

    def __init__(self, repo: NoteRepository, counters: CounterStore) -> None:
        self._repo = repo
        self._counters = counters

    async def create_note(self, draft: NoteDraft, author: AuthUser) -> Note:
        """Validate and persist a note, then bump its tag and subject counters."""
        file_fields: dict[str, Any] = {}
        if draft.file is not None:
            file_fields = {
                "file_url": draft.file.url,
                "file_name": draft.file.name,
                "file_size": draft.file.size,
            }
        check_note_fields(
            title=draft.title,
            content=draft.content,
            note_type=draft.note_type,
            file_fields=file_fields,
        )

        is_markdown = draft.note_type == NoteType.MARKDOWN
        note = Note(
            id=uuid4(),
            title=draft.title,
            content=draft.content if is_markdown else "",
            note_type=draft.note_type,
            tags=draft.tags,
            subject=draft.subject,
            is_public=draft.is_public,
            author_id=author.id,
            author_name=author.display_name,
            author_email=author.email,
            **({} if is_markdown else file_fields),
        )
        created = await self._repo.create(note)
        logger.info(
            "Note created",
            extra={"note_id": str(created.id), "author_id": str(author.id), "note_type": created.note_type.value},
        )

        try:
            await self._counters.record_note_created(created.tags, created.subject)
        except StudyNotesError as err:
            # Counters are advisory; the note itself is already stored
            logger.warning(
                "Failed to update tag/subject counters",
                extra={"note_id": str(created.id), "error": str(err)},
            )
        return created

    async def get_note(self, note_id: str | UUID, viewer_id: UUID) -> Note:
        """Return a note visible to the viewer: public, or authored by them."""
        try:
            note_uuid = UUID(str(note_id))
        except ValueError as err:
            raise NotFoundError("Note not found") from err
        note = await self._repo.get(note_uuid)
        if note is None or (not note.is_public and note.author_id != viewer_id):
            raise NotFoundError("Note not found")
        return note

    async def list_notes(self, filters: NoteListFilter) -> Sequence[Note]:
        return await self._repo.list(filters)

    async def update_note(self, note_id: str | UUID, changes: dict[str, Any], actor_id: UUID) -> Note:
        """Apply an author's partial edit. updated_at is always refreshed."""
        existing = await self._owned_note(note_id, actor_id)

        sanitized: dict[str, Any] = {}
        for key, value in (changes or {}).items():
            if key not in EDITABLE_FIELDS:
                continue
            if value is None and key in REQUIRED_FIELDS:
                raise ValidationError(f"{key} cannot be empty")
            if isinstance(value, str):
                value = value.strip()
            if key == "tags":
                value = normalize_tags(value)
            sanitized[key] = value

        try:
            note_type = NoteType(sanitized.get("note_type", existing.note_type))
        except ValueError as err:
            raise ValidationError("Unknown note type") from err
        if not isinstance(sanitized.get("is_public", existing.is_public), bool):
            raise ValidationError("is_public must be true or false")
        if note_type == NoteType.MARKDOWN:
            # Switching to markdown drops any file reference
            sanitized.update({name: None for name in FILE_FIELDS})
        merged_files = {name: sanitized.get(name, getattr(existing, name)) for name in FILE_FIELDS}
        check_note_fields(
            title=sanitized.get("title", existing.title),
            content=sanitized.get("content", existing.content),
            note_type=note_type,
            file_fields=merged_files,
        )
        if note_type != NoteType.MARKDOWN:
            sanitized["content"] = ""

        updated = await self._repo.update_fields(existing.id, sanitized)
        if updated is None:
            raise NotFoundError("Note not found")
        return updated

    async def delete_note(self, note_id: str | UUID, actor_id: UUID) -> None:
        """Delete an author's note. Tag and subject counters are left as they are."""
        existing = await self._owned_note(note_id, actor_id)
        if not await self._repo.delete(existing.id):
            raise NotFoundError("Note not found")
        logger.info("Note deleted", extra={"note_id": str(existing.id), "author_id": str(actor_id)})

    async def record_view(self, note_id: str | UUID, viewer_id: UUID) -> Note:
        """Increment view_count by one.

        Read-then-write: concurrent viewers may under-count.
        """
        note = await self.get_note(note_id, viewer_id)
        updated = await self._repo.update_fields(note.id, {"view_count": note.view_count + 1})
        if updated is None:
            raise NotFoundError("Note not found")
        return updated

    async def set_like(self, note_id: str | UUID, viewer_id: UUID, liked: bool) -> Note:
        """Like (+1) or unlike (-1) a note; the count never drops below zero."""
        note = await self.get_note(note_id, viewer_id)
        new_count = max(0, note.like_count + (1 if liked else -1))
        updated = await self._repo.update_fields(note.id, {"like_count": new_count})
        if updated is None:
            raise NotFoundError("Note not found")
        return updated

    async def _owned_note(self, note_id: str | UUID, actor_id: UUID) -> Note:
        try:
            note_uuid = UUID(str(note_id))
        except ValueError as err:
            raise NotFoundError("Note not found") from err
        note = await self._repo.get(note_uuid)
        if note is None:
            raise NotFoundError("Note not found")
        if note.author_id != actor_id:
            raise PermissionDeniedError("Only the author can modify this note")
        return note
