from __future__ import annotations

from datetime import datetime  # noqa: TCH003
from uuid import UUID  # noqa: TCH003

from pydantic import Field, field_validator

from studynotes.core.models.base import AppBaseModel
from studynotes.core.models.note import NoteType, normalize_tags  # noqa: TCH001
from studynotes.core.schemas.note_draft import NoteDraft


class NoteCreate(NoteDraft):
    """Request body for creating a markdown note or a note with an uploaded file."""


class NoteUpdate(AppBaseModel):
    title: str | None = Field(default=None, max_length=255)
    content: str | None = None
    note_type: NoteType | None = None
    tags: list[str] | None = None
    subject: str | None = None
    is_public: bool | None = None
    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = Field(default=None, ge=0)

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return v
        return normalize_tags(v)


class NoteRead(AppBaseModel):
    id: UUID
    title: str
    content: str
    note_type: NoteType
    tags: list[str]
    subject: str
    is_public: bool
    author_id: UUID
    author_name: str
    author_email: str
    file_url: str | None
    file_name: str | None
    file_size: int | None
    view_count: int
    like_count: int
    created_at: datetime
    updated_at: datetime
