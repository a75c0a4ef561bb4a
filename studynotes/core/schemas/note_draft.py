from __future__ import annotations

from pydantic import Field, field_validator

from studynotes.core.models.base import AppBaseModel
from studynotes.core.models.note import NoteFile, NoteType, normalize_tags


class NoteDraft(AppBaseModel):
    """Author-supplied fields for a new note.

    Required-field rules depend on note_type and are enforced by
    NoteService.create_note, which reports them as ValidationError.
    """

    title: str = Field(default="", max_length=255, description="Note title")
    content: str = Field(default="", description="Markdown body; ignored for file notes")
    note_type: NoteType = Field(default=NoteType.MARKDOWN, description="Type of note")
    tags: list[str] = Field(default_factory=list, description="Tags for categorization")
    subject: str = Field(default="", description="Subject label")
    is_public: bool = Field(default=False, description="Share with every signed-in user")
    file: NoteFile | None = Field(default=None, description="Uploaded file for pdf/image notes")

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str]:
        return normalize_tags(v)

    @field_validator("title", "content", "subject", mode="before")
    @classmethod
    def strip_text(cls, v: str | None) -> str:
        return (v or "").strip()
