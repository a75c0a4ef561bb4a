from __future__ import annotations

from enum import Enum
from uuid import UUID, uuid4

from pydantic import Field, field_validator, model_validator

from .base import AppBaseModel, TimestampedModel


class NoteType(str, Enum):
    """Kind of content a note carries."""

    MARKDOWN = "markdown"
    PDF = "pdf"
    IMAGE = "image"


FILE_FIELDS = ("file_url", "file_name", "file_size")

# Subjects offered in the editor's picker; notes may still use any subject.
SUBJECT_CATALOG = (
    "Mathematics",
    "Physics",
    "Chemistry",
    "Biology",
    "Computer Science",
    "Literature",
    "History",
    "Geography",
    "Economics",
    "Psychology",
    "Engineering",
    "Medicine",
    "Law",
    "Business",
    "Art",
    "Music",
)


def normalize_tags(tags: list[str] | None) -> list[str]:
    """Strip tags, drop blanks and duplicates. Case is preserved."""
    if not tags:
        return []
    normalized: list[str] = []
    for tag in tags:
        if not isinstance(tag, str):
            continue
        stripped = tag.strip()
        if stripped and stripped not in normalized:
            normalized.append(stripped)
    return normalized


class NoteFile(AppBaseModel):
    """Reference to an uploaded file in object storage."""

    url: str = Field(..., min_length=1)
    name: str = Field(..., min_length=1)
    size: int = Field(..., ge=0)


class Note(TimestampedModel):
    """Note domain model."""

    id: UUID = Field(default_factory=uuid4, description="Unique note identifier")

    title: str = Field(..., max_length=255, description="Note title")
    content: str = Field(default="", description="Markdown body; empty for file notes")
    note_type: NoteType = Field(default=NoteType.MARKDOWN, description="Type of note")
    tags: list[str] = Field(default_factory=list, description="Tags for categorization")
    subject: str = Field(default="", description="Subject label")
    is_public: bool = Field(default=False, description="Visible to every signed-in user")

    # Author details are copied at creation time
    author_id: UUID
    author_name: str = ""
    author_email: str = ""

    file_url: str | None = None
    file_name: str | None = None
    file_size: int | None = Field(default=None, ge=0)

    view_count: int = Field(default=0, ge=0)
    like_count: int = Field(default=0, ge=0)

    @field_validator("tags", mode="before")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str]:
        return normalize_tags(v)

    @field_validator("content", "subject", mode="before")
    @classmethod
    def none_to_empty(cls, v: str | None) -> str:
        return "" if v is None else v

    @model_validator(mode="after")
    def validate_file_reference(self) -> Note:
        """File fields travel together: all present or all absent."""
        present = [getattr(self, name) is not None for name in FILE_FIELDS]
        if any(present) and not all(present):
            raise ValueError("file_url, file_name and file_size must be set together")
        return self

    @property
    def file(self) -> NoteFile | None:
        if self.file_url is None:
            return None
        return NoteFile(url=self.file_url, name=self.file_name, size=self.file_size)

    model_config = {
        "json_schema_extra": {
            "examples": [
                {
                    "id": str(uuid4()),
                    "title": "Calc Notes",
                    "content": "Derivative of x^2 is 2x.",
                    "note_type": "markdown",
                    "tags": ["algebra", "calc"],
                    "subject": "Mathematics",
                    "is_public": True,
                    "author_id": str(uuid4()),
                    "author_name": "Ada Student",
                    "author_email": "ada@example.edu",
                }
            ]
        }
    }
