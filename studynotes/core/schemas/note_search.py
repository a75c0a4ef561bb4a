from __future__ import annotations

from enum import Enum
from uuid import UUID  # noqa: TCH003

from pydantic import ConfigDict, Field, field_validator

from studynotes.core.models.base import AppBaseModel
from studynotes.core.models.note import normalize_tags

ALL = "all"


class NoteOrder(str, Enum):
    """Orderings the note repository can push down to the backend."""

    RECENT = "recent"
    POPULAR = "popular"


class SortKey(str, Enum):
    """Orderings applied by the search pipeline over fetched notes."""

    RECENT = "recent"
    POPULAR = "popular"
    TITLE = "title"


class NoteListFilter(AppBaseModel):
    """Structural filter for repository retrieval.

    - tags: match-any; a note qualifies if it carries at least one of them
    - order: recent (created_at desc) or popular (like_count, view_count desc)
    """

    model_config = ConfigDict(frozen=True)

    author_id: UUID | None = None
    is_public: bool | None = None
    subject: str | None = None
    tags: list[str] | None = None
    limit: int | None = Field(default=None, ge=1)
    order: NoteOrder = NoteOrder.RECENT

    @field_validator("subject")
    @classmethod
    def blank_subject_is_unset(cls, v: str | None) -> str | None:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @field_validator("tags")
    @classmethod
    def validate_tags(cls, v: list[str] | None) -> list[str] | None:
        if v is None:
            return None
        return normalize_tags(v) or None


class NoteSearchCriteria(AppBaseModel):
    """Free-text query plus structural filters for the search pipeline.

    `subject` and `tag` use the sentinel "all" for no filtering.
    """

    model_config = ConfigDict(frozen=True)

    query: str | None = None
    subject: str = ALL
    tag: str = ALL
    sort_by: SortKey = SortKey.RECENT
    is_public: bool | None = True
    author_id: UUID | None = None

    @field_validator("query")
    @classmethod
    def blank_query_is_unset(cls, v: str | None) -> str | None:
        if v is None:
            return None
        stripped = v.strip()
        return stripped or None

    @field_validator("subject", "tag", mode="before")
    @classmethod
    def missing_means_all(cls, v: str | None) -> str:
        if v is None or not str(v).strip():
            return ALL
        return str(v).strip()

    @property
    def subject_filter(self) -> str | None:
        return None if self.subject == ALL else self.subject

    @property
    def tag_filter(self) -> str | None:
        return None if self.tag == ALL else self.tag
