from __future__ import annotations

from uuid import UUID  # noqa: TCH003

from pydantic import Field

from studynotes.core.models.base import AppBaseModel
from studynotes.core.schemas.note_search import ALL, SortKey


class NoteSearchRequest(AppBaseModel):
    query: str | None = Field(default=None, description="Free-text query")
    subject: str = Field(default=ALL, description="Subject name or 'all'")
    tag: str = Field(default=ALL, description="Exact tag or 'all'")
    sort_by: SortKey = SortKey.RECENT
    is_public: bool | None = True
    author_id: UUID | None = None
