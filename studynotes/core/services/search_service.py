from __future__ import annotations

from typing import TYPE_CHECKING

from studynotes.core.errors import BackendQueryError
from studynotes.core.repositories.note_repository import matches_text
from studynotes.core.schemas.note_search import NoteListFilter, NoteOrder, SortKey
from studynotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from studynotes.core.models.note import Note
    from studynotes.core.repositories.note_repository import NoteRepository
    from studynotes.core.schemas.note_search import NoteSearchCriteria


logger = get_logger(__name__)


def sort_notes(notes: Sequence[Note], sort_by: SortKey) -> list[Note]:
    """Order fetched notes for display.

    `popular` ranks by the sum like_count + view_count, unlike the
    repository's popular order, which compares likes first and views second.
    """
    if sort_by == SortKey.TITLE:
        return sorted(notes, key=lambda n: (n.title.casefold(), n.title))
    if sort_by == SortKey.POPULAR:
        return sorted(notes, key=lambda n: n.like_count + n.view_count, reverse=True)
    return sorted(notes, key=lambda n: n.created_at, reverse=True)


class SearchService:
    """Search/filter pipeline for discovering notes.

    Keeps application logic (fallbacks, filtering, sorting) outside the
    transport layer.
    """

    def __init__(self, repo: NoteRepository, *, scan_limit: int = 1000) -> None:
        self._repo = repo
        self._scan_limit = scan_limit

    async def discover(self, criteria: NoteSearchCriteria) -> list[Note]:
        """Fetch the base listing for the criteria, then run the pipeline.

        A free-text query replaces the base listing with a search, so the
        listing is skipped in that case.
        """
        if criteria.query:
            return await self.apply([], criteria)
        base = NoteListFilter(
            author_id=criteria.author_id,
            is_public=criteria.is_public,
            order=NoteOrder.POPULAR if criteria.sort_by == SortKey.POPULAR else NoteOrder.RECENT,
            limit=self._scan_limit,
        )
        notes = await self._repo.list(base)
        return await self.apply(notes, criteria)

    async def apply(self, notes: Sequence[Note], criteria: NoteSearchCriteria) -> list[Note]:
        """Filter and sort already-fetched notes.

        Only a free-text query touches the backend again: first as a
        backend-assisted search, and on BackendQueryError as a plain listing
        filtered here by case-insensitive substring.
        """
        results = list(notes)
        subject_applied = False

        if criteria.query:
            scope = NoteListFilter(
                author_id=criteria.author_id,
                is_public=criteria.is_public,
                subject=criteria.subject_filter,
                limit=self._scan_limit,
            )
            try:
                results = list(await self._repo.search(criteria.query, scope))
            except BackendQueryError as err:
                logger.warning(
                    "Backend search failed, falling back to client-side filtering",
                    extra={"query": criteria.query[:100], "error": str(err)},
                )
                candidates = await self._repo.list(scope)
                results = [n for n in candidates if matches_text(n, criteria.query)]
            subject_applied = scope.subject is not None

        tag = criteria.tag_filter
        if tag is not None:
            results = [n for n in results if tag in n.tags]

        subject = criteria.subject_filter
        if subject is not None and not subject_applied:
            results = [n for n in results if n.subject == subject]

        return sort_notes(results, criteria.sort_by)
