from __future__ import annotations

from typing import TYPE_CHECKING

from studynotes.core.errors import StudyNotesError
from studynotes.core.models.counter import CounterCollection, CounterRecord
from studynotes.utils.logging import get_logger

if TYPE_CHECKING:
    from collections.abc import Sequence

    from studynotes.core.repositories.counter_repository import CounterRepository


logger = get_logger(__name__)

PALETTE = ("blue", "green", "purple", "orange", "red", "pink", "indigo", "yellow")


def color_for(name: str) -> str:
    """Deterministic display color: character-code sum modulo the palette."""
    return PALETTE[sum(ord(ch) for ch in name) % len(PALETTE)]


class CounterStore:
    """Best-effort usage counts per tag and per subject name."""

    def __init__(self, repo: CounterRepository) -> None:
        self._repo = repo

    async def increment(self, collection: CounterCollection, key: str, delta: int = 1) -> CounterRecord:
        """Add `delta` to the counter for `key`, creating it on first use.

        This is a read followed by a separate write. Two callers racing on
        the same key may both read the same base count, and one update is
        then lost.
        """
        record = await self._repo.get(collection, key)
        if record is None:
            record = CounterRecord(name=key, color=color_for(key), count=0)
        updated = record.model_copy(update={"count": record.count + delta})
        saved = await self._repo.save(collection, updated)
        logger.debug("Counter %s/%s -> %d", collection.value, key, saved.count)
        return saved

    async def list_counters(self, collection: CounterCollection) -> Sequence[CounterRecord]:
        """Counters ordered by count descending, then name."""
        records = await self._repo.list(collection)
        return sorted(records, key=lambda r: (-r.count, r.name))

    async def record_note_created(self, tags: Sequence[str], subject: str) -> None:
        """Bump one counter per tag and one for the subject, if any.

        A failing key is logged and skipped; the remaining keys are still bumped.
        """
        keys = [(CounterCollection.TAGS, tag) for tag in tags]
        if subject:
            keys.append((CounterCollection.SUBJECTS, subject))
        for collection, key in keys:
            try:
                await self.increment(collection, key, 1)
            except StudyNotesError as err:
                logger.warning(
                    "Counter update failed",
                    extra={"collection": collection.value, "key": key, "error": str(err)},
                )
