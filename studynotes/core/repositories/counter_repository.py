from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from studynotes.core.models.counter import CounterCollection, CounterRecord


class CounterRepository(ABC):
    """Storage for tag and subject usage counters, keyed by name.

    Offers plain reads and writes only; there is no atomic increment.
    """

    @abstractmethod
    async def get(self, collection: CounterCollection, name: str) -> CounterRecord | None:  # pragma: no cover
        """Fetch the counter for a name or return None."""

    @abstractmethod
    async def save(self, collection: CounterCollection, record: CounterRecord) -> CounterRecord:  # pragma: no cover
        """Insert or overwrite the counter record for record.name."""

    @abstractmethod
    async def list(self, collection: CounterCollection) -> Sequence[CounterRecord]:  # pragma: no cover
        """Return every counter in the collection."""
