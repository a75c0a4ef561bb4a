from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

if TYPE_CHECKING:
    from uuid import UUID

    from studynotes.core.models.user import User


class UserRepository(ABC):
    """Profiles keyed by the identity provider's subject id."""

    @abstractmethod
    async def get(self, user_id: UUID) -> User | None:  # pragma: no cover
        """Fetch a profile or return None."""

    @abstractmethod
    async def create(self, user: User) -> User:  # pragma: no cover
        """Persist a new profile with server timestamps."""

    @abstractmethod
    async def update_fields(self, user_id: UUID, changes: dict[str, Any]) -> User | None:  # pragma: no cover
        """Merge changes into a profile, refreshing updated_at."""
