from __future__ import annotations

from typing import TYPE_CHECKING

from studynotes.core.errors import NotFoundError
from studynotes.core.models.user import User
from studynotes.utils.logging import get_logger

if TYPE_CHECKING:
    from uuid import UUID

    from studynotes.core.repositories.user_repository import UserRepository
    from studynotes.core.schemas.auth import AuthUser


logger = get_logger(__name__)


class UserService:
    """Keeps the `users` profile in step with the identity provider."""

    def __init__(self, repo: UserRepository) -> None:
        self._repo = repo

    async def get_user(self, user_id: UUID) -> User:
        user = await self._repo.get(user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def sync_profile(self, identity: AuthUser) -> User:
        """Create the profile on first sign-in, otherwise reconcile it.

        Provider values win when present; blank provider values keep what is
        already stored.
        """
        existing = await self._repo.get(identity.id)
        if existing is None:
            created = await self._repo.create(
                User(
                    id=identity.id,
                    email=identity.email,
                    display_name=identity.display_name,
                    photo_url=identity.photo_url,
                )
            )
            logger.info("User profile created", extra={"user_id": str(identity.id)})
            return created

        desired = {
            "email": identity.email or existing.email,
            "display_name": identity.display_name or existing.display_name,
            "photo_url": identity.photo_url or existing.photo_url,
        }
        changes = {k: v for k, v in desired.items() if getattr(existing, k) != v}
        if not changes:
            return existing

        updated = await self._repo.update_fields(identity.id, changes)
        logger.info(
            "User profile reconciled",
            extra={"user_id": str(identity.id), "fields": sorted(changes)},
        )
        return updated or existing
