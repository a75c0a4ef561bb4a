"""Profile reconciliation on sign-in."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from studynotes.core.errors import NotFoundError
from studynotes.core.schemas.auth import AuthUser
from studynotes.core.services.user_service import UserService


@pytest.fixture
def user_service(user_repo) -> UserService:
    return UserService(user_repo)


@pytest.mark.asyncio
async def test_first_sign_in_creates_profile(user_service, author):
    profile = await user_service.sync_profile(author)

    assert profile.id == author.id
    assert profile.display_name == "Ada Student"
    assert (await user_service.get_user(author.id)).email == "ada@example.edu"


@pytest.mark.asyncio
async def test_blank_provider_values_keep_stored_profile(user_service, author):
    await user_service.sync_profile(author)

    profile = await user_service.sync_profile(author.model_copy(update={"display_name": ""}))

    assert profile.display_name == "Ada Student"


@pytest.mark.asyncio
async def test_changed_provider_values_update_profile(user_service, author):
    created = await user_service.sync_profile(author)

    profile = await user_service.sync_profile(
        author.model_copy(update={"photo_url": "https://img.example/ada.png"})
    )

    assert profile.photo_url == "https://img.example/ada.png"
    assert profile.updated_at >= created.updated_at


@pytest.mark.asyncio
async def test_unknown_user(user_service):
    with pytest.raises(NotFoundError):
        await user_service.get_user(uuid4())


def test_auth_user_reads_google_metadata():
    raw = SimpleNamespace(
        id=str(uuid4()),
        email="ada@example.edu",
        role="authenticated",
        user_metadata={"name": "Ada", "picture": "https://img.example/a.png"},
    )

    user = AuthUser.from_supabase_user(raw)

    assert user.display_name == "Ada"
    assert user.photo_url == "https://img.example/a.png"
    assert user.role == "authenticated"
