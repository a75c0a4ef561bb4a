"""Auth routes with a stand-in Supabase auth client."""

from types import SimpleNamespace
from uuid import uuid4

import pytest

from studynotes.core.services.auth_service import AuthService
from studynotes.core.services.user_service import UserService
from studynotes.dependencies import get_auth_service
from studynotes.main import app

API = "/api/v1"


class FakeAuth:
    def __init__(self, user_id) -> None:
        self.user_id = user_id
        self.signed_out = False

    def sign_in_with_oauth(self, credentials):
        assert credentials["provider"] == "google"
        return SimpleNamespace(url="https://accounts.google.com/o/oauth2/auth?client_id=test")

    def get_user(self, token):
        if token == "expired":
            raise RuntimeError("JWT expired")
        return SimpleNamespace(
            user=SimpleNamespace(
                id=str(self.user_id),
                email="ada@example.edu",
                role="authenticated",
                user_metadata={"full_name": "Ada Lovelace", "avatar_url": "https://img.example/ada.png"},
            )
        )

    def refresh_session(self, refresh_token):
        return SimpleNamespace(
            user=SimpleNamespace(id=str(self.user_id), email="ada@example.edu"),
            session=SimpleNamespace(access_token="new.access.token", expires_in=3600, refresh_token="r2"),
        )

    def sign_out(self):
        self.signed_out = True


@pytest.fixture
def fake_auth():
    return FakeAuth(uuid4())


@pytest.fixture
def auth_client(client, fake_auth, user_repo):
    service = AuthService(SimpleNamespace(auth=fake_auth), UserService(user_repo))
    app.dependency_overrides[get_auth_service] = lambda: service
    return client


def test_google_sign_in_url(auth_client):
    resp = auth_client.get(f"{API}/auth/google")

    assert resp.status_code == 200
    assert resp.json()["url"].startswith("https://accounts.google.com/")


def test_complete_sign_in_syncs_profile(auth_client, fake_auth, user_repo):
    resp = auth_client.post(
        f"{API}/auth/google/complete",
        json={"access_token": "a.b.c", "refresh_token": "r1", "expires_in": 3600},
    )

    assert resp.status_code == 200, resp.text
    body = resp.json()
    assert body["access_token"] == "a.b.c"
    assert body["user"]["display_name"] == "Ada Lovelace"
    assert body["user"]["photo_url"] == "https://img.example/ada.png"


def test_cancelled_sign_in_is_not_an_error(auth_client):
    resp = auth_client.post(f"{API}/auth/google/complete", json={"error": "access_denied"})

    assert resp.status_code == 200
    assert resp.json() == {"status": "cancelled"}


def test_provider_failure_is_400(auth_client):
    resp = auth_client.post(f"{API}/auth/google/complete", json={"error": "server_error"})

    assert resp.status_code == 400


def test_expired_token_is_400(auth_client):
    resp = auth_client.post(f"{API}/auth/google/complete", json={"access_token": "expired"})

    assert resp.status_code == 400
    assert "expired" in resp.json()["detail"]


def test_refresh(auth_client):
    resp = auth_client.post(f"{API}/auth/refresh", json={"refresh_token": "r1"})

    assert resp.status_code == 200
    assert resp.json()["access_token"] == "new.access.token"


def test_refresh_requires_token(auth_client):
    assert auth_client.post(f"{API}/auth/refresh", json={}).status_code == 400


def test_sign_out(auth_client, fake_auth):
    resp = auth_client.post(f"{API}/auth/signout")

    assert resp.status_code == 200
    assert fake_auth.signed_out is True


def test_validate_returns_identity(auth_client, author):
    body = auth_client.get(f"{API}/auth/validate").json()

    assert body["id"] == str(author.id)
    assert body["display_name"] == "Ada Student"
