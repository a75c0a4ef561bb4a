from __future__ import annotations

import math
import time
from functools import lru_cache
from typing import TYPE_CHECKING

from fastapi import Depends, HTTPException, Request, Security, WebSocket, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from starlette.requests import HTTPConnection

from studynotes.config import settings
from studynotes.core.repositories.implementations.memory.counter_repository import (
    InMemoryCounterRepository,
)
from studynotes.core.repositories.implementations.memory.note_repository import (
    InMemoryNoteRepository,
)
from studynotes.core.repositories.implementations.memory.user_repository import (
    InMemoryUserRepository,
)
from studynotes.core.repositories.implementations.supabase.counter_repository import (
    SupabaseCounterRepository,
)
from studynotes.core.repositories.implementations.supabase.note_repository import (
    SupabaseNoteRepository,
)
from studynotes.core.repositories.implementations.supabase.user_repository import (
    SupabaseUserRepository,
)
from studynotes.core.schemas.auth import AuthUser
from studynotes.core.services.counter_service import CounterStore
from studynotes.core.services.note_service import NoteService
from studynotes.core.services.search_service import SearchService
from studynotes.core.services.storage_service import InMemoryStorageService, StorageService
from studynotes.core.services.user_service import UserService
from studynotes.db.base import create_request_supabase_client, get_supabase_admin_client
from studynotes.utils.logging import get_logger

logger = get_logger(__name__)

# Use auto_error=False to handle missing tokens gracefully
http_bearer = HTTPBearer(auto_error=False)

if TYPE_CHECKING:
    from supabase import Client

    from studynotes.core.repositories.counter_repository import CounterRepository
    from studynotes.core.repositories.note_repository import NoteRepository
    from studynotes.core.repositories.user_repository import UserRepository


# In-memory rate limiting
_login_attempts: dict[str, list[float]] = {}


def _is_rate_limited(identifier: str) -> bool:
    """Check if the identifier is rate limited."""
    if not settings.enable_rate_limiting:
        return False
    now = time.time()
    window_start = now - settings.login_attempt_window
    if identifier in _login_attempts:
        _login_attempts[identifier] = [
            attempt for attempt in _login_attempts[identifier]
            if attempt > window_start
        ]
    attempts = _login_attempts.get(identifier, [])
    if len(attempts) >= settings.max_login_attempts:
        return True
    if identifier not in _login_attempts:
        _login_attempts[identifier] = []
    _login_attempts[identifier].append(now)
    return False


async def _run_blocking(func):
    """Run blocking functions in a thread pool."""
    import asyncio
    return await asyncio.to_thread(func)


def rate_limit_by_ip(request: Request, operation: str = "default") -> None:
    """Rate limiting dependency that can be used in endpoints.

    Args:
        request: FastAPI request object
        operation: Operation identifier for rate limiting (e.g., "signin")

    Raises:
        HTTPException: If rate limit is exceeded
    """
    client_ip = request.client.host if request.client else "unknown"
    identifier = f"{operation}:{client_ip}"
    if _is_rate_limited(identifier):
        logger.warning(f"Rate limited {operation} attempt", extra={"ip": client_ip})

        now = time.time()
        window_seconds = settings.login_attempt_window
        limit = settings.max_login_attempts

        window_start = now - window_seconds
        attempts = _login_attempts.get(identifier, [])
        attempts = [ts for ts in attempts if ts > window_start]
        _login_attempts[identifier] = attempts

        earliest_attempt = min(attempts) if attempts else now
        seconds_until_reset = max(1, math.ceil(window_seconds - (now - earliest_attempt)))

        headers = {
            "Retry-After": str(seconds_until_reset),
            "RateLimit-Limit": str(limit),
            "RateLimit-Remaining": "0",
            "RateLimit-Reset": str(seconds_until_reset),
        }

        raise HTTPException(
            status_code=status.HTTP_429_TOO_MANY_REQUESTS,
            detail=f"Too many {operation} attempts. Please try again later.",
            headers=headers,
        )


def bearer_token_from_header(value: str | None) -> str | None:
    if value and value.lower().startswith("bearer "):
        return value.split(" ", 1)[1].strip()
    return None


def get_request_supabase_client(connection: HTTPConnection) -> Client:
    """Create a request-scoped Supabase client and set PostgREST bearer.

    Extracts the Authorization: Bearer <jwt> header if present (or the
    `access_token` query parameter on WebSocket connections) and configures
    PostgREST to enforce RLS for the user.
    """
    jwt = bearer_token_from_header(connection.headers.get("authorization"))
    if jwt is None and connection.scope.get("type") == "websocket":
        jwt = connection.query_params.get("access_token")
    return create_request_supabase_client(jwt)


# Process-wide stores for the "memory" backend
@lru_cache(maxsize=1)
def get_memory_note_repository() -> InMemoryNoteRepository:
    return InMemoryNoteRepository()


@lru_cache(maxsize=1)
def get_memory_counter_repository() -> InMemoryCounterRepository:
    return InMemoryCounterRepository()


@lru_cache(maxsize=1)
def get_memory_user_repository() -> InMemoryUserRepository:
    return InMemoryUserRepository()


@lru_cache(maxsize=1)
def get_memory_storage_service() -> InMemoryStorageService:
    return InMemoryStorageService(settings.storage_bucket)


def get_note_repository(connection: HTTPConnection) -> NoteRepository:
    """Get a request-scoped note repository instance using request client."""
    if settings.backend == "memory":
        return get_memory_note_repository()
    return SupabaseNoteRepository(
        get_request_supabase_client(connection),
        poll_interval=settings.live_poll_interval,
    )


def get_counter_repository() -> CounterRepository:
    """Counters are shared aggregates, so they are written with the admin client."""
    if settings.backend == "memory":
        return get_memory_counter_repository()
    return SupabaseCounterRepository(get_supabase_admin_client())


def get_user_repository(connection: HTTPConnection) -> UserRepository:
    if settings.backend == "memory":
        return get_memory_user_repository()
    return SupabaseUserRepository(get_request_supabase_client(connection))


def get_counter_store(repo: CounterRepository = Depends(get_counter_repository)) -> CounterStore:
    return CounterStore(repo)


def get_note_service(
    repo: NoteRepository = Depends(get_note_repository),
    counters: CounterStore = Depends(get_counter_store),
) -> NoteService:
    """Get a request-scoped note service instance."""
    return NoteService(repo, counters)


def get_search_service(repo: NoteRepository = Depends(get_note_repository)) -> SearchService:
    """Get a request-scoped search service instance."""
    return SearchService(repo, scan_limit=settings.search_scan_limit)


def get_user_service(repo: UserRepository = Depends(get_user_repository)) -> UserService:
    return UserService(repo)


def get_storage_service(connection: HTTPConnection) -> StorageService:
    if settings.backend == "memory":
        return get_memory_storage_service()
    return StorageService(get_request_supabase_client(connection), settings.storage_bucket)


async def resolve_user_from_token(jwt: str | None) -> AuthUser:
    """Validate a JWT via Supabase Auth and return the authenticated user."""
    if not jwt:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication required",
            headers={"WWW-Authenticate": "Bearer"},
        )
    if len(jwt.split(".")) != 3:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid token format",
            headers={"WWW-Authenticate": "Bearer"},
        )
    supabase = create_request_supabase_client(jwt)
    try:
        resp = await _run_blocking(lambda: supabase.auth.get_user(jwt))
    except Exception as err:
        error_msg = str(err).lower()
        logger.warning(
            "JWT validation failed",
            extra={
                "error_type": type(err).__name__,
                "error_summary": error_msg[:100] if error_msg else "Unknown error",
                "jwt_length": len(jwt) if jwt else 0,
            }
        )
        if "invalid" in error_msg or "expired" in error_msg:
            raise HTTPException(
                status_code=status.HTTP_401_UNAUTHORIZED,
                detail="Token is invalid or expired",
                headers={"WWW-Authenticate": "Bearer"},
            ) from err
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Authentication failed",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err
    user = getattr(resp, "user", None)
    if not user or not getattr(user, "id", None):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid user data",
            headers={"WWW-Authenticate": "Bearer"},
        )
    return AuthUser.from_supabase_user(user)


async def get_current_user(
    credentials: HTTPAuthorizationCredentials | None = Security(http_bearer),
) -> AuthUser:
    """Validate JWT via Supabase and return authenticated user."""
    return await resolve_user_from_token(credentials.credentials if credentials else None)


def get_auth_service(
    client: Client = Depends(get_request_supabase_client),
    user_service: UserService = Depends(get_user_service),
):
    """Get a request-scoped auth service instance."""
    from studynotes.core.services.auth_service import AuthService
    return AuthService(client, user_service)


async def get_current_user_ws(websocket: WebSocket) -> AuthUser:
    """WebSocket variant of get_current_user; browsers pass the JWT as a query parameter."""
    return await resolve_user_from_token(websocket.query_params.get("access_token"))
