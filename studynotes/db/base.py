from __future__ import annotations

from functools import lru_cache

from supabase import Client, create_client
from supabase.lib.client_options import ClientOptions

from studynotes.config import settings
from studynotes.utils.logging import get_logger

logger = get_logger(__name__)


def _client_options() -> ClientOptions:
    # Implicit flow: the browser receives the session from the OAuth redirect
    return ClientOptions(auto_refresh_token=False, persist_session=False, flow_type="implicit")


@lru_cache(maxsize=1)
def get_supabase_admin_client() -> Client:
    """Return a cached Supabase admin client using the service role key.

    Used where RLS must not apply, such as maintaining the shared tag and
    subject counters.
    """
    logger.debug("Initializing Supabase admin client")
    if not settings.supabase_url:
        raise RuntimeError("supabase_url is required for admin client")
    if not settings.supabase_service_role_key:
        raise RuntimeError("supabase_service_role_key is required for admin client")
    return create_client(
        settings.supabase_url,
        settings.supabase_service_role_key,
        options=_client_options(),
    )


def create_request_supabase_client(bearer_token: str | None = None) -> Client:
    """Create a request-scoped Supabase client using the anon key.

    If a JWT is provided, set it as the PostgREST and Storage bearer so that
    RLS policies are enforced for all table, rpc and storage operations in
    this request.
    """
    logger.debug("Creating request-scoped Supabase client")
    if not settings.supabase_url:
        raise RuntimeError("supabase_url is required for request client")
    anon_key = settings.supabase_anon_key
    if not anon_key:
        raise RuntimeError("supabase_anon_key is required for request client")

    client = create_client(
        settings.supabase_url,
        anon_key,
        options=_client_options(),
    )
    if bearer_token:
        client.postgrest.auth(bearer_token)
        client.options.headers["Authorization"] = f"Bearer {bearer_token}"
    return client
