from __future__ import annotations

from typing import TYPE_CHECKING

from starlette.middleware.base import BaseHTTPMiddleware

from studynotes.config import settings
from studynotes.utils.logging import get_logger

if TYPE_CHECKING:
    from fastapi import Request
    from starlette.types import ASGIApp

logger = get_logger(__name__)


def build_csp(supabase_url: str) -> str:
    """Content Security Policy allowing the Supabase project for data, storage and images."""
    supabase_origin = supabase_url.rstrip("/") or "https://*.supabase.co"
    return (
        "default-src 'self'; "
        "script-src 'self'; "
        "style-src 'self' 'unsafe-inline'; "
        f"img-src 'self' data: blob: {supabase_origin} https://lh3.googleusercontent.com; "
        f"frame-src 'self' {supabase_origin}; "
        f"connect-src 'self' wss: {supabase_origin}; "
        "frame-ancestors 'none';"
    )


class SecurityMiddleware(BaseHTTPMiddleware):
    """Adds security headers and logs sign-in traffic."""

    def __init__(self, app: ASGIApp, auth_prefix: str | None = None):
        super().__init__(app)
        self.csp_policy = build_csp(settings.supabase_url)
        self.auth_prefix = auth_prefix or f"{settings.api_prefix}/auth"

    async def dispatch(self, request: Request, call_next):
        response = await call_next(request)

        response.headers["X-Content-Type-Options"] = "nosniff"
        response.headers["X-Frame-Options"] = "DENY"
        response.headers["Referrer-Policy"] = "strict-origin-when-cross-origin"
        response.headers["Content-Security-Policy"] = self.csp_policy

        if request.url.scheme == "https":
            response.headers["Strict-Transport-Security"] = "max-age=15552000; includeSubDomains"

        # Metadata lists are safe to cache briefly; everything else is per-user
        if request.method == "GET" and request.url.path.startswith(f"{settings.api_prefix}/metadata"):
            response.headers["Cache-Control"] = "private, max-age=60"
        else:
            response.headers["Cache-Control"] = "no-store, no-cache, must-revalidate, max-age=0"
            response.headers["Pragma"] = "no-cache"

        if request.url.path.startswith(self.auth_prefix):
            client_ip = request.client.host if request.client else "unknown"
            user_agent = request.headers.get("user-agent", "unknown")

            logger.info(
                "Auth endpoint accessed",
                extra={
                    "path": request.url.path,
                    "method": request.method,
                    "ip": client_ip,
                    "user_agent": user_agent[:100],
                    "status": response.status_code,
                }
            )

        return response
