"""
Rate limiting per scope.

- attempt: public /attempts endpoints, per client IP
- api: everything else under the API prefix, per teacher (or IP)
- the generation webhook is never limited; the worker retries on failure
"""

import time
from typing import Callable, Dict, Optional, Tuple

from fastapi import Request, Response, status
from starlette.middleware.base import BaseHTTPMiddleware

from assessment_engine.config import get_settings
from assessment_engine.kernel.identity.jwt import verify_access_token

WINDOW_SECONDS = 60


def _get_client_ip(request: Request) -> str:
    """Client IP from X-Forwarded-For or the socket."""
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        return forwarded.split(",")[0].strip()
    return request.client.host if request.client else "unknown"


def _get_teacher_id(request: Request) -> Optional[str]:
    auth = request.headers.get("authorization")
    if not auth or not auth.lower().startswith("bearer "):
        return None
    claims = verify_access_token(auth[7:].strip())
    return claims.sub if claims else None


class InMemoryRateLimitStore:
    """Fixed-window in-memory store. Key -> (count, window_start)."""

    def __init__(self):
        self._data: Dict[str, Tuple[int, float]] = {}

    def check_and_incr(self, scope: str, identifier: str, limit: int, window_seconds: int) -> bool:
        """True if under the limit (and counted), False if over (not counted)."""
        key = f"{scope}:{identifier}"
        now = time.monotonic()
        count, start = self._data.get(key, (0, now))
        if now - start >= window_seconds:
            count, start = 0, now
        if count >= limit:
            return False
        self._data[key] = (count + 1, start)
        return True

    def cleanup_old(self, max_age_seconds: int = 3600) -> None:
        now = time.monotonic()
        for key in [k for k, (_, start) in self._data.items() if now - start > max_age_seconds]:
            self._data.pop(key, None)

    def reset(self) -> None:
        self._data.clear()


# Single-process store
_store: Optional[InMemoryRateLimitStore] = None


def get_store() -> InMemoryRateLimitStore:
    global _store
    if _store is None:
        _store = InMemoryRateLimitStore()
    return _store


class RateLimitMiddleware(BaseHTTPMiddleware):
    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        settings = get_settings()
        if not settings.rate_limit_enabled:
            return await call_next(request)

        path = request.url.path or ""
        prefix = settings.api_v1_prefix
        if not path.startswith(prefix) or path.startswith(f"{prefix}/generation/webhook"):
            return await call_next(request)

        store = get_store()
        store.cleanup_old(max_age_seconds=7200)

        if path.startswith(f"{prefix}/attempts"):
            scope = "attempt"
            limit = settings.rate_limit_attempt_per_minute
            identifier = _get_client_ip(request)
        else:
            scope = "api"
            limit = settings.rate_limit_api_per_minute
            identifier = _get_teacher_id(request) or _get_client_ip(request)

        if not store.check_and_incr(scope, identifier, limit, WINDOW_SECONDS):
            return Response(
                content='{"detail":"Too many requests. Please try again later.","code":"rate_limited"}',
                status_code=status.HTTP_429_TOO_MANY_REQUESTS,
                media_type="application/json",
            )
        return await call_next(request)
