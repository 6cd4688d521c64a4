"""Per-caller request budget kept in Redis.

Authenticated callers are counted by user id, so one person on several
devices shares a budget; anonymous callers are counted by client address.
Counters live in fixed windows of `window_seconds`.
"""

import time
from typing import Any

import jwt
import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from rocket.auth.jwt import verify_token
from rocket.redis_client import get_optional_redis

logger = structlog.get_logger()

_EXEMPT_PATHS = frozenset({"/health", "/ready", "/version"})


def caller_key(request: Request) -> str:
    """`user:<sub>` for a valid bearer token, `ip:<host>` otherwise."""
    scheme, _, token = request.headers.get("Authorization", "").partition(" ")
    if scheme.lower() == "bearer" and token:
        try:
            return f"user:{verify_token(token)['sub']}"
        except jwt.InvalidTokenError:
            pass
    return f"ip:{request.client.host if request.client else 'unknown'}"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Answer 429 once a caller spends its budget for the current window."""

    def __init__(self, app: Any, requests_per_window: int = 100, window_seconds: int = 60) -> None:  # noqa: ANN401
        super().__init__(app)
        self.requests_per_window = requests_per_window
        self.window_seconds = window_seconds

    async def _consume(self, redis: Any, key: str) -> tuple[int, int]:  # noqa: ANN401
        """Count one request. Returns (requests so far, seconds until the window resets)."""
        now = int(time.time())
        window = now // self.window_seconds
        counter = f"ratelimit:{key}:{window}"
        async with redis.pipeline(transaction=True) as pipe:
            pipe.incr(counter)
            pipe.expire(counter, self.window_seconds + 1)
            count, _ = await pipe.execute()
        return int(count), (window + 1) * self.window_seconds - now

    def _headers(self, remaining: int, reset_in: int) -> dict[str, str]:
        return {
            "X-RateLimit-Limit": str(self.requests_per_window),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(reset_in),
        }

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        redis = get_optional_redis()
        if redis is None or request.url.path in _EXEMPT_PATHS:
            return await call_next(request)

        key = caller_key(request)
        count, reset_in = await self._consume(redis, key)

        if count > self.requests_per_window:
            logger.warning("rate_limited", caller=key, count=count)
            return JSONResponse(
                status_code=429,
                content={"detail": "Rate limit exceeded. Try again later."},
                headers={"Retry-After": str(reset_in), **self._headers(0, reset_in)},
            )

        response = await call_next(request)
        response.headers.update(self._headers(max(0, self.requests_per_window - count), reset_in))
        return response
