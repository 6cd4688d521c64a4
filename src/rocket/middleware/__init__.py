"""HTTP middleware and the hook that installs it on the app."""

from fastapi import FastAPI

from rocket.config import Settings
from rocket.middleware.cors import setup_cors
from rocket.middleware.error_handler import setup_error_handlers
from rocket.middleware.logging import setup_logging
from rocket.middleware.rate_limit import RateLimitMiddleware
from rocket.middleware.request_id import RequestIdMiddleware

__all__ = ["setup_middleware"]


def setup_middleware(app: FastAPI, settings: Settings) -> None:
    """Install logging, error handlers and the middleware stack.

    Request order, outermost first: CORS, request id, rate limit. CORS has
    to wrap 429 responses, and rate-limit warnings need the request id bound.
    """
    setup_logging(settings)
    setup_error_handlers(app)
    if settings.rate_limit_requests > 0:
        app.add_middleware(
            RateLimitMiddleware,
            requests_per_window=settings.rate_limit_requests,
            window_seconds=settings.rate_limit_window_seconds,
        )
    app.add_middleware(RequestIdMiddleware)
    setup_cors(app, settings)
