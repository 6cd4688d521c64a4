"""Cross-origin access for the web and mobile clients."""

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from rocket.config import Settings

_EXPOSED = ["X-Request-Id", "X-RateLimit-Limit", "X-RateLimit-Remaining", "X-RateLimit-Reset", "Retry-After"]


def setup_cors(app: FastAPI, settings: Settings) -> None:
    # Wildcard origins cannot be combined with credentials
    wildcard = "*" in settings.cors_origins
    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=not wildcard,
        allow_methods=["GET", "POST", "DELETE", "OPTIONS"],
        allow_headers=["Authorization", "Content-Type", "X-Request-Id"],
        expose_headers=_EXPOSED,
        max_age=600,
    )
