"""Global error handler: consistent JSON error responses.

Domain errors map to:
- AlreadyCompletedTodayError / CooldownActiveError → 200, informational status
- NotEligibleError → 403, reason shown to the user
- InvalidStateError → 409, generic message (details are logged only)
- NotFoundError → 404
- ClassificationInputError → 422
"""

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from rocket.errors import (
    AlreadyCompletedTodayError,
    ClassificationInputError,
    CooldownActiveError,
    InvalidStateError,
    NotEligibleError,
    NotFoundError,
)

logger = structlog.get_logger()

INVALID_STATE_DETAIL = "This action is no longer available"


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        return JSONResponse(
            status_code=exc.status_code,
            content={"detail": exc.detail},
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=422,
            content={"detail": "Validation error", "errors": exc.errors()},
        )

    @app.exception_handler(AlreadyCompletedTodayError)
    async def already_completed_handler(_request: Request, exc: AlreadyCompletedTodayError) -> JSONResponse:
        return JSONResponse(
            status_code=200,
            content={
                "status": "already_completed_today",
                "detail": str(exc),
                "activity_id": exc.activity_id,
            },
        )

    @app.exception_handler(CooldownActiveError)
    async def cooldown_handler(_request: Request, exc: CooldownActiveError) -> JSONResponse:
        return JSONResponse(
            status_code=200,
            content={
                "status": "cooldown",
                "detail": str(exc),
                "activity_id": exc.activity_id,
                "days_remaining": exc.days_remaining,
            },
        )

    @app.exception_handler(NotEligibleError)
    async def not_eligible_handler(_request: Request, exc: NotEligibleError) -> JSONResponse:
        return JSONResponse(status_code=403, content={"detail": exc.reason})

    @app.exception_handler(InvalidStateError)
    async def invalid_state_handler(request: Request, exc: InvalidStateError) -> JSONResponse:
        logger.warning(
            "invalid_state",
            path=request.url.path,
            method=request.method,
            error=str(exc),
        )
        return JSONResponse(status_code=409, content={"detail": INVALID_STATE_DETAIL})

    @app.exception_handler(NotFoundError)
    async def not_found_handler(_request: Request, exc: NotFoundError) -> JSONResponse:
        return JSONResponse(status_code=404, content={"detail": str(exc)})

    @app.exception_handler(ClassificationInputError)
    async def classification_handler(request: Request, exc: ClassificationInputError) -> JSONResponse:
        logger.error("classification_input", path=request.url.path, error=str(exc))
        return JSONResponse(status_code=422, content={"detail": str(exc)})

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions: always return JSON."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error"},
        )
