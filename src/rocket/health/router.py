"""Health, readiness, and version endpoints."""

from fastapi import APIRouter

from rocket.config import get_settings
from rocket.database import ping_db
from rocket.redis_client import ping_redis

router = APIRouter()


@router.get("/health")
async def health() -> dict[str, str]:
    """Liveness check: 200 while the process is alive."""
    return {"status": "healthy"}


@router.get("/ready")
async def readiness() -> dict[str, object]:
    """Readiness check. Reports "degraded" when a backend check fails."""
    checks: dict[str, object] = {}
    for name, ping in (("database", ping_db), ("redis", ping_redis)):
        try:
            await ping()
            checks[name] = "ok"
        except Exception as exc:
            checks[name] = f"error: {exc}"

    all_ok = all(v == "ok" for v in checks.values())
    return {"status": "ready" if all_ok else "degraded", "checks": checks}


@router.get("/version")
async def version() -> dict[str, str]:
    settings = get_settings()
    return {
        "version": settings.app_version,
        "environment": settings.environment,
        "reference_timezone": settings.reference_timezone,
    }
