"""Health check endpoints."""

from __future__ import annotations

from fastapi import APIRouter

from app.backend.src.core.config import get_settings

router = APIRouter(tags=["health"])


@router.get("/health/live")
def liveness() -> dict[str, str]:
    """Return a liveness indicator."""

    return {"status": "live"}


@router.get("/health/ready")
def readiness() -> dict[str, object]:
    """Report whether the secrets the API depends on are configured."""

    settings = get_settings()
    checks = {
        "jwt_secret": bool(settings.jwt_secret),
        "openai_api_key": bool(settings.openai_api_key),
    }
    return {"status": "ready" if all(checks.values()) else "degraded", "checks": checks}
