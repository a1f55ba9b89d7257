"""Token issuance and the shared-secret password wall."""

from __future__ import annotations

import structlog
from fastapi import APIRouter, HTTPException, Query, status
from fastapi.responses import PlainTextResponse

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import DashboardError
from app.backend.src.core.security import TOKEN_COOKIE, check_shared_secret, generate_token

LOGGER = structlog.get_logger(__name__)

router = APIRouter(tags=["auth"])


@router.get("/auth", response_class=PlainTextResponse)
def issue_token() -> PlainTextResponse:
    """Issue a fresh token and set it as an HttpOnly cookie."""

    try:
        token = generate_token()
    except DashboardError as exc:
        LOGGER.error("token_generation_failed", error=exc.message)
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            detail="Error generating token",
        ) from exc

    response = PlainTextResponse("Token created and set in cookie")
    response.set_cookie(
        TOKEN_COOKIE,
        token,
        max_age=get_settings().token_ttl_seconds,
        path="/",
        httponly=True,
    )
    return response


@router.post("/login", response_class=PlainTextResponse)
def login(secret: str | None = Query(default=None)) -> PlainTextResponse:
    """Validate the caller's secret against the configured password wall."""

    if not check_shared_secret(secret):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return PlainTextResponse("Authorized")
