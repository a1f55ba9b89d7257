"""Security helpers for the cookie token and the optional password wall."""

from __future__ import annotations

import hmac
import time
from typing import Any

import structlog
from fastapi import HTTPException, Request, status
from jose import JWTError, jwt

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import AuthConfigurationError, AuthenticationError

LOGGER = structlog.get_logger(__name__)

ALGORITHM = "HS256"
TOKEN_COOKIE = "token"


# -------------------------------------------------------
# Token Utilities
# -------------------------------------------------------

def _signing_secret() -> str:
    """Return the configured JWT secret or fail loudly."""
    secret = get_settings().jwt_secret
    if not secret:
        raise AuthConfigurationError("JWT_SECRET environment variable is not set")
    return secret


def generate_token(now: float | None = None) -> str:
    """Issue a signed token carrying only its issue timestamp."""
    settings = get_settings()
    issued_at = int(now if now is not None else time.time())
    claims: dict[str, Any] = {
        "issuedAt": issued_at,
        "exp": issued_at + settings.token_ttl_seconds,
    }
    return jwt.encode(claims, _signing_secret(), algorithm=ALGORITHM)


def verify_token(token: str | None) -> bool:
    """Return ``True`` when the token signature is valid and it has not expired."""
    secret = _signing_secret()
    if not token:
        return False
    try:
        jwt.decode(token, secret, algorithms=[ALGORITHM])
    except JWTError as exc:
        LOGGER.info("token_rejected", error=str(exc))
        return False
    return True


def get_token_from_cookies(cookie_header: str | None) -> str:
    """Extract the ``token`` value from a raw ``Cookie`` header."""
    for row in (cookie_header or "").split(";"):
        name, _, value = row.strip().partition("=")
        if name == TOKEN_COOKIE and value:
            return value
    raise AuthenticationError("Token not found in cookie")


def check_shared_secret(supplied: str | None) -> bool:
    """Compare a caller-supplied secret with the configured password wall."""
    if not supplied:
        return False
    expected = get_settings().shared_secret
    if not expected:
        return True
    return hmac.compare_digest(supplied.encode("utf-8"), expected.encode("utf-8"))


# -------------------------------------------------------
# FastAPI Dependency
# -------------------------------------------------------

def require_token(request: Request) -> str:
    """Dependency ensuring the request carries a valid token cookie."""
    try:
        token = get_token_from_cookies(request.headers.get("cookie"))
    except AuthenticationError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        ) from exc

    if not verify_token(token):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Unauthorized",
        )
    return token


__all__ = [
    "check_shared_secret",
    "generate_token",
    "get_token_from_cookies",
    "require_token",
    "verify_token",
]
