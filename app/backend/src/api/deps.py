"""Shared helpers for routes that call the LLM provider."""

from __future__ import annotations

import asyncio
from typing import Any, Callable, TypeVar

import structlog
from fastapi import HTTPException, status

from app.backend.src.core.errors import DashboardError

LOGGER = structlog.get_logger(__name__)

T = TypeVar("T")


def provider_failure(prefix: str, exc: Exception) -> HTTPException:
    """Translate a provider-side failure into a 500 with the message attached."""
    message = exc.message if isinstance(exc, DashboardError) else str(exc)
    LOGGER.error("provider_call_failed", prefix=prefix, error=message)
    return HTTPException(
        status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
        detail=f"{prefix}: {message}",
    )


async def call_provider(prefix: str, func: Callable[..., T], *args: Any, **kwargs: Any) -> T:
    """Run a blocking provider call off the event loop.

    Client errors (4xx) propagate untouched; everything else becomes a 500
    whose message starts with ``prefix``.
    """
    try:
        return await asyncio.to_thread(func, *args, **kwargs)
    except DashboardError as exc:
        if exc.status_code < 500:
            raise
        raise provider_failure(prefix, exc) from exc
    except Exception as exc:
        raise provider_failure(prefix, exc) from exc


__all__ = ["call_provider", "provider_failure"]
