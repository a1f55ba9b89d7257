"""Public API routers exposed by the FastAPI application."""

from . import (
    auth,
    health,
    jobs,
    llm_models,
    uploads,
)

__all__ = [
    "auth",
    "health",
    "jobs",
    "llm_models",
    "uploads",
]
