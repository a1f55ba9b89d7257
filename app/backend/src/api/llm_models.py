"""Provider model listing."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends

from app.backend.src.core.security import require_token
from app.backend.src.services import llm

from .deps import call_provider

router = APIRouter(tags=["models"], dependencies=[Depends(require_token)])


@router.post("/models")
async def list_models() -> dict[str, Any]:
    """Pass through the provider's list of available models."""

    models = await call_provider("Models failed", llm.list_available_models)
    return {"object": "list", "data": models}
