"""File upload endpoint."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, Request, status
from starlette.datastructures import UploadFile

from app.backend.src.core.security import require_token
from app.backend.src.schemas.upload import UploadResponse
from app.backend.src.services import llm

from .deps import provider_failure

router = APIRouter(tags=["uploads"], dependencies=[Depends(require_token)])


async def _collect_uploads(request: Request) -> tuple[list[llm.PendingUpload], str | None]:
    form = await request.form()
    uploads: list[llm.PendingUpload] = []
    api_key: str | None = None
    for key, value in form.multi_items():
        if key == "api_key" and isinstance(value, str):
            api_key = value or None
            continue
        if not key.startswith("file_") or not isinstance(value, UploadFile):
            continue
        uploads.append(
            llm.PendingUpload(
                field_name=key,
                filename=value.filename or key,
                content_type=value.content_type or "application/octet-stream",
                data=await value.read(),
            )
        )
    return uploads, api_key


@router.post("/upload-files", response_model=UploadResponse)
async def upload_files(request: Request) -> UploadResponse:
    """Upload PDFs and images to the provider and return their file references."""

    content_type = request.headers.get("content-type") or ""
    if "multipart/form-data" not in content_type:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Content-Type must be multipart/form-data",
        )

    try:
        uploads, api_key = await _collect_uploads(request)
        files = await llm.upload_files(uploads, api_key=api_key)
    except Exception as exc:
        raise provider_failure("File upload failed", exc) from exc

    return UploadResponse(files=files)
