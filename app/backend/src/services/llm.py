"""Background-mode job submission against the OpenAI Responses API."""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Iterable, Sequence

import structlog
from openai import OpenAI, OpenAIError

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import (
    ProviderConfigurationError,
    ProviderError,
    RequestValidationError,
    UnsupportedFileTypeError,
)
from app.backend.src.schemas.upload import FileReference, UploadedFileInfo

from .prompts import (
    build_evaluation_instructions,
    build_extract_instructions,
    build_graph_instructions,
)
from .schemas import (
    KNOWLEDGE_GRAPH_SCHEMA,
    build_envelope_schema,
    json_schema_format,
    load_schema,
)

LOGGER = structlog.get_logger(__name__)

WEB_SEARCH_TOOL = {"type": "web_search_preview"}

_OPENAI_CLIENT: OpenAI | None = None
_OPENAI_CLIENT_KEY: tuple[str, str | None] | None = None


@dataclass(frozen=True)
class PendingUpload:
    """A file received from the caller that has not reached the provider yet."""

    field_name: str
    filename: str
    content_type: str
    data: bytes

    @property
    def size(self) -> int:
        return len(self.data)


def resolve_api_key(user_api_key: str | None = None) -> str:
    """Prefer a caller-supplied key, falling back to ``OPENAI_API_KEY``."""
    if user_api_key:
        return user_api_key
    api_key = get_settings().openai_api_key
    if not api_key:
        raise ProviderConfigurationError(
            "OPENAI_API_KEY is not set in the environment variables."
        )
    return api_key


def get_openai_client(api_key: str | None = None) -> OpenAI:
    """Return a cached OpenAI client, pointed at ``OLLAMA_URL`` when configured."""
    global _OPENAI_CLIENT, _OPENAI_CLIENT_KEY
    settings = get_settings()
    resolved = resolve_api_key(api_key)
    cache_key = (resolved, settings.ollama_url)
    if _OPENAI_CLIENT is None or cache_key != _OPENAI_CLIENT_KEY:
        if settings.ollama_url:
            _OPENAI_CLIENT = OpenAI(api_key=resolved, base_url=settings.ollama_url)
        else:
            _OPENAI_CLIENT = OpenAI(api_key=resolved)
        _OPENAI_CLIENT_KEY = cache_key
    return _OPENAI_CLIENT


def is_reasoning_model(model: str) -> bool:
    return model.startswith(get_settings().reasoning_model_prefixes)


def _resolve_model(model: str | None) -> str:
    return model or get_settings().llm_model


def _model_options(model: str) -> dict[str, Any]:
    """Reasoning models reject ``temperature`` and get no tools."""
    if is_reasoning_model(model):
        return {"model": model, "tools": []}
    return {"model": model, "tools": [WEB_SEARCH_TOOL], "temperature": 0.0}


def assemble_content(text: str, file_references: Iterable[FileReference]) -> list[dict[str, Any]]:
    """Build the user message content: attachments first, then the prompt text."""
    content: list[dict[str, Any]] = []
    for reference in file_references:
        if reference.input_type == "input_file":
            content.append({"type": "input_file", "file_id": reference.openai_file_id})
        else:
            content.append(
                {"type": "input_image", "detail": "auto", "file_id": reference.openai_file_id}
            )
    content.append({"type": "input_text", "text": text})
    return content


def _require_text(value: str | None, field: str) -> str:
    if not isinstance(value, str) or not value.strip():
        raise RequestValidationError(f"{field} is required")
    return value


def _submit(kind: str, api_key: str | None, **params: Any) -> str:
    client = get_openai_client(api_key)
    try:
        response = client.responses.create(background=True, **params)
    except OpenAIError as exc:
        LOGGER.error("provider_submit_failed", kind=kind, model=params.get("model"), error=str(exc))
        raise ProviderError(str(exc)) from exc

    LOGGER.info("provider_job_submitted", kind=kind, model=params.get("model"), response_id=response.id)
    return response.id


def evaluate_schema_prompt(
    text: str,
    schema: str,
    *,
    system_prompt: str | None = "",
    file_references: Sequence[FileReference] = (),
    model: str | None = None,
    api_key: str | None = None,
) -> str:
    """Submit a schema-fit evaluation and return the provider job id."""
    _require_text(text, "text")
    _require_text(schema, "schema")
    model_name = _resolve_model(model)

    return _submit(
        "evaluation",
        api_key,
        input=[{"role": "user", "content": assemble_content(text, file_references)}],
        instructions=build_evaluation_instructions(system_prompt or "", schema),
        **_model_options(model_name),
    )


def create_knowledge_graph(
    prompt: str,
    *,
    file_references: Sequence[FileReference] = (),
    model: str | None = None,
    api_key: str | None = None,
) -> str:
    """Submit a knowledge-graph extraction and return the provider job id."""
    _require_text(prompt, "prompt")
    model_name = _resolve_model(model)

    return _submit(
        "graph",
        api_key,
        input=[{"role": "user", "content": assemble_content(prompt, file_references)}],
        instructions=build_graph_instructions(prompt),
        text=json_schema_format(KNOWLEDGE_GRAPH_SCHEMA),
        **_model_options(model_name),
    )


def extract_to_schema(
    schema: str,
    text: str,
    multiple_outputs: bool = False,
    *,
    system_prompt: str | None = "",
    file_references: Sequence[FileReference] = (),
    model: str | None = None,
    api_key: str | None = None,
) -> str:
    """Submit a schema-conformant extraction and return the provider job id."""
    _require_text(text, "text")
    schema_obj = load_schema(schema)
    if multiple_outputs:
        schema_obj = build_envelope_schema(schema_obj)
    model_name = _resolve_model(model)

    return _submit(
        "extraction",
        api_key,
        input=[{"role": "user", "content": assemble_content(text, file_references)}],
        instructions=build_extract_instructions(system_prompt or ""),
        text=json_schema_format(schema_obj),
        **_model_options(model_name),
    )


def _to_plain(value: Any) -> Any:
    """Convert SDK objects into JSON-compatible structures."""
    if hasattr(value, "model_dump"):
        return value.model_dump(mode="json", exclude_none=True)
    if isinstance(value, (dict, list, str, int, float, bool)) or value is None:
        return value
    return json.loads(json.dumps(value, default=str))


def poll_response(response_id: str, *, api_key: str | None = None) -> dict[str, Any]:
    """Return ``{"completed": False}`` or the completed job's output records."""
    _require_text(response_id, "responseId")
    client = get_openai_client(api_key)
    try:
        response = client.responses.retrieve(response_id)
    except OpenAIError as exc:
        LOGGER.error("provider_poll_failed", response_id=response_id, error=str(exc))
        raise ProviderError(str(exc)) from exc

    status = getattr(response, "status", None)
    if status != "completed":
        LOGGER.debug("provider_job_pending", response_id=response_id, status=status)
        return {"completed": False}

    output = [_to_plain(item) for item in (getattr(response, "output", None) or [])]
    return {"completed": True, "output": output}


def list_available_models(*, api_key: str | None = None) -> list[dict[str, Any]]:
    """Return the provider's model list as plain dictionaries."""
    client = get_openai_client(api_key)
    try:
        models = client.models.list()
    except OpenAIError as exc:
        LOGGER.error("provider_models_failed", error=str(exc))
        raise ProviderError(str(exc)) from exc
    return [_to_plain(model) for model in models]


def classify_upload(content_type: str | None) -> tuple[str, str]:
    """Map a MIME type to the provider purpose and the model input type."""
    if content_type == "application/pdf":
        return "user_data", "input_file"
    if content_type and content_type.startswith("image/"):
        return "vision", "input_image"
    raise UnsupportedFileTypeError(f"Unsupported file type: {content_type}")


def _upload_one(client: OpenAI, upload: PendingUpload) -> UploadedFileInfo:
    purpose, input_type = classify_upload(upload.content_type)
    try:
        created = client.files.create(
            file=(upload.filename, upload.data, upload.content_type),
            purpose=purpose,
        )
    except OpenAIError as exc:
        LOGGER.error("provider_upload_failed", filename=upload.filename, error=str(exc))
        raise ProviderError(str(exc)) from exc

    LOGGER.info(
        "provider_file_uploaded",
        filename=upload.filename,
        file_id=created.id,
        input_type=input_type,
        size=upload.size,
    )
    return UploadedFileInfo(
        id=upload.field_name.removeprefix("file_"),
        openai_file_id=created.id,
        input_type=input_type,
        name=upload.filename,
        type=upload.content_type,
        size=upload.size,
    )


async def upload_files(
    uploads: Sequence[PendingUpload], *, api_key: str | None = None
) -> list[UploadedFileInfo]:
    """Upload every file concurrently once all of them passed type checks."""
    for upload in uploads:
        classify_upload(upload.content_type)
    if not uploads:
        return []

    client = get_openai_client(api_key)
    return list(
        await asyncio.gather(
            *(asyncio.to_thread(_upload_one, client, upload) for upload in uploads)
        )
    )


__all__ = [
    "PendingUpload",
    "assemble_content",
    "classify_upload",
    "create_knowledge_graph",
    "evaluate_schema_prompt",
    "extract_to_schema",
    "get_openai_client",
    "is_reasoning_model",
    "list_available_models",
    "poll_response",
    "resolve_api_key",
    "upload_files",
]
