"""Markdown data models, parsed and exported through ``mdmodels-core``.

The dashboard only needs three capabilities from a model definition: does it
parse, which objects does it declare, and what JSON Schema does a chosen root
object produce. They sit behind :class:`ModelParser` so the session and the
GitHub listing can be handed a different implementation.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Protocol

import structlog
from mdmodels_core import DataModel, Templates

from app.backend.src.core.errors import ModelParseError, SchemaGenerationError

LOGGER = structlog.get_logger(__name__)


class ModelParser(Protocol):
    """Pluggable markdown-model capability."""

    def parse(self, content: str) -> Any:
        ...

    def object_names(self, model: Any) -> list[str]:
        ...

    def to_json_schema(self, model: Any, root: str) -> str:
        ...


def enforce_strict(schema: Any) -> Any:
    """Close every object schema and mark all of its properties required.

    Structured outputs in strict mode reject optional or open objects.
    """
    if isinstance(schema, dict):
        for value in schema.values():
            enforce_strict(value)
        properties = schema.get("properties")
        if isinstance(properties, dict):
            schema["required"] = list(properties)
            schema["additionalProperties"] = False
    elif isinstance(schema, list):
        for item in schema:
            enforce_strict(item)
    return schema


class MdModelsParser:
    """Adapter over :class:`mdmodels_core.DataModel`."""

    def __init__(self, *, strict: bool = True) -> None:
        self.strict = strict

    def parse(self, content: str) -> DataModel:
        if not isinstance(content, str) or not content.strip():
            raise ModelParseError("Model definition is empty")
        try:
            model = DataModel.from_markdown_string(content)
        except Exception as exc:
            raise ModelParseError(str(exc)) from exc
        if not self.object_names(model):
            raise ModelParseError("Model defines no objects")
        return model

    def object_names(self, model: DataModel) -> list[str]:
        return [obj.name for obj in model.model.objects]

    def to_json_schema(self, model: DataModel, root: str) -> str:
        if root not in self.object_names(model):
            raise SchemaGenerationError(f"Object '{root}' not found in model")
        try:
            rendered = model.convert_to(Templates.JsonSchema, {"root": root})
        except Exception as exc:
            raise SchemaGenerationError(str(exc)) from exc

        schema = json.loads(rendered)
        if self.strict:
            enforce_strict(schema)
        return json.dumps(schema, indent=2)


DEFAULT_PARSER = MdModelsParser()


def get_model_objects(content: str, parser: ModelParser | None = None) -> list[str]:
    """Return the object names of a model, or ``[]`` when it does not parse."""
    active = parser or DEFAULT_PARSER
    try:
        model = active.parse(content)
    except ModelParseError as exc:
        LOGGER.debug("md_model_invalid", error=str(exc))
        return []
    return active.object_names(model)


def is_md_model(content: str, parser: ModelParser | None = None) -> bool:
    try:
        (parser or DEFAULT_PARSER).parse(content)
    except ModelParseError:
        return False
    return True


def get_json_schema(content: str, root: str, parser: ModelParser | None = None) -> str:
    """Parse ``content`` and render the JSON Schema rooted at ``root``."""
    active = parser or DEFAULT_PARSER
    return active.to_json_schema(active.parse(content), root)


def load_local_model(path: Path | str) -> str:
    """Read a locally uploaded model definition."""
    return Path(path).read_text(encoding="utf-8")


__all__ = [
    "DEFAULT_PARSER",
    "MdModelsParser",
    "ModelParser",
    "enforce_strict",
    "get_json_schema",
    "get_model_objects",
    "is_md_model",
    "load_local_model",
]
