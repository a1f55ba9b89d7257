"""JSON Schema helpers for structured provider output."""

from __future__ import annotations

import copy
import json
from typing import Any, Mapping

from app.backend.src.core.errors import RequestValidationError

KNOWLEDGE_GRAPH_SCHEMA: dict[str, Any] = {
    "type": "object",
    "description": "The knowledge graph representation of the given text.",
    "properties": {
        "triplets": {
            "type": "array",
            "description": "The triplets of the graph.",
            "items": {
                "type": "object",
                "properties": {
                    "subject": {"type": "string", "description": "The subject of the triplet."},
                    "predicate": {"type": "string", "description": "The predicate of the triplet."},
                    "object": {"type": "string", "description": "The object of the triplet."},
                },
                "required": ["subject", "predicate", "object"],
                "additionalProperties": False,
            },
        }
    },
    "required": ["triplets"],
    "additionalProperties": False,
}


def load_schema(raw: str) -> dict[str, Any]:
    """Parse a caller-supplied JSON Schema string into an object."""
    if not isinstance(raw, str) or not raw.strip():
        raise RequestValidationError("schema is required")
    try:
        parsed = json.loads(raw)
    except json.JSONDecodeError as exc:
        raise RequestValidationError(f"schema is not valid JSON: {exc.msg}") from exc
    if not isinstance(parsed, dict):
        raise RequestValidationError("schema must be a JSON object")
    return parsed


def build_envelope_schema(schema: Mapping[str, Any]) -> dict[str, Any]:
    """Wrap a schema in an ``items`` array so one job can return many instances.

    Shared ``$defs`` cannot stay nested inside the array item, so they are lifted
    onto the envelope. The input mapping is left untouched.
    """
    item = copy.deepcopy(dict(schema))
    definitions = item.pop("$defs", None)

    envelope: dict[str, Any] = {
        "type": "object",
        "properties": {
            "items": {
                "type": "array",
                "items": item,
            },
        },
    }
    if definitions is not None:
        envelope["$defs"] = definitions
    envelope["additionalProperties"] = False
    envelope["required"] = ["items"]
    return envelope


def json_schema_format(schema: Mapping[str, Any], *, name: str = "response") -> dict[str, Any]:
    """Return the Responses API ``text`` parameter requesting strict JSON output."""
    return {
        "format": {
            "type": "json_schema",
            "name": name,
            "strict": True,
            "schema": dict(schema),
        }
    }


__all__ = [
    "KNOWLEDGE_GRAPH_SCHEMA",
    "build_envelope_schema",
    "json_schema_format",
    "load_schema",
]
