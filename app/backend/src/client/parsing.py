"""Turn completed job output into the shapes the dashboard renders."""

from __future__ import annotations

from typing import Any, Mapping

import structlog

from app.backend.src.schemas.graph import KnowledgeGraph, SchemaEvaluation

LOGGER = structlog.get_logger(__name__)

FIT_MARKER = "<FIT>"
UNFIT_MARKER = "<UNFIT>"


def _field(item: Any, name: str) -> Any:
    if isinstance(item, Mapping):
        return item.get(name)
    return getattr(item, name, None)


def select_message(output: Any) -> Any | None:
    """Pick the assistant message from a job's output records.

    Falls back to the first record when none is marked as an assistant message.
    """
    if not isinstance(output, (list, tuple)) or not output:
        return None
    for record in output:
        if _field(record, "role") == "assistant" or _field(record, "type") == "message":
            return record
    return output[0]


def extract_output_text(output: Any) -> str | None:
    """Return the first content item's text of the selected message, if any."""
    record = select_message(output)
    if record is None:
        return None
    contents = _field(record, "content")
    if not isinstance(contents, (list, tuple)) or not contents:
        return None
    text = _field(contents[0], "text")
    return text if isinstance(text, str) else None


def parse_evaluation(text: str) -> SchemaEvaluation:
    """Split the evaluation report on its trailing fit marker."""
    if UNFIT_MARKER in text:
        return SchemaEvaluation(fits=False, reason=text.replace(UNFIT_MARKER, "").strip())
    if FIT_MARKER in text:
        return SchemaEvaluation(fits=True, reason=text.replace(FIT_MARKER, "").strip())
    LOGGER.warning("evaluation_marker_missing", preview=text[:200])
    return SchemaEvaluation(fits=False, reason=text.strip())


def parse_knowledge_graph(payload: Any) -> KnowledgeGraph:
    if not payload:
        return KnowledgeGraph()
    return KnowledgeGraph.model_validate(payload)


__all__ = [
    "FIT_MARKER",
    "UNFIT_MARKER",
    "extract_output_text",
    "parse_evaluation",
    "parse_knowledge_graph",
    "select_message",
]
