"""Request and response bodies for job submission and polling."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from .upload import FileReference


class _SubmitRequest(BaseModel):
    file_references: list[FileReference] = Field(default_factory=list)
    model: str | None = None
    api_key: str | None = None


class EvaluationRequest(_SubmitRequest):
    text: str
    schema_: str = Field(alias="schema")
    system_prompt: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class GraphRequest(_SubmitRequest):
    prompt: str


class ExtractRequest(_SubmitRequest):
    text: str
    schema_: str = Field(alias="schema")
    multiple_outputs: bool = False
    system_prompt: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class PollRequest(BaseModel):
    response_id: str = Field(alias="responseId", min_length=1)
    api_key: str | None = None

    model_config = ConfigDict(populate_by_name=True)


class SubmitResponse(BaseModel):
    response_id: str = Field(serialization_alias="responseId")


class PollResponse(BaseModel):
    completed: bool
    output: list[Any] | None = None
