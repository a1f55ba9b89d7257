"""Endpoints that submit background jobs and report their status."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from app.backend.src.core.security import require_token
from app.backend.src.schemas.jobs import (
    EvaluationRequest,
    ExtractRequest,
    GraphRequest,
    PollRequest,
    PollResponse,
    SubmitResponse,
)
from app.backend.src.services import llm

from .deps import call_provider

router = APIRouter(tags=["jobs"], dependencies=[Depends(require_token)])


@router.post("/evaluate", response_model=SubmitResponse)
async def evaluate(request: EvaluationRequest) -> SubmitResponse:
    """Submit a schema-fit evaluation for the given text."""

    response_id = await call_provider(
        "Evaluation failed",
        llm.evaluate_schema_prompt,
        request.text,
        request.schema_,
        system_prompt=request.system_prompt,
        file_references=request.file_references,
        model=request.model,
        api_key=request.api_key,
    )
    return SubmitResponse(response_id=response_id)


@router.post("/graph", response_model=SubmitResponse)
async def graph(request: GraphRequest) -> SubmitResponse:
    """Submit a knowledge-graph extraction for the given prompt."""

    response_id = await call_provider(
        "Error generating response",
        llm.create_knowledge_graph,
        request.prompt,
        file_references=request.file_references,
        model=request.model,
        api_key=request.api_key,
    )
    return SubmitResponse(response_id=response_id)


@router.post("/extract", response_model=SubmitResponse)
async def extract(request: ExtractRequest) -> SubmitResponse:
    """Submit an extraction of the text into the caller's schema."""

    response_id = await call_provider(
        "Extraction failed",
        llm.extract_to_schema,
        request.schema_,
        request.text,
        request.multiple_outputs,
        system_prompt=request.system_prompt,
        file_references=request.file_references,
        model=request.model,
        api_key=request.api_key,
    )
    return SubmitResponse(response_id=response_id)


@router.post("/poll", response_model=PollResponse, response_model_exclude_none=True)
async def poll(request: PollRequest) -> PollResponse:
    """Return whether a job finished, with its output once it has."""

    result = await call_provider(
        "Poll failed", llm.poll_response, request.response_id, api_key=request.api_key
    )
    return PollResponse(**result)
