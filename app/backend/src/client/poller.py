"""Polling loop that waits for background provider jobs to finish.

Each status check yields a tagged outcome (:class:`Pending`,
:class:`Completed` or :class:`Failed`). The loop only ever retries on
``Pending``; a ``Failed`` outcome ends polling immediately, and running out
of attempts raises :class:`PollingTimeoutError`.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Mapping, Union

import structlog
from pydantic import BaseModel, Field

from app.backend.src.services import llm

from .parsing import extract_output_text

LOGGER = structlog.get_logger(__name__)

StatusFetcher = Callable[[str], Awaitable[Mapping[str, Any]]]
Sleeper = Callable[[float], Awaitable[Any]]


class PollingError(Exception):
    """Base class for failures raised by the poller itself."""


class PollingTimeoutError(PollingError):
    """The job was still pending after every allowed attempt."""

    def __init__(self, job_id: str, attempts: int) -> None:
        super().__init__(f"Polling timeout: job {job_id} not completed after {attempts} attempts")
        self.job_id = job_id
        self.attempts = attempts


class PayloadParseError(PollingError):
    """A completed job's text could not be parsed as JSON."""


class PollingConfig(BaseModel):
    initial_delay: float = Field(default=0.5, gt=0)
    max_delay: float = Field(default=10.0, gt=0)
    backoff_factor: float = Field(default=2.0, ge=1)
    max_attempts: int = Field(default=50, ge=1)

    def delay_for(self, retry_index: int) -> float:
        """Seconds to wait before retry number ``retry_index`` (zero based)."""
        return min(self.initial_delay * self.backoff_factor**retry_index, self.max_delay)

    def worst_case_delay(self) -> float:
        """Total seconds slept when every attempt comes back pending."""
        return sum(self.delay_for(n) for n in range(self.max_attempts - 1))


@dataclass(frozen=True)
class Pending:
    kind = "pending"


@dataclass(frozen=True)
class Completed:
    payload: Any
    kind = "completed"


@dataclass(frozen=True)
class Failed:
    error: Exception
    kind = "failed"


PollOutcome = Union[Pending, Completed, Failed]


@dataclass(frozen=True)
class PollAttempt:
    number: int
    delay: float
    outcome: str


def _empty_result(parse_as_json: bool) -> Any:
    return {} if parse_as_json else ""


def interpret_status(status: Mapping[str, Any], parse_as_json: bool) -> PollOutcome:
    """Map one status response onto a tagged outcome."""
    if not status.get("completed"):
        return Pending()

    text = extract_output_text(status.get("output"))
    if text is None:
        LOGGER.warning("poll_completed_without_text")
        return Completed(_empty_result(parse_as_json))
    if not parse_as_json:
        return Completed(text)
    try:
        return Completed(json.loads(text))
    except json.JSONDecodeError as exc:
        return Failed(PayloadParseError(f"Completed job returned invalid JSON: {exc.msg}"))


async def check_status(
    job_id: str, parse_as_json: bool, fetch_status: StatusFetcher
) -> PollOutcome:
    try:
        status = await fetch_status(job_id)
    except Exception as exc:
        return Failed(exc)
    return interpret_status(status, parse_as_json)


async def poll_for_completion(
    job_id: str,
    parse_as_json: bool = False,
    *,
    fetch_status: StatusFetcher,
    config: PollingConfig | None = None,
    sleep: Sleeper = asyncio.sleep,
    on_attempt: Callable[[PollAttempt], None] | None = None,
) -> Any:
    """Poll ``job_id`` until it completes and return its text or parsed JSON."""
    if not job_id:
        raise PollingError("job id is required")
    config = config or PollingConfig()

    delay = 0.0
    for number in range(1, config.max_attempts + 1):
        outcome = await check_status(job_id, parse_as_json, fetch_status)
        if on_attempt is not None:
            on_attempt(PollAttempt(number=number, delay=delay, outcome=outcome.kind))

        if isinstance(outcome, Completed):
            LOGGER.info("poll_completed", job_id=job_id, attempts=number)
            return outcome.payload
        if isinstance(outcome, Failed):
            LOGGER.warning("poll_failed", job_id=job_id, attempts=number, error=str(outcome.error))
            raise outcome.error

        if number == config.max_attempts:
            break
        delay = config.delay_for(number - 1)
        await sleep(delay)

    LOGGER.warning("poll_timeout", job_id=job_id, attempts=config.max_attempts)
    raise PollingTimeoutError(job_id, config.max_attempts)


class Poller:
    """Binds a status source and retry policy for repeated use."""

    def __init__(
        self,
        fetch_status: StatusFetcher,
        *,
        config: PollingConfig | None = None,
        sleep: Sleeper = asyncio.sleep,
    ) -> None:
        self.fetch_status = fetch_status
        self.config = config or PollingConfig()
        self.sleep = sleep

    async def poll_for_completion(self, job_id: str, parse_as_json: bool = False) -> Any:
        return await poll_for_completion(
            job_id,
            parse_as_json,
            fetch_status=self.fetch_status,
            config=self.config,
            sleep=self.sleep,
        )


def provider_status_fetcher(api_key: str | None = None) -> StatusFetcher:
    """Status source that asks the provider directly instead of going through HTTP."""

    async def _fetch(job_id: str) -> Mapping[str, Any]:
        return await asyncio.to_thread(llm.poll_response, job_id, api_key=api_key)

    return _fetch


__all__ = [
    "Completed",
    "Failed",
    "Pending",
    "PayloadParseError",
    "PollAttempt",
    "Poller",
    "PollingConfig",
    "PollingError",
    "PollingTimeoutError",
    "check_status",
    "interpret_status",
    "poll_for_completion",
    "provider_status_fetcher",
]
