"""Script-friendly controller that mirrors the dashboard form.

A :class:`DashboardSession` keeps the same fields the browser form keeps
(repository, model file, root object, preprompt and input text) in a
:class:`~app.backend.src.core.state_store.StateStore`, resolves the selected
markdown model into a JSON Schema and drives one evaluation, knowledge-graph
and extraction round trip against the API.
"""

from __future__ import annotations

import asyncio
import json
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Awaitable, Iterable, Sequence

import httpx
import structlog
from pydantic import BaseModel

from app.backend.src.core.errors import RequestValidationError
from app.backend.src.core.state_store import InMemoryStateStore, StateStore
from app.backend.src.schemas.graph import KnowledgeGraph, SchemaEvaluation
from app.backend.src.schemas.upload import UploadedFileInfo
from app.backend.src.services import github, mdmodels
from app.backend.src.services.mdmodels import ModelParser

from .api import Attachment, DashboardClient
from .parsing import parse_evaluation, parse_knowledge_graph
from .poller import PollingConfig, Sleeper

LOGGER = structlog.get_logger(__name__)

DEFAULT_REPOSITORY = "Strenda-biocatalysis/Strenda-biocatalysis"

GITHUB_URL_KEY = "githubUrl"
SELECTED_PATH_KEY = "selectedPath"
SELECTED_OPTION_KEY = "selectedOption"
PREPROMPT_KEY = "preprompt"
TEXT_KEY = "leftPanelText"

STATE_KEYS = (GITHUB_URL_KEY, SELECTED_PATH_KEY, SELECTED_OPTION_KEY, PREPROMPT_KEY, TEXT_KEY)


@dataclass
class ResponseFeatures:
    """Which of the three responses a run asks for."""

    evaluation: bool = True
    graph: bool = True
    extraction: bool = True
    multiple_outputs: bool = False

    def any_enabled(self) -> bool:
        return self.evaluation or self.graph or self.extraction


async def gather_or_cancel(aws: Iterable[Awaitable[Any]]) -> list[Any]:
    """Await ``aws`` concurrently; on the first failure cancel and drain the rest."""
    tasks = [asyncio.ensure_future(aw) for aw in aws]
    try:
        return await asyncio.gather(*tasks)
    except BaseException:
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        raise


class DashboardResult(BaseModel):
    evaluation: SchemaEvaluation | None = None
    graph: KnowledgeGraph | None = None
    data: Any = None


class DashboardSession:
    def __init__(
        self,
        client: DashboardClient,
        store: StateStore | None = None,
        *,
        parser: ModelParser | None = None,
        poller_config: PollingConfig | None = None,
        sleep: Sleeper = asyncio.sleep,
        http: httpx.AsyncClient | None = None,
    ) -> None:
        self.client = client
        self.store = store or InMemoryStateStore()
        self.parser = parser or mdmodels.DEFAULT_PARSER
        self.poller_config = poller_config or PollingConfig()
        self.sleep = sleep
        self.http = http

        self.model_content = ""
        self.options: list[str] = []
        self.uploaded: list[UploadedFileInfo] = []
        self.result = DashboardResult()

    # -------------------------------------------------------
    # Persisted form state
    # -------------------------------------------------------

    def _load(self, key: str, default: Any = None) -> Any:
        value = self.store.load(key)
        return default if value in (None, "") else value

    @property
    def github_url(self) -> str:
        return self._load(GITHUB_URL_KEY, DEFAULT_REPOSITORY)

    @github_url.setter
    def github_url(self, value: str) -> None:
        self.store.save(GITHUB_URL_KEY, value)

    @property
    def selected_path(self) -> str:
        return self._load(SELECTED_PATH_KEY, "")

    @property
    def selected_option(self) -> str | None:
        return self._load(SELECTED_OPTION_KEY)

    @selected_option.setter
    def selected_option(self, value: str) -> None:
        self.store.save(SELECTED_OPTION_KEY, value)

    @property
    def preprompt(self) -> str:
        return self._load(PREPROMPT_KEY, "")

    @preprompt.setter
    def preprompt(self, value: str) -> None:
        self.store.save(PREPROMPT_KEY, value)

    @property
    def text(self) -> str:
        return self._load(TEXT_KEY, "")

    @text.setter
    def text(self, value: str) -> None:
        self.store.save(TEXT_KEY, value)

    def state(self) -> dict[str, Any]:
        return {key: self.store.load(key) for key in STATE_KEYS}

    # -------------------------------------------------------
    # Model selection
    # -------------------------------------------------------

    def repository(self) -> str:
        """Return the stored repository as ``user/repo``, normalising URLs in place."""
        repository = github.normalize_repository(self.github_url)
        if repository != self.github_url:
            self.github_url = repository
        return repository

    async def available_model_files(self) -> list[str]:
        return await github.list_model_files(self.repository(), parser=self.parser, client=self.http)

    def _use_model(self, content: str) -> list[str]:
        self.model_content = content
        self.options = mdmodels.get_model_objects(content, self.parser)
        if self.options and self.selected_option not in self.options:
            self.selected_option = self.options[0]
        return self.options

    async def select_path(self, path: str) -> list[str]:
        """Fetch ``path`` from the repository and return its object names."""
        content = await github.fetch_from_github(self.repository(), path, client=self.http)
        self.store.save(SELECTED_PATH_KEY, path)
        objects = self._use_model(content)
        LOGGER.info("dashboard_model_selected", path=path, objects=len(objects))
        return objects

    def use_local_model(self, path: Path | str) -> list[str]:
        return self._use_model(mdmodels.load_local_model(path))

    def schema(self) -> str:
        root = self.selected_option
        if not self.model_content or not root:
            raise RequestValidationError("Select a model and a root object first")
        return mdmodels.get_json_schema(self.model_content, root, self.parser)

    # -------------------------------------------------------
    # Runs
    # -------------------------------------------------------

    async def run(
        self,
        attachments: Sequence[Attachment] = (),
        *,
        features: ResponseFeatures | None = None,
        model: str | None = None,
    ) -> DashboardResult:
        """Upload, submit the enabled jobs together, then poll each to completion.

        Any failure cancels the sibling submissions or polls still in flight,
        waits for them to settle and clears the partial result before it propagates.
        """
        features = features or ResponseFeatures()
        if not features.any_enabled():
            raise RequestValidationError("Enable at least one response feature")

        self.result = DashboardResult()
        try:
            result = await self._run(attachments, features, model)
        except Exception as exc:
            self.result = DashboardResult()
            LOGGER.error("dashboard_run_failed", error=str(exc), kind=type(exc).__name__)
            raise
        self.result = result
        return result

    async def _run(
        self, attachments: Sequence[Attachment], features: ResponseFeatures, model: str | None
    ) -> DashboardResult:
        text = self.text
        schema = self.schema() if features.evaluation or features.extraction else ""

        self.uploaded = await self.client.upload_files(list(attachments))
        references = self.uploaded

        submissions: dict[str, Any] = {}
        if features.evaluation:
            submissions["evaluation"] = self.client.evaluate(
                text, schema, system_prompt=self.preprompt, file_references=references, model=model
            )
        if features.graph:
            submissions["graph"] = self.client.graph(text, file_references=references, model=model)
        if features.extraction:
            submissions["extraction"] = self.client.extract(
                text,
                schema,
                features.multiple_outputs,
                system_prompt=self.preprompt,
                file_references=references,
                model=model,
            )

        job_ids = dict(zip(submissions, await gather_or_cancel(submissions.values())))
        LOGGER.info("dashboard_jobs_submitted", jobs=sorted(job_ids))

        poller = self.client.poller(self.poller_config, self.sleep)
        payloads = dict(
            zip(
                job_ids,
                await gather_or_cancel(
                    (
                        poller.poll_for_completion(job_id, parse_as_json=name != "evaluation")
                        for name, job_id in job_ids.items()
                    )
                ),
            )
        )

        result = DashboardResult()
        if "evaluation" in payloads:
            result.evaluation = parse_evaluation(payloads["evaluation"])
        if "graph" in payloads:
            result.graph = parse_knowledge_graph(payloads["graph"])
        if "extraction" in payloads:
            result.data = payloads["extraction"]
        return result

    def download_json(self, path: Path | str) -> Path:
        """Write the extracted data as indented JSON and return the path."""
        data = self.result.data if self.result.data is not None else {}
        target = Path(path)
        target.write_text(json.dumps(data, indent=2), encoding="utf-8")
        return target


__all__ = [
    "DEFAULT_REPOSITORY",
    "STATE_KEYS",
    "DashboardResult",
    "DashboardSession",
    "ResponseFeatures",
    "gather_or_cancel",
]
