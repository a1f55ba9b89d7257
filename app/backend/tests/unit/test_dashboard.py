"""End-to-end tests for the dashboard client against the FastAPI app."""

from __future__ import annotations

import asyncio
import json
import os
import sys
from collections import Counter
from pathlib import Path
from types import SimpleNamespace
from typing import Any

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

import httpx
import pytest

from app.backend.src.client import (
    ApiError,
    Attachment,
    DashboardClient,
    DashboardSession,
    PollingConfig,
    ResponseFeatures,
)
from app.backend.src.client.dashboard import gather_or_cancel
from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import ProviderError, RequestValidationError
from app.backend.src.core.state_store import InMemoryStateStore
from app.backend.src.main import app
from app.backend.src.services import llm

MODEL_MARKDOWN = """# People

### Person

- __name__
  - Type: string
- age
  - Type: integer
"""

COMPLETED_TEXT = {
    "resp_eval": "The text describes a person. <FIT>",
    "resp_graph": json.dumps(
        {"triplets": [{"subject": "Alice", "predicate": "hasAge", "object": "30"}]}
    ),
    "resp_extract": json.dumps({"name": "Alice", "age": 30}),
}


def _github_handler(request: httpx.Request) -> httpx.Response:
    if request.url.path == "/user/repo/main/people.md":
        return httpx.Response(200, text=MODEL_MARKDOWN)
    return httpx.Response(404, text="404: Not Found")


class _FakeProvider:
    """Stands in for the provider calls behind each route."""

    def __init__(self) -> None:
        self.submitted: dict[str, dict[str, Any]] = {}
        self.polls: Counter[str] = Counter()
        self.fail_poll: str | None = None

    def evaluate(self, text: str, schema: str, **kwargs: Any) -> str:
        self.submitted["evaluation"] = {"text": text, "schema": schema, **kwargs}
        return "resp_eval"

    def graph(self, prompt: str, **kwargs: Any) -> str:
        self.submitted["graph"] = {"prompt": prompt, **kwargs}
        return "resp_graph"

    def extract(self, schema: str, text: str, multiple_outputs: bool = False, **kwargs: Any) -> str:
        self.submitted["extraction"] = {"schema": schema, "text": text, "multiple": multiple_outputs, **kwargs}
        return "resp_extract"

    def poll(self, response_id: str, **_: Any) -> dict[str, Any]:
        self.polls[response_id] += 1
        if response_id == self.fail_poll:
            raise ProviderError("job expired")
        if self.polls[response_id] < 2:
            return {"completed": False}
        return {
            "completed": True,
            "output": [
                {
                    "type": "message",
                    "role": "assistant",
                    "content": [{"type": "output_text", "text": COMPLETED_TEXT[response_id]}],
                }
            ],
        }


@pytest.fixture(autouse=True)
def reset_settings() -> None:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def provider(monkeypatch: pytest.MonkeyPatch) -> _FakeProvider:
    fake = _FakeProvider()
    monkeypatch.setattr(llm, "evaluate_schema_prompt", fake.evaluate)
    monkeypatch.setattr(llm, "create_knowledge_graph", fake.graph)
    monkeypatch.setattr(llm, "extract_to_schema", fake.extract)
    monkeypatch.setattr(llm, "poll_response", fake.poll)
    files = SimpleNamespace(create=lambda **kwargs: SimpleNamespace(id="file-xyz"))
    monkeypatch.setattr(llm, "get_openai_client", lambda api_key=None: SimpleNamespace(files=files))
    return fake


async def _no_sleep(delay: float) -> None:
    return None


def _run_session(scenario) -> Any:  # type: ignore[no-untyped-def]
    async def _main() -> Any:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http, \
                httpx.AsyncClient(transport=httpx.MockTransport(_github_handler)) as github_http:
            client = DashboardClient(client=http)
            await client.authenticate()
            store = InMemoryStateStore(
                {
                    "githubUrl": "https://github.com/user/repo",
                    "leftPanelText": "Alice is 30 years old.",
                    "preprompt": "Focus on people.",
                }
            )
            session = DashboardSession(
                client,
                store,
                poller_config=PollingConfig(max_attempts=5),
                sleep=_no_sleep,
                http=github_http,
            )
            return await scenario(session, client)

    return asyncio.run(_main())


def test_full_run(provider: _FakeProvider, tmp_path: Path) -> None:
    async def _scenario(session: DashboardSession, _: DashboardClient) -> Any:
        options = await session.select_path("people.md")
        result = await session.run(
            [Attachment("scan.pdf", b"%PDF-1.4", "application/pdf")],
            features=ResponseFeatures(multiple_outputs=True),
        )
        return session, options, result

    session, options, result = _run_session(_scenario)

    assert options == ["Person"]
    assert session.state()["githubUrl"] == "user/repo"
    assert session.state()["selectedPath"] == "people.md"
    assert session.selected_option == "Person"

    assert result.evaluation is not None and result.evaluation.fits is True
    assert result.evaluation.reason == "The text describes a person."
    assert result.graph is not None
    assert result.graph.triplets[0].subject == "Alice"
    assert result.data == {"name": "Alice", "age": 30}

    evaluation = provider.submitted["evaluation"]
    assert evaluation["text"] == "Alice is 30 years old."
    assert evaluation["system_prompt"] == "Focus on people."
    assert set(json.loads(evaluation["schema"])["properties"]) == {"name", "age"}
    assert evaluation["file_references"][0].openai_file_id == "file-xyz"
    assert provider.submitted["extraction"]["multiple"] is True
    assert provider.submitted["graph"]["prompt"] == "Alice is 30 years old."
    assert provider.polls == Counter({"resp_eval": 2, "resp_graph": 2, "resp_extract": 2})

    target = session.download_json(tmp_path / "data.json")
    assert target.read_text(encoding="utf-8") == json.dumps({"name": "Alice", "age": 30}, indent=2)


def test_graph_only_run_needs_no_model(provider: _FakeProvider) -> None:
    async def _scenario(session: DashboardSession, _: DashboardClient) -> Any:
        return await session.run(
            features=ResponseFeatures(evaluation=False, extraction=False)
        )

    result = _run_session(_scenario)

    assert list(provider.submitted) == ["graph"]
    assert result.evaluation is None
    assert result.data is None
    assert result.graph is not None and len(result.graph.triplets) == 1


def test_failed_poll_clears_partial_results(provider: _FakeProvider) -> None:
    provider.fail_poll = "resp_extract"

    async def _scenario(session: DashboardSession, _: DashboardClient) -> Any:
        await session.select_path("people.md")
        try:
            await session.run()
        except ApiError as exc:
            return session, exc
        raise AssertionError("run should fail")

    session, error = _run_session(_scenario)

    assert error.status_code == 500
    assert error.message == "Poll failed: job expired"
    assert session.result.evaluation is None
    assert session.result.graph is None
    assert session.result.data is None


def test_failed_poll_leaves_no_sibling_tasks(provider: _FakeProvider) -> None:
    provider.fail_poll = "resp_eval"

    async def _yield(delay: float) -> None:
        await asyncio.sleep(0)

    async def _scenario(session: DashboardSession, _: DashboardClient) -> Any:
        await session.select_path("people.md")
        session.sleep = _yield
        with pytest.raises(ApiError):
            await session.run()
        return [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]

    assert _run_session(_scenario) == []
    assert provider.polls["resp_eval"] == 1


def test_gather_or_cancel_cancels_and_drains_siblings() -> None:
    cancelled: list[str] = []

    async def _slow(name: str) -> str:
        try:
            await asyncio.sleep(10)
        except asyncio.CancelledError:
            cancelled.append(name)
            raise
        return name

    async def _boom() -> str:
        await asyncio.sleep(0)
        raise RuntimeError("boom")

    async def _main() -> list[asyncio.Task[Any]]:
        with pytest.raises(RuntimeError, match="boom"):
            await gather_or_cancel([_slow("graph"), _boom(), _slow("extraction")])
        return [task for task in asyncio.all_tasks() if task is not asyncio.current_task()]

    assert asyncio.run(_main()) == []
    assert sorted(cancelled) == ["extraction", "graph"]


def test_gather_or_cancel_keeps_order() -> None:
    async def _value(value: int) -> int:
        await asyncio.sleep(0)
        return value

    assert asyncio.run(gather_or_cancel([_value(1), _value(2), _value(3)])) == [1, 2, 3]


def test_run_without_selected_model_is_rejected(provider: _FakeProvider) -> None:
    async def _scenario(session: DashboardSession, _: DashboardClient) -> Any:
        await session.run()

    with pytest.raises(RequestValidationError):
        _run_session(_scenario)
    assert provider.submitted == {}


def test_unsupported_attachment_surfaces_api_error(provider: _FakeProvider) -> None:
    async def _scenario(session: DashboardSession, client: DashboardClient) -> Any:
        await client.upload_files([Attachment("notes.txt", b"hi", "text/plain")])

    with pytest.raises(ApiError, match="Unsupported file type: text/plain"):
        _run_session(_scenario)


def test_client_requires_authentication() -> None:
    async def _main() -> None:
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://testserver") as http:
            client = DashboardClient(client=http)
            await client.graph("text")

    with pytest.raises(ApiError) as excinfo:
        asyncio.run(_main())
    assert excinfo.value.status_code == 401
    assert excinfo.value.message == "Unauthorized"
