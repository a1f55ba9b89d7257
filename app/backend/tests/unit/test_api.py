"""API tests for the job, upload, auth and model endpoints."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from types import SimpleNamespace
from typing import Any

sys.path.append(str(Path(__file__).resolve().parents[4]))

os.environ.setdefault("JWT_SECRET", "test-secret")
os.environ.setdefault("OPENAI_API_KEY", "sk-test")

import pytest
from fastapi.testclient import TestClient

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import ProviderError
from app.backend.src import main
from app.backend.src.main import app
from app.backend.src.services import llm


@pytest.fixture(autouse=True)
def reset_settings() -> None:
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture()
def client() -> TestClient:
    return TestClient(app)


@pytest.fixture()
def authed_client(client: TestClient) -> TestClient:
    response = client.get("/api/auth")
    assert response.status_code == 200, response.text
    return client


def test_liveness_endpoint(client: TestClient) -> None:
    response = client.get("/api/health/live")
    assert response.status_code == 200
    assert response.json()["status"] == "live"


def test_auth_sets_http_only_cookie(client: TestClient) -> None:
    response = client.get("/api/auth")

    assert response.status_code == 200
    assert response.text == "Token created and set in cookie"
    header = response.headers["set-cookie"]
    assert header.startswith("token=")
    assert "HttpOnly" in header
    assert "Max-Age=3600" in header
    assert "Path=/" in header


def test_auth_without_secret_reports_generation_error(
    client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    monkeypatch.setenv("JWT_SECRET", "")
    get_settings.cache_clear()

    response = client.get("/api/auth")

    assert response.status_code == 500
    assert response.json() == {"error": "Error generating token"}


def test_login(client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("SECRET", "hunter2")
    get_settings.cache_clear()

    assert client.post("/api/login", params={"secret": "hunter2"}).text == "Authorized"
    denied = client.post("/api/login", params={"secret": "nope"})
    assert denied.status_code == 401
    assert denied.json() == {"error": "Unauthorized"}
    assert client.post("/api/login").status_code == 401


@pytest.mark.parametrize("path", ["/api/evaluate", "/api/graph", "/api/extract", "/api/poll", "/api/models"])
def test_job_endpoints_require_cookie(client: TestClient, path: str) -> None:
    response = client.post(path, json={})

    assert response.status_code == 401
    assert response.json() == {"error": "Unauthorized"}


def test_evaluate_returns_response_id(
    authed_client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    captured: dict[str, Any] = {}

    def _evaluate(text: str, schema: str, **kwargs: Any) -> str:
        captured.update(text=text, schema=schema, **kwargs)
        return "resp_eval"

    monkeypatch.setattr(llm, "evaluate_schema_prompt", _evaluate)

    response = authed_client.post(
        "/api/evaluate",
        json={
            "text": "Alice is 30",
            "schema": '{"type": "object"}',
            "file_references": [{"openaiFileId": "file-1", "inputType": "input_file"}],
            "api_key": "sk-user",
        },
    )

    assert response.status_code == 200, response.text
    assert response.json() == {"responseId": "resp_eval"}
    assert captured["schema"] == '{"type": "object"}'
    assert captured["api_key"] == "sk-user"
    assert captured["file_references"][0].openai_file_id == "file-1"


def test_missing_fields_are_bad_requests(authed_client: TestClient) -> None:
    response = authed_client.post("/api/extract", json={"text": "only text"})

    assert response.status_code == 400
    assert "schema" in response.json()["error"]


def test_provider_failures_carry_prefix(
    authed_client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    def _boom(*_: Any, **__: Any) -> str:
        raise ProviderError("quota exceeded")

    monkeypatch.setattr(llm, "extract_to_schema", _boom)
    monkeypatch.setattr(llm, "create_knowledge_graph", _boom)

    extract = authed_client.post("/api/extract", json={"text": "t", "schema": "{}"})
    graph = authed_client.post("/api/graph", json={"prompt": "p"})

    assert extract.status_code == 500
    assert extract.json() == {"error": "Extraction failed: quota exceeded"}
    assert graph.json() == {"error": "Error generating response: quota exceeded"}


def test_poll_pending_and_completed(
    authed_client: TestClient, monkeypatch: pytest.MonkeyPatch
) -> None:
    results = iter(
        [
            {"completed": False},
            {"completed": True, "output": [{"role": "assistant", "content": [{"text": "hi"}]}]},
        ]
    )
    monkeypatch.setattr(llm, "poll_response", lambda response_id, **_: next(results))

    pending = authed_client.post("/api/poll", json={"responseId": "resp_1"})
    done = authed_client.post("/api/poll", json={"responseId": "resp_1"})

    assert pending.json() == {"completed": False}
    assert done.json()["completed"] is True
    assert done.json()["output"][0]["content"][0]["text"] == "hi"


def test_poll_requires_response_id(authed_client: TestClient) -> None:
    response = authed_client.post("/api/poll", json={"responseId": ""})

    assert response.status_code == 400


def test_upload_files(authed_client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    created: list[dict[str, Any]] = []

    def _create(**kwargs: Any) -> SimpleNamespace:
        created.append(kwargs)
        return SimpleNamespace(id="file-abc")

    fake = SimpleNamespace(files=SimpleNamespace(create=_create))
    monkeypatch.setattr(llm, "get_openai_client", lambda api_key=None: fake)

    response = authed_client.post(
        "/api/upload-files",
        files={"file_7": ("paper.pdf", b"%PDF-1.4", "application/pdf")},
    )

    assert response.status_code == 200, response.text
    assert response.json() == {
        "files": [
            {
                "openaiFileId": "file-abc",
                "inputType": "input_file",
                "id": "7",
                "name": "paper.pdf",
                "type": "application/pdf",
                "size": 8,
            }
        ]
    }
    assert created[0]["purpose"] == "user_data"


def test_upload_rejects_unsupported_type(authed_client: TestClient) -> None:
    response = authed_client.post(
        "/api/upload-files",
        files={"file_0": ("notes.txt", b"hello", "text/plain")},
    )

    assert response.status_code == 500
    assert response.json() == {"error": "File upload failed: Unsupported file type: text/plain"}


def test_upload_requires_multipart(authed_client: TestClient) -> None:
    response = authed_client.post("/api/upload-files", json={"file_0": "x"})

    assert response.status_code == 400
    assert response.json() == {"error": "Content-Type must be multipart/form-data"}


def test_models_passthrough(authed_client: TestClient, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setattr(llm, "list_available_models", lambda **_: [{"id": "gpt-4o"}])

    response = authed_client.post("/api/models")

    assert response.json() == {"object": "list", "data": [{"id": "gpt-4o"}]}


def test_unknown_route_uses_error_body(client: TestClient) -> None:
    response = client.get("/api/nope")

    assert response.status_code == 404
    assert response.json() == {"error": "Not Found"}


def test_cors_preflight_allows_configured_origin(client: TestClient) -> None:
    response = client.options(
        "/api/evaluate",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "POST",
            "Access-Control-Request-Headers": "Content-Type",
        },
    )

    assert response.status_code == 200
    assert response.headers["access-control-allow-origin"] == "http://localhost:3000"
    assert response.headers["access-control-allow-credentials"] == "true"


def test_run_serves_configured_host_and_port(monkeypatch: pytest.MonkeyPatch) -> None:
    import uvicorn

    calls: list[tuple[Any, dict[str, Any]]] = []
    monkeypatch.setattr(uvicorn, "run", lambda target, **kwargs: calls.append((target, kwargs)))
    monkeypatch.setenv("HOST", "127.0.0.1")
    monkeypatch.setenv("PORT", "9001")

    main.run()

    assert calls == [("app.backend.src.main:app", {"host": "127.0.0.1", "port": 9001, "reload": False})]
