"""Async HTTP client for the dashboard API."""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Sequence

import httpx
import structlog

from app.backend.src.core.security import TOKEN_COOKIE
from app.backend.src.schemas.upload import FileReference, UploadedFileInfo

from .poller import Poller, PollingConfig, Sleeper

LOGGER = structlog.get_logger(__name__)


class ApiError(Exception):
    """The dashboard API answered with a non-success status."""

    def __init__(self, status_code: int, message: str) -> None:
        super().__init__(f"{status_code}: {message}")
        self.status_code = status_code
        self.message = message


@dataclass(frozen=True)
class Attachment:
    """A file to send along with a dashboard run."""

    name: str
    data: bytes
    content_type: str

    @classmethod
    def from_path(cls, path: Path | str, content_type: str) -> "Attachment":
        source = Path(path)
        return cls(source.name, source.read_bytes(), content_type)


def _references_payload(file_references: Sequence[FileReference]) -> list[dict[str, Any]]:
    return [ref.model_dump(by_alias=True, include={"openai_file_id", "input_type"}) for ref in file_references]


class DashboardClient:
    """Thin wrapper over every ``/api`` endpoint."""

    def __init__(
        self,
        base_url: str = "http://localhost:8000",
        *,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
        api_key: str | None = None,
    ) -> None:
        self._owns_client = client is None
        self._http = client or httpx.AsyncClient(base_url=base_url, timeout=timeout)
        self.api_key = api_key

    async def __aenter__(self) -> "DashboardClient":
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._http.aclose()

    @staticmethod
    def _raise_for_error(response: httpx.Response) -> None:
        if not response.is_error:
            return
        message = response.text
        try:
            body = response.json()
        except ValueError:
            body = None
        if isinstance(body, dict) and body.get("error"):
            message = str(body["error"])
        raise ApiError(response.status_code, message)

    async def _post_json(self, path: str, payload: dict[str, Any] | None = None) -> Any:
        response = await self._http.post(path, json=payload)
        self._raise_for_error(response)
        return response.json()

    def _submit_payload(
        self,
        file_references: Sequence[FileReference],
        model: str | None,
        **fields: Any,
    ) -> dict[str, Any]:
        payload = {key: value for key, value in fields.items() if value is not None}
        payload["file_references"] = _references_payload(file_references)
        if model:
            payload["model"] = model
        if self.api_key:
            payload["api_key"] = self.api_key
        return payload

    # -------------------------------------------------------
    # Auth
    # -------------------------------------------------------

    async def authenticate(self) -> None:
        """Fetch a token cookie; later requests send it automatically."""
        response = await self._http.get("/api/auth")
        self._raise_for_error(response)
        token = response.cookies.get(TOKEN_COOKIE)
        if token:
            self._http.cookies.set(TOKEN_COOKIE, token)

    async def login(self, secret: str) -> bool:
        response = await self._http.post("/api/login", params={"secret": secret})
        return response.is_success

    # -------------------------------------------------------
    # Jobs
    # -------------------------------------------------------

    async def evaluate(
        self,
        text: str,
        schema: str,
        *,
        system_prompt: str | None = None,
        file_references: Sequence[FileReference] = (),
        model: str | None = None,
    ) -> str:
        payload = self._submit_payload(
            file_references, model, text=text, schema=schema, system_prompt=system_prompt
        )
        body = await self._post_json("/api/evaluate", payload)
        return body["responseId"]

    async def graph(
        self,
        prompt: str,
        *,
        file_references: Sequence[FileReference] = (),
        model: str | None = None,
    ) -> str:
        body = await self._post_json("/api/graph", self._submit_payload(file_references, model, prompt=prompt))
        return body["responseId"]

    async def extract(
        self,
        text: str,
        schema: str,
        multiple_outputs: bool = False,
        *,
        system_prompt: str | None = None,
        file_references: Sequence[FileReference] = (),
        model: str | None = None,
    ) -> str:
        payload = self._submit_payload(
            file_references,
            model,
            text=text,
            schema=schema,
            multiple_outputs=multiple_outputs,
            system_prompt=system_prompt,
        )
        body = await self._post_json("/api/extract", payload)
        return body["responseId"]

    async def poll_status(self, response_id: str) -> dict[str, Any]:
        payload: dict[str, Any] = {"responseId": response_id}
        if self.api_key:
            payload["api_key"] = self.api_key
        return await self._post_json("/api/poll", payload)

    def poller(self, config: PollingConfig | None = None, sleep: Sleeper = asyncio.sleep) -> Poller:
        return Poller(self.poll_status, config=config, sleep=sleep)

    # -------------------------------------------------------
    # Files and models
    # -------------------------------------------------------

    async def upload_files(self, attachments: Sequence[Attachment]) -> list[UploadedFileInfo]:
        if not attachments:
            return []
        files = [
            (f"file_{index}", (item.name, item.data, item.content_type))
            for index, item in enumerate(attachments)
        ]
        response = await self._http.post("/api/upload-files", files=files)
        self._raise_for_error(response)
        uploaded = [UploadedFileInfo.model_validate(item) for item in response.json()["files"]]
        LOGGER.info("dashboard_files_uploaded", count=len(uploaded))
        return uploaded

    async def list_models(self) -> list[dict[str, Any]]:
        body = await self._post_json("/api/models")
        return list(body.get("data", []))


__all__ = ["ApiError", "Attachment", "DashboardClient"]
