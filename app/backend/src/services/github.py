"""GitHub helpers for locating markdown model definitions."""

from __future__ import annotations

import asyncio

import httpx
import structlog

from app.backend.src.core.config import get_settings
from app.backend.src.core.errors import RepositoryError

from .mdmodels import ModelParser, is_md_model

LOGGER = structlog.get_logger(__name__)


def normalize_repository(url: str) -> str:
    """Reduce ``https://github.com/user/repo(.git)`` to ``user/repo``."""
    candidate = (url or "").strip()
    if "github.com" not in candidate:
        return candidate
    parts = [part for part in candidate.rstrip("/").split("/") if part]
    if len(parts) < 2:
        raise RepositoryError(f"Cannot derive repository from '{url}'")
    user = parts[-2]
    repo = parts[-1].removesuffix(".git")
    return f"{user}/{repo}"


def _split_repository(repository: str) -> tuple[str, str]:
    username, _, repo = repository.partition("/")
    if not username or not repo or "/" in repo:
        raise RepositoryError(
            'Invalid repository format. Please use the format "username/repo".'
        )
    return username, repo


def _client(client: httpx.AsyncClient | None) -> httpx.AsyncClient:
    if client is not None:
        return client
    return httpx.AsyncClient(timeout=get_settings().request_timeout_seconds)


async def fetch_from_github(
    repository: str, path: str, *, client: httpx.AsyncClient | None = None
) -> str:
    """Return the raw content of ``path`` on the configured branch."""
    if not repository:
        raise RepositoryError("Repository URL is required")
    settings = get_settings()
    url = f"{settings.github_raw_base_url}/{repository}/{settings.github_branch}/{path}"

    http = _client(client)
    try:
        response = await http.get(url)
        response.raise_for_status()
    except httpx.HTTPError as exc:
        LOGGER.warning("github_fetch_failed", repository=repository, path=path, error=str(exc))
        raise RepositoryError(f"Error fetching {path}: {exc}") from exc
    finally:
        if client is None:
            await http.aclose()
    return response.text


async def list_md_files(
    repository: str, *, client: httpx.AsyncClient | None = None
) -> list[str]:
    """List every ``.md`` path in the repository tree."""
    username, repo = _split_repository(repository)
    settings = get_settings()
    url = (
        f"{settings.github_api_base_url}/repos/{username}/{repo}"
        f"/git/trees/{settings.github_branch}"
    )

    http = _client(client)
    try:
        response = await http.get(url, params={"recursive": "1"})
    except httpx.HTTPError as exc:
        raise RepositoryError(f"Error fetching repository data: {exc}") from exc
    finally:
        if client is None:
            await http.aclose()

    try:
        data = response.json()
    except ValueError:
        data = {}
    if response.is_error:
        message = data.get("message") if isinstance(data, dict) else None
        raise RepositoryError(
            f"Error fetching repository data: {message or response.status_code}"
        )

    tree = data.get("tree", []) if isinstance(data, dict) else []
    return [
        entry["path"]
        for entry in tree
        if isinstance(entry, dict) and str(entry.get("path", "")).endswith(".md")
    ]


async def list_model_files(
    repository: str,
    *,
    parser: ModelParser | None = None,
    client: httpx.AsyncClient | None = None,
) -> list[str]:
    """Return the markdown files that parse as valid models, in tree order."""
    owns_client = client is None
    http = _client(client)
    try:
        files = await list_md_files(repository, client=http)

        async def _check(path: str) -> bool:
            try:
                content = await fetch_from_github(repository, path, client=http)
            except RepositoryError:
                return False
            return is_md_model(content, parser)

        results = await asyncio.gather(*(_check(path) for path in files))
    finally:
        if owns_client:
            await http.aclose()

    valid = [path for path, ok in zip(files, results) if ok]
    LOGGER.info(
        "github_model_files_listed",
        repository=repository,
        candidates=len(files),
        valid=len(valid),
    )
    return valid


__all__ = [
    "fetch_from_github",
    "list_md_files",
    "list_model_files",
    "normalize_repository",
]
