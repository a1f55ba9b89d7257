"""Key/value persistence for dashboard form state."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import structlog
from redis import Redis

from app.backend.src.core.config import get_settings

LOGGER = structlog.get_logger(__name__)


class StateStore:
    """Interface for loading and saving dashboard state by key."""

    def load(self, key: str) -> Any | None:
        raise NotImplementedError

    def save(self, key: str, value: Any) -> None:
        raise NotImplementedError


class InMemoryStateStore(StateStore):
    """Process-local state, mostly useful for tests and scripts."""

    def __init__(self, initial: dict[str, Any] | None = None) -> None:
        self._values: dict[str, Any] = dict(initial or {})

    def load(self, key: str) -> Any | None:
        return self._values.get(key)

    def save(self, key: str, value: Any) -> None:
        self._values[key] = value


class JsonFileStateStore(StateStore):
    """State kept in a single JSON document on disk."""

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)

    def _read(self) -> dict[str, Any]:
        if not self.path.exists():
            return {}
        try:
            payload = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            LOGGER.warning("state_file_json_error", path=str(self.path), error=str(exc))
            return {}
        return payload if isinstance(payload, dict) else {}

    def load(self, key: str) -> Any | None:
        return self._read().get(key)

    def save(self, key: str, value: Any) -> None:
        payload = self._read()
        payload[key] = value
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(payload, indent=2), encoding="utf-8")


class RedisStateStore(StateStore):
    """Redis-backed dashboard state."""

    def __init__(
        self,
        url: str | None = None,
        *,
        key_prefix: str = "dashboard_state",
        ttl_seconds: int = 60 * 60 * 24 * 30,
        client: Redis | None = None,
    ) -> None:
        self.client = client if client is not None else Redis.from_url(url or get_settings().redis_url)
        self.key_prefix = key_prefix
        self.ttl_seconds = ttl_seconds

    def _key(self, suffix: str) -> str:
        return f"{self.key_prefix}:{suffix}"

    def load(self, key: str) -> Any | None:
        redis_key = self._key(key)
        try:
            raw = self.client.get(redis_key)
        except Exception as exc:  # pragma: no cover - requires redis connectivity
            LOGGER.warning("redis_state_read_failed", key=redis_key, error=str(exc))
            return None
        if not raw:
            return None
        try:
            return json.loads(raw)
        except Exception as exc:  # pragma: no cover - requires redis connectivity
            LOGGER.warning("redis_state_json_error", key=redis_key, error=str(exc))
            return None

    def save(self, key: str, value: Any) -> None:
        redis_key = self._key(key)
        try:
            self.client.setex(redis_key, self.ttl_seconds, json.dumps(value))
        except Exception as exc:  # pragma: no cover - requires redis connectivity
            LOGGER.warning("redis_state_write_failed", key=redis_key, error=str(exc))


__all__ = ["InMemoryStateStore", "JsonFileStateStore", "RedisStateStore", "StateStore"]
