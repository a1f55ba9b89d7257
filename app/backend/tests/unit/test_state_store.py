"""Tests for dashboard state persistence."""

from __future__ import annotations

import json
import sys
from pathlib import Path
from typing import Any

sys.path.append(str(Path(__file__).resolve().parents[4]))

import pytest

from app.backend.src.core import state_store
from app.backend.src.core.config import get_settings
from app.backend.src.core.state_store import (
    InMemoryStateStore,
    JsonFileStateStore,
    RedisStateStore,
)


class _FakeRedis:
    def __init__(self) -> None:
        self.values: dict[str, Any] = {}
        self.ttls: dict[str, int] = {}

    def get(self, key: str) -> Any:
        return self.values.get(key)

    def setex(self, key: str, ttl: int, value: str) -> None:
        self.values[key] = value.encode("utf-8")
        self.ttls[key] = ttl


def test_in_memory_store() -> None:
    store = InMemoryStateStore({"githubUrl": "user/repo"})

    assert store.load("githubUrl") == "user/repo"
    assert store.load("preprompt") is None
    store.save("preprompt", "Be brief")
    assert store.load("preprompt") == "Be brief"


def test_json_file_store_round_trip(tmp_path: Path) -> None:
    path = tmp_path / "state" / "dashboard.json"
    store = JsonFileStateStore(path)

    assert store.load("selectedPath") is None
    store.save("selectedPath", "specs/model.md")
    store.save("selectedOption", "Reaction")

    assert JsonFileStateStore(path).load("selectedPath") == "specs/model.md"
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "selectedPath": "specs/model.md",
        "selectedOption": "Reaction",
    }


def test_json_file_store_ignores_corrupt_file(tmp_path: Path) -> None:
    path = tmp_path / "dashboard.json"
    path.write_text("{not json", encoding="utf-8")

    assert JsonFileStateStore(path).load("githubUrl") is None


def test_redis_store_uses_prefix_and_ttl() -> None:
    fake = _FakeRedis()
    store = RedisStateStore("redis://unused", client=fake, ttl_seconds=60)  # type: ignore[arg-type]

    store.save("leftPanelText", "Alice knows Bob")

    assert fake.ttls == {"dashboard_state:leftPanelText": 60}
    assert store.load("leftPanelText") == "Alice knows Bob"
    assert store.load("missing") is None


def test_redis_store_defaults_to_configured_url(monkeypatch: pytest.MonkeyPatch) -> None:
    urls: list[str] = []

    def _from_url(url: str) -> _FakeRedis:
        urls.append(url)
        return _FakeRedis()

    monkeypatch.setattr(state_store.Redis, "from_url", _from_url)
    monkeypatch.setenv("REDIS_URL", "redis://cache:6379/2")
    get_settings.cache_clear()
    try:
        RedisStateStore()
        RedisStateStore("redis://explicit:6379/0")
    finally:
        get_settings.cache_clear()

    assert urls == ["redis://cache:6379/2", "redis://explicit:6379/0"]
