"""Application configuration utilities."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings derived from environment variables."""

    openai_api_key: str | None = Field(default=None, alias="OPENAI_API_KEY")
    llm_model: str = Field(default="gpt-4o", alias="LLM_MODEL")
    ollama_url: str | None = Field(default=None, alias="OLLAMA_URL")
    reasoning_model_prefixes_raw: str = Field(
        default="o", alias="REASONING_MODEL_PREFIXES"
    )
    jwt_secret: str | None = Field(default=None, alias="JWT_SECRET")
    token_ttl_seconds: int = Field(default=3600, alias="TOKEN_TTL_SECONDS")
    shared_secret: str | None = Field(default=None, alias="SECRET")
    allowed_origin: str = Field(
        default="http://localhost:3000", alias="ALLOWED_ORIGIN"
    )
    github_raw_base_url: str = Field(
        default="https://raw.githubusercontent.com", alias="GITHUB_RAW_BASE_URL"
    )
    github_api_base_url: str = Field(
        default="https://api.github.com", alias="GITHUB_API_BASE_URL"
    )
    github_branch: str = Field(default="main", alias="GITHUB_BRANCH")
    request_timeout_seconds: float = Field(
        default=30.0, alias="REQUEST_TIMEOUT_SECONDS"
    )
    redis_url: str = Field(default="redis://localhost:6379/0", alias="REDIS_URL")
    host: str = Field(default="0.0.0.0", alias="HOST")
    port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    def get(self, key: str, default: object | None = None) -> object | None:
        """Dictionary-style access to configuration values."""

        return self.model_dump(by_alias=True).get(key, default)

    @property
    def reasoning_model_prefixes(self) -> tuple[str, ...]:
        """Return the model-name prefixes that denote reasoning models."""

        values = [
            part.strip()
            for part in self.reasoning_model_prefixes_raw.split(",")
            if part.strip()
        ]
        return tuple(values)

    @property
    def cors_origins(self) -> list[str]:
        """Return the list of origins allowed to call the API."""

        return [origin.strip() for origin in self.allowed_origin.split(",") if origin.strip()]


@lru_cache()
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


__all__ = ["Settings", "get_settings"]
