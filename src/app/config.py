# src/app/config.py
from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

PROJECT_ROOT = Path(__file__).resolve().parents[2]


class Settings(BaseSettings):
    # Pydantic v2 settings config
    model_config = SettingsConfigDict(
        env_file=str(PROJECT_ROOT / ".env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ---------- Upstream (OpenAI-compatible) ----------
    # Env var auto-maps from OPENAI_API_KEY, OPENAI_BASE_URL, etc.
    openai_api_key: str = Field(..., description="Upstream API key")
    openai_base_url: str = Field(
        default="https://api.openai.com/v1", description="Upstream API base URL"
    )

    # API timeout configuration
    api_timeout: float = Field(default=30.0, description="Upstream request timeout in seconds")

    # Use the caller's Authorization token for upstream calls instead of OPENAI_API_KEY
    forward_caller_key: bool = Field(
        default=False, description="Forward the per-request API key to the upstream API"
    )

    # ---------- HTTP server ----------
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=4000)
    reload: bool = Field(default=False)
    log_level: str = Field(default="INFO")

    # ---------- Validators ----------
    @field_validator("openai_api_key")
    @classmethod
    def _non_empty(cls, v: str) -> str:
        if not v or not v.strip():
            raise ValueError("openai_api_key must be set via environment and non-empty")
        return v.strip()

    @field_validator("openai_base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.strip().rstrip("/")


@lru_cache
def get_settings() -> Settings:  # pragma: no cover
    return Settings()  # type: ignore[call-arg]
