from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Providers (OpenAI is the primary backend and must be configured)
    openai_api_key: str = Field(..., min_length=1)
    anthropic_api_key: str | None = None
    stability_api_key: str | None = None

    openai_base_url: str = "https://api.openai.com/v1"
    anthropic_base_url: str = "https://api.anthropic.com/v1"
    stability_base_url: str = "https://api.stability.ai"

    openai_vision_model: str = "gpt-4o"
    openai_image_model: str = "gpt-image-1"
    anthropic_model: str = "claude-3-5-sonnet-latest"

    provider_timeout_seconds: float = Field(120.0, gt=0)
    enable_local_providers: bool = False

    # Artifact store
    store_backend: Literal["redis", "memory"] = "redis"
    redis_url: str = "redis://localhost:6379/0"
    artifact_ttl_seconds: int = Field(86400, gt=0)  # 24 hours

    # Image constraints
    max_image_dimension: int = Field(4096, gt=0)
    max_upload_dimension: int = Field(2048, gt=0)

    # Logging
    log_level: str = "INFO"
    log_json: bool = False

    # Environment
    env: str = "development"


@lru_cache
def get_settings() -> Settings:
    return Settings()
