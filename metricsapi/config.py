"""Runtime configuration for the metrics reporting server via Pydantic settings."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings

DEFAULT_LISTEN = "127.0.0.1:8200"


class Settings(BaseSettings):
    """Settings sourced from environment variables (or a ``.env`` file)."""

    listen: str = Field(default=DEFAULT_LISTEN, alias="METRICSAPI_LISTEN")
    log_level: str = Field(default="INFO", alias="METRICSAPI_LOG_LEVEL")
    callback_timeout: float | None = Field(default=None, gt=0, alias="METRICSAPI_CALLBACK_TIMEOUT")

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "extra": "ignore",
        "populate_by_name": True,
    }

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, value: str) -> str:
        level = value.strip().upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"METRICSAPI_LOG_LEVEL must be a logging level name (got {value!r})")
        return level


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()
