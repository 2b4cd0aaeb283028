"""Settings for the polling client that keeps a group view fresh."""

from __future__ import annotations

from functools import lru_cache

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ClientSettings(BaseSettings):
    """Client configuration loaded from ``GROUPWATCH_*`` environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GROUPWATCH_",
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    api_base_url: str = Field(default="http://localhost:8000/api")
    api_token: SecretStr | None = Field(default=None)
    request_timeout_seconds: float = Field(default=10.0)

    messages_interval_seconds: float = Field(default=12.0)
    picks_interval_seconds: float = Field(default=10.0)
    invites_interval_seconds: float = Field(default=8.0)

    @field_validator("api_base_url")
    @classmethod
    def _strip_base_url(cls, value: str) -> str:
        trimmed = value.strip().rstrip("/")
        if not trimmed:
            raise ValueError("GROUPWATCH_API_BASE_URL must not be empty.")
        return trimmed

    @field_validator(
        "request_timeout_seconds",
        "messages_interval_seconds",
        "picks_interval_seconds",
        "invites_interval_seconds",
    )
    @classmethod
    def _positive(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("Intervals and timeouts must be positive.")
        return value


@lru_cache
def get_client_settings() -> ClientSettings:
    return ClientSettings()


__all__ = ["ClientSettings", "get_client_settings"]
