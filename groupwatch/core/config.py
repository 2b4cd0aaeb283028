"""
Configuration module for the Group Watch backend.

The Settings object centralizes environment-driven configuration with strict
typing and validation rules so that the rest of the codebase can rely on a
single source of truth.
"""

from __future__ import annotations

import json
from functools import lru_cache
from typing import Literal

from pydantic import (
    AliasChoices,
    Field,
    SecretStr,
    ValidationInfo,
    computed_field,
    field_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    project_name: str = Field(default="Group Watch Backend", alias="PROJECT_NAME")
    environment: Literal["local", "test", "staging", "production"] = Field(
        default="local",
        alias="APP_ENV",
    )
    debug: bool = Field(default=False, alias="DEBUG")
    api_v1_prefix: str = Field(default="/api", alias="API_V1_PREFIX")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    sql_echo: bool = Field(default=False, alias="SQL_ECHO")

    database_url: str = Field(alias="DATABASE_URL")

    secret_key: SecretStr = Field(alias="SECRET_KEY")
    jwt_algorithm: Literal["HS256", "HS384", "HS512"] = Field(
        default="HS256",
        alias="JWT_ALGORITHM",
        validation_alias=AliasChoices("JWT_ALGORITHM", "ALGORITHM"),
    )
    access_token_expire_minutes: int = Field(default=60 * 24, alias="ACCESS_TOKEN_EXPIRE_MINUTES")

    raw_backend_cors_origins: str | None = Field(
        default=None,
        alias="BACKEND_CORS_ORIGINS",
        description="Comma-separated list or JSON array of allowed origins.",
    )
    max_request_bytes: int = Field(
        default=262_144,
        alias="MAX_REQUEST_BYTES",
        description="Upper bound for request bodies in bytes (default 256 KiB).",
    )
    message_page_size: int = Field(
        default=200,
        alias="MESSAGE_PAGE_SIZE",
        description="How many of the most recent chat messages a single pull returns.",
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def _strip_string(cls, value: str | None, info: ValidationInfo) -> str:
        if value is None:
            field = (info.field_name or "value").upper()
            raise ValueError(f"{field} must be provided.")
        trimmed = value.strip()
        if not trimmed:
            field = (info.field_name or "value").upper()
            raise ValueError(f"{field} must not be empty.")
        return trimmed

    @field_validator("access_token_expire_minutes")
    @classmethod
    def _validate_token_ttl(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("ACCESS_TOKEN_EXPIRE_MINUTES must be a positive integer.")
        return value

    @field_validator("max_request_bytes")
    @classmethod
    def _validate_request_size(cls, value: int) -> int:
        if value <= 0:
            raise ValueError("MAX_REQUEST_BYTES must be a positive integer.")
        return value

    @field_validator("message_page_size")
    @classmethod
    def _validate_page_size(cls, value: int) -> int:
        if not 1 <= value <= 1000:
            raise ValueError("MESSAGE_PAGE_SIZE must be within [1, 1000].")
        return value

    @field_validator("secret_key", mode="after")
    @classmethod
    def _validate_secret(cls, secret: SecretStr, info: ValidationInfo) -> SecretStr:
        if not secret.get_secret_value().strip():
            field = (info.field_name or "value").upper()
            raise ValueError(f"{field} must not be empty.")
        return secret

    @computed_field(return_type=list[str])
    def cors_origins(self) -> list[str]:
        """Return the normalized list of allowed CORS origins."""
        return self.parse_cors_origins(self.raw_backend_cors_origins)

    @staticmethod
    def parse_cors_origins(origins: str | list[str] | None) -> list[str]:
        """
        Normalize the BACKEND_CORS_ORIGINS value into a list of origins.

        Accepts either a comma-separated string, a JSON array string, or an
        explicit list of strings.
        """
        if origins is None:
            return []
        if isinstance(origins, list):
            cleaned: list[str] = []
            for origin in origins:
                if not isinstance(origin, str):
                    raise ValueError("CORS origin list entries must be strings.")
                stripped = origin.strip()
                if not stripped:
                    raise ValueError("CORS origin list entries must be non-empty strings.")
                cleaned.append(stripped.rstrip("/"))
            return cleaned
        if isinstance(origins, str):
            normalized = origins.strip()
            if not normalized:
                return []
            if normalized.startswith("["):
                try:
                    parsed = json.loads(normalized)
                except json.JSONDecodeError as exc:
                    raise ValueError("BACKEND_CORS_ORIGINS is not a valid JSON array.") from exc
                if not isinstance(parsed, list):
                    raise ValueError("BACKEND_CORS_ORIGINS JSON value must be an array.")
                return Settings.parse_cors_origins([str(origin) for origin in parsed])
            return [
                origin.strip().rstrip("/") for origin in normalized.split(",") if origin.strip()
            ]
        raise ValueError("CORS origins must be provided as a string or list of strings.")


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance so configuration is evaluated once."""
    # BaseSettings loads required values from env/.env during instantiation.
    return Settings()  # type: ignore[call-arg]


settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]
