"""
Configuration and settings for the gateway.
"""

from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
from typing import Literal, Mapping

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from gateway.errors import ConfigError

# Deployment-time fallbacks, consulted when the environment does not provide
# FIREBASE_URL / FIREBASE_API_KEY.
FIREBASE_DATABASE_URL = ""
FIREBASE_WEB_API_KEY = ""

MISSING_CONFIGURATION_MESSAGE = (
    "FIREBASE_URL and FIREBASE_API_KEY must be provided "
    "(env vars, config file or query params)."
)


class Settings(BaseSettings):
    """Environment-backed settings for the FastAPI service."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Firebase Realtime Database (FIREBASE_URL / FIREBASE_API_KEY)
    firebase_url: str = Field(default="")
    firebase_api_key: str = Field(default="")

    api_prefix: str = Field(
        default="", validation_alias=AliasChoices("api_prefix", "GATEWAY_API_PREFIX")
    )

    # Upstream HTTP timeouts, in seconds
    connect_timeout: float = Field(
        default=5.0,
        validation_alias=AliasChoices("connect_timeout", "GATEWAY_CONNECT_TIMEOUT"),
    )
    read_timeout: float = Field(
        default=15.0,
        validation_alias=AliasChoices("read_timeout", "GATEWAY_READ_TIMEOUT"),
    )

    # Development toggles
    use_in_memory_backends: bool = Field(
        default=False,
        validation_alias=AliasChoices(
            "use_in_memory_backends", "GATEWAY_USE_IN_MEMORY_BACKENDS"
        ),
    )
    log_level: Literal["CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG"] = Field(
        default="INFO", validation_alias=AliasChoices("log_level", "GATEWAY_LOG_LEVEL")
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_log_level(cls, value):
        if isinstance(value, str):
            return value.strip().upper()
        return value


@dataclass(frozen=True)
class FirebaseConfig:
    base_url: str
    api_key: str


def _first_non_empty(*candidates: str | None) -> str:
    for candidate in candidates:
        if candidate:
            return candidate
    return ""


def resolve_firebase_config(
    settings: Settings,
    query_params: Mapping[str, str],
    static_url: str = FIREBASE_DATABASE_URL,
    static_key: str = FIREBASE_WEB_API_KEY,
) -> FirebaseConfig:
    """
    Resolve the upstream base URL and API key for one request.

    Each value is taken from the environment first, then the static
    constants, then the ``firebase_url`` / ``api_key`` query parameters.

    Raises:
        ConfigError: If either value is still empty.
    """
    base_url = _first_non_empty(
        settings.firebase_url,
        static_url,
        (query_params.get("firebase_url") or "").strip(),
    )
    api_key = _first_non_empty(
        settings.firebase_api_key,
        static_key,
        (query_params.get("api_key") or "").strip(),
    )
    if base_url == "" or api_key == "":
        raise ConfigError(MISSING_CONFIGURATION_MESSAGE)
    return FirebaseConfig(base_url=base_url.rstrip("/"), api_key=api_key)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached settings instance."""
    return Settings()
