"""Configuration management for Saturn."""

from __future__ import annotations

import re

import httpx
from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .errors import ConfigurationError
from .logging_utils import configure_logging

DEFAULT_BACKEND_URL = "http://localhost:2223/query"
DEFAULT_ACCENT_COLOR = "17B890"

_HEX_COLOR = re.compile(r"^[0-9a-fA-F]{6}$")


class Settings(BaseSettings):
    """Application settings."""

    model_config = SettingsConfigDict(
        env_prefix="SATURN_",
        case_sensitive=False,
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Backend
    backend_url: str = Field(default=DEFAULT_BACKEND_URL, description="Query endpoint of the backend service")
    request_timeout: float = Field(default=30.0, gt=0, description="Timeout for one backend round-trip in seconds")

    # Rendering
    accent_color: str = Field(default=DEFAULT_ACCENT_COLOR, description="Accent color as a 6-digit hex value")
    word_delay: float = Field(default=0.1, ge=0, description="Pause after each streamed word in seconds")

    # Logging
    log_level: str = Field(default="WARNING", description="Log level")

    @field_validator("accent_color")
    @classmethod
    def _check_accent_color(cls, value: str) -> str:
        normalized = value.strip().lstrip("#")
        if not _HEX_COLOR.match(normalized):
            raise ValueError(f"accent color must be 6 hex digits, got {value!r}")
        return normalized.upper()

    @field_validator("backend_url")
    @classmethod
    def _check_backend_url(cls, value: str) -> str:
        normalized = value.strip()
        if not normalized.startswith(("http://", "https://")):
            raise ValueError(f"backend url must be http(s), got {value!r}")
        try:
            httpx.URL(normalized)
        except httpx.InvalidURL as exc:
            raise ValueError(f"backend url is malformed: {exc}") from exc
        return normalized

    @field_validator("log_level")
    @classmethod
    def _normalize_log_level(cls, value: str) -> str:
        return value.strip().upper()


def get_settings(**overrides: object) -> Settings:
    """Get application settings.

    Args:
        **overrides: Field values that take precedence over the environment.
            ``None`` values are ignored so CLI options can be passed straight through.

    Returns:
        Settings instance

    Raises:
        ConfigurationError: If a setting fails validation.
    """
    values = {key: value for key, value in overrides.items() if value is not None}
    try:
        settings = Settings(**values)
    except ValueError as exc:
        raise ConfigurationError(str(exc)) from exc

    configure_logging(profile="chat", level=settings.log_level)

    return settings
