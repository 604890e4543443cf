"""
Application settings loaded from environment variables and an optional .env file.

All variables use the ``PRESENTA_`` prefix, e.g. ``PRESENTA_API_TOKEN`` or
``PRESENTA_BASE_URL``.
"""

from pydantic import Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Connector settings."""

    model_config = SettingsConfigDict(
        env_prefix="PRESENTA_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Server
    host: str = "127.0.0.1"
    port: int = 8110
    log_level: str = "INFO"
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:5678"])

    # Presenta API
    base_url: str = "https://www.presenta.cc"
    api_token: SecretStr | None = None
    # None leaves timeout policy to the transport
    request_timeout: float | None = None

    # Diagnostics
    debug_include_curl: bool = True
    debug_redact_credentials: bool = True

    # Batch behaviour
    continue_on_fail: bool = False

    @field_validator("base_url")
    @classmethod
    def _strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def _upper_log_level(cls, v: str) -> str:
        return v.upper()


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get the global settings instance, loading it on first use."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def init_settings(settings: Settings) -> None:
    """Install an explicit settings instance (used by tests and build_app)."""
    global _settings
    _settings = settings


def reset_settings() -> None:
    """Drop the cached settings so the next get_settings() reloads."""
    global _settings
    _settings = None
