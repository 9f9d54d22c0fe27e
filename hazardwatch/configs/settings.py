"""Centralized settings management for hazardwatch."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings powered by pydantic-settings.

    Loads configuration from environment variables and a .env file located
    at the project root.
    """

    # -------------------------------------------------------------------------
    # ENVIRONMENT
    # -------------------------------------------------------------------------
    DEBUG: bool = False
    LOG_LEVEL: str = "INFO"
    JSON_LOGS: bool = False

    # -------------------------------------------------------------------------
    # STORAGE
    # -------------------------------------------------------------------------
    # Unset means snapshots live in process memory only
    REDIS_URL: str | None = None

    # -------------------------------------------------------------------------
    # FETCHING
    # -------------------------------------------------------------------------
    FETCH_TIMEOUT_SECONDS: float = Field(default=15.0, gt=0)
    FETCH_MAX_CONCURRENCY: int = Field(default=4, ge=1)
    FETCH_MAX_RETRIES: int = Field(default=0, ge=0)
    LOOKBACK_DAYS: int = Field(default=60, ge=1)
    USER_AGENT: str = "HazardWatch/1.0"

    # -------------------------------------------------------------------------
    # PUBLISHING
    # -------------------------------------------------------------------------
    BROADCAST_DELIVERY_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)

    # -------------------------------------------------------------------------
    # CIRCUIT BREAKER
    # -------------------------------------------------------------------------
    CIRCUIT_FAILURE_THRESHOLD: int = Field(default=3, ge=1)
    CIRCUIT_RESET_SECONDS: float = 30.0
    CIRCUIT_MAX_RESET_SECONDS: float = 600.0

    # -------------------------------------------------------------------------
    # SECONDARY CLASSIFIER
    # -------------------------------------------------------------------------
    # "anthropic" | "openai"; unset runs rule-only classification
    SECONDARY_CLASSIFIER_PROVIDER: str | None = None
    SECONDARY_CLASSIFIER_MODEL: str | None = None
    SECONDARY_REQUEST_TIMEOUT_SECONDS: float = Field(default=5.0, gt=0)
    SECONDARY_BUDGET_SECONDS: float = Field(default=30.0, gt=0)
    ANTHROPIC_API_KEY: SecretStr | None = None
    OPENAI_API_KEY: SecretStr | None = None

    # -------------------------------------------------------------------------
    # PATHS
    # -------------------------------------------------------------------------
    SOURCES_CONFIG_PATH: Path = Path(__file__).resolve().parent / "sources.yaml"

    model_config = SettingsConfigDict(
        env_file=str(Path(__file__).resolve().parents[2] / ".env"),
        env_file_encoding="utf-8",
        # Allow extra fields in .env but ignore them in the model
        extra="ignore",
    )

    @property
    def secondary_classifier_enabled(self) -> bool:
        """True when a provider is selected; the key is checked by the client."""
        return bool(self.SECONDARY_CLASSIFIER_PROVIDER)

    def api_key_for(self, provider: str) -> str | None:
        """Return the plain API key configured for an LLM provider."""
        secret = {
            "anthropic": self.ANTHROPIC_API_KEY,
            "openai": self.OPENAI_API_KEY,
        }.get(provider.lower().strip())
        return secret.get_secret_value() if secret else None


@lru_cache
def get_settings() -> Settings:
    """
    Get cached application settings.

    Returns
    -------
    Settings
        The singleton settings instance.
    """
    return Settings()
