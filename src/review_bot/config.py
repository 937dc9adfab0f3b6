"""Application configuration via Pydantic BaseSettings."""

from __future__ import annotations

from enum import Enum
from functools import lru_cache
from typing import Literal
from urllib.parse import urlparse

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.review_bot.core.errors import ConfigurationError

REQUIRED_SETTINGS: tuple[str, ...] = (
    "GITHUB_TOKEN",
    "GITHUB_REPO_OWNER",
    "GITHUB_REPO_NAME",
    "ATLASSIAN_API_TOKEN",
    "ATLASSIAN_DOMAIN",
    "ATLASSIAN_EMAIL",
    "OPENAI_API_KEY",
)


class Environment(str, Enum):
    development = "development"
    staging = "staging"
    production = "production"


class Settings(BaseSettings):
    """Application settings loaded from environment variables and .env file."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Environment
    ENVIRONMENT: Environment = Environment.development

    # Logging
    LOG_LEVEL: str = "INFO"

    # GitHub
    GITHUB_TOKEN: str = ""
    GITHUB_REPO_OWNER: str = ""
    GITHUB_REPO_NAME: str = ""
    GITHUB_API_URL: str = "https://api.github.com"

    # Confluence (Atlassian Cloud)
    ATLASSIAN_API_TOKEN: str = ""
    ATLASSIAN_DOMAIN: str = ""  # e.g. yourcompany.atlassian.net
    ATLASSIAN_EMAIL: str = ""

    # LLM provider (OpenAI-compatible or Azure OpenAI)
    OPENAI_API_KEY: str = ""
    LLM_MODEL: str = "gpt-4"
    OPENAI_BASE_URL: str = "https://api.openai.com/v1"
    AZURE_OPENAI_API_VERSION: str = "2024-02-15-preview"
    AZURE_OPENAI_DEPLOYMENT_NAME: str = ""  # falls back to LLM_MODEL
    LLM_API_FAMILY: Literal["auto", "chat", "responses"] = "auto"
    LLM_TIMEOUT: int = 60
    LLM_MAX_RETRIES: int = 3

    # Outbound HTTP (GitHub, Confluence)
    HTTP_TIMEOUT: int = 30
    HTTP_MAX_RETRIES: int = 3

    # Webhook server
    PORT: int = 3000
    WEBHOOK_PATH: str = "/webhook"
    WEBHOOK_SECRET: str = ""
    WEBHOOK_SKIP_SIGNATURE_VALIDATION: bool = False

    # CORS
    CORS_ALLOWED_ORIGINS: str = "*"

    @field_validator("LLM_API_FAMILY", mode="before")
    @classmethod
    def _normalize_family(cls, value: object) -> object:
        return value.strip().lower() if isinstance(value, str) else value

    @property
    def is_azure(self) -> bool:
        """True when the model base URL points at an Azure host."""
        host = urlparse(self.OPENAI_BASE_URL).hostname or ""
        return host.endswith("azure.com")

    @property
    def deployment_name(self) -> str:
        return self.AZURE_OPENAI_DEPLOYMENT_NAME or self.LLM_MODEL

    def missing_required(self) -> list[str]:
        """Names of required settings that are empty."""
        return [name for name in REQUIRED_SETTINGS if not str(getattr(self, name, "")).strip()]


def validate_settings(settings: Settings) -> Settings:
    """Fail fast when required settings are absent.

    Raises:
        ConfigurationError: listing every missing variable.
    """
    missing = settings.missing_required()
    if missing:
        raise ConfigurationError(
            f"Missing required environment variables: {', '.join(missing)}",
            service="config",
            details={"missing": missing},
        )
    return settings


@lru_cache
def get_settings() -> Settings:
    """Singleton settings instance."""
    return Settings()
