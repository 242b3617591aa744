"""
Configuration Management Module

This module handles all application configuration using Pydantic Settings.
Configuration is loaded from environment variables with strong typing and validation.

Design Decisions:
- Use Pydantic Settings for automatic environment variable loading
- Provide sensible defaults for optional settings
- Settings are passed explicitly to services so tests never touch the environment
- Missing credentials do not block startup; webhooks fail closed instead
"""

from functools import lru_cache
from typing import List, Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All sensitive values are loaded from environment variables only,
    never hardcoded or logged.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore"
    )

    # =========================================================================
    # Webhook / GitHub Configuration
    # =========================================================================
    webhook_secret: Optional[str] = Field(
        default=None,
        description="Shared secret used to sign webhook deliveries"
    )

    github_token: Optional[str] = Field(
        default=None,
        description="Token used to fetch diffs and post comments"
    )

    # =========================================================================
    # LLM Configuration
    # =========================================================================
    llm_api_key: Optional[str] = Field(
        default=None,
        description="API key for the text-generation endpoint"
    )

    llm_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used for code review"
    )

    llm_api_base: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta",
        description="Base URL of the text-generation API"
    )

    # =========================================================================
    # HTTP / Processing
    # =========================================================================
    http_timeout: float = Field(
        default=30.0,
        gt=0,
        description="Timeout in seconds for outbound HTTP requests"
    )

    background_processing: bool = Field(
        default=True,
        description="Acknowledge webhooks immediately and review in the background"
    )

    # =========================================================================
    # Server Configuration
    # =========================================================================
    host: str = Field(
        default="0.0.0.0",
        description="Host to bind the server"
    )

    port: int = Field(
        default=3000,
        ge=1,
        le=65535,
        description="Port to bind the server"
    )

    # =========================================================================
    # Logging Configuration
    # =========================================================================
    log_level: str = Field(
        default="INFO",
        description="Logging level"
    )

    log_json_format: bool = Field(
        default=True,
        description="Enable JSON logging format"
    )

    log_requests: bool = Field(
        default=False,
        description="Enable uvicorn access logging"
    )

    # =========================================================================
    # Validators
    # =========================================================================
    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Ensure log level is valid."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of {valid_levels}")
        return v_upper

    @field_validator("llm_api_base")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")

    # =========================================================================
    # Computed Properties
    # =========================================================================
    @property
    def generation_url(self) -> str:
        """Full URL of the generateContent endpoint (without the key)."""
        return f"{self.llm_api_base}/models/{self.llm_model}:generateContent"

    def missing_credentials(self) -> List[str]:
        """
        List the credential settings that are not configured.

        Used at startup to warn about a relay that cannot work end to end.
        """
        missing = []
        if not self.webhook_secret:
            missing.append("WEBHOOK_SECRET")
        if not self.github_token:
            missing.append("GITHUB_TOKEN")
        if not self.llm_api_key:
            missing.append("LLM_API_KEY")
        return missing


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached application settings.

    Uses lru_cache to ensure settings are only loaded once per process.
    Prefer passing a Settings instance explicitly where one is available.

    Returns:
        Settings instance
    """
    return Settings()
