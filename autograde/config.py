"""
Configuration management for AutoGrade.

Uses Pydantic Settings for type-safe configuration loading from environment variables.
All configuration is validated at startup to fail fast on misconfiguration.
"""

from decimal import Decimal
from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.

    All settings are validated at startup. Missing required fields
    will raise clear validation errors.
    """

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ==========================================================================
    # Generative Service Configuration
    # ==========================================================================
    gemini_api_key: str = Field(
        ...,
        description="API key for the Gemini OpenAI-compatible endpoint",
        min_length=10,
    )

    gemini_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai",
        description="Base URL for the OpenAI-compatible endpoint",
    )

    gemini_model: str = Field(
        default="gemini-2.5-flash",
        description="Multimodal model used for every call",
    )

    llm_temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Temperature for LLM generation (0.0 = deterministic)",
    )

    max_output_tokens: int = Field(
        default=8192,
        ge=256,
        description="Maximum tokens in a single model response",
    )

    # ==========================================================================
    # Retry Configuration
    # ==========================================================================
    max_retries: int = Field(
        default=3,
        ge=0,
        le=10,
        description="Retries after the first attempt for quota and server errors",
    )

    retry_initial_delay: float = Field(
        default=2.0,
        ge=0.0,
        description="Delay in seconds before the first retry",
    )

    retry_backoff_factor: float = Field(
        default=2.0,
        ge=1.0,
        description="Multiplier applied to the delay after every retry",
    )

    # ==========================================================================
    # Session Configuration
    # ==========================================================================
    debounce_seconds: float = Field(
        default=1.5,
        ge=0.0,
        description="Quiescence window before an edited submission is re-graded",
    )

    default_total_marks: Decimal = Field(
        default=Decimal("10"),
        gt=0,
        description="Total marks assumed when an extracted question does not state them",
    )

    # ==========================================================================
    # File Processing Configuration
    # ==========================================================================
    max_file_size_mb: float = Field(
        default=20.0,
        ge=0.1,
        le=100.0,
        description="Maximum allowed upload size in megabytes",
    )

    # ==========================================================================
    # Output Configuration
    # ==========================================================================
    output_directory: Path = Field(
        default=Path("./output"),
        description="Directory for exported sources and previews",
    )

    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Log level used by the command line application",
    )

    @field_validator("gemini_base_url")
    @classmethod
    def validate_base_url(cls, v: str) -> str:
        """Ensure base URL doesn't have trailing slash."""
        return v.rstrip("/")

    @field_validator("output_directory")
    @classmethod
    def validate_output_directory(cls, v: Path) -> Path:
        """Ensure output directory exists or can be created."""
        v.mkdir(parents=True, exist_ok=True)
        return v


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    """
    return Settings()
