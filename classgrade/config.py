"""
Configuration management for classgrade.

Uses Pydantic Settings for type-safe configuration loading from environment variables.
All configuration is validated at startup to fail fast on misconfiguration.
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class UnknownQuestionPolicy(str, Enum):
    """What the validator does with AI grades for question ids it does not know."""

    PASS = "pass"  # Keep the entry unmodified
    DROP = "drop"  # Remove the entry
    REJECT = "reject"  # Fail the whole result


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
    # AI Model Configuration
    # ==========================================================================
    ai_api_key: str = Field(
        ...,
        description="API key for the OpenAI-compatible model endpoint",
        min_length=10,
    )

    ai_base_url: str = Field(
        default="https://generativelanguage.googleapis.com/v1beta/openai",
        description="Base URL of the OpenAI-compatible endpoint",
    )

    ai_model: str = Field(
        default="gemini-2.5-flash",
        description="Model used for grading",
    )

    ai_temperature: float = Field(
        default=0.0,
        ge=0.0,
        le=1.0,
        description="Temperature for generation (0.0 = deterministic)",
    )

    ai_timeout_seconds: float = Field(
        default=120.0,
        gt=0.0,
        le=900.0,
        description="Deadline for a single grading call",
    )

    ai_max_tokens: int = Field(
        default=8192,
        ge=256,
        description="Maximum tokens in the model response",
    )

    unknown_question_policy: UnknownQuestionPolicy = Field(
        default=UnknownQuestionPolicy.PASS,
        description="Handling of AI grades that reference unknown question ids",
    )

    # ==========================================================================
    # Database Configuration
    # ==========================================================================
    database_url: str = Field(
        default="sqlite:///./classgrade.db",
        description="SQLAlchemy database URL",
    )

    database_echo: bool = Field(
        default=False,
        description="Log every SQL statement",
    )

    # ==========================================================================
    # File Storage Configuration (Cloudflare R2 / S3)
    # ==========================================================================
    r2_account_id: str | None = Field(default=None, description="Cloudflare account id")
    r2_access_key_id: str | None = Field(default=None, description="R2 access key id")
    r2_secret_access_key: str | None = Field(default=None, description="R2 secret key")
    r2_bucket_name: str | None = Field(default=None, description="Bucket holding submissions")
    r2_public_url: str | None = Field(
        default=None,
        description="Public base URL used to build links to stored files",
    )
    r2_endpoint_url: str | None = Field(
        default=None,
        description="Explicit S3 endpoint; derived from the account id when unset",
    )

    # ==========================================================================
    # HTTP Configuration
    # ==========================================================================
    api_key: str | None = Field(
        default=None,
        description="Shared key expected in the x-api-key header (disabled when unset)",
    )

    api_prefix: str = Field(
        default="",
        description="Path prefix for all API routes",
    )

    max_upload_mb: float = Field(
        default=20.0,
        ge=0.1,
        le=200.0,
        description="Maximum accepted submission size in megabytes",
    )

    log_level: str = Field(
        default="INFO",
        description="Root log level",
    )

    @field_validator("ai_base_url", "r2_public_url", "api_prefix")
    @classmethod
    def strip_trailing_slash(cls, v: str | None) -> str | None:
        """Ensure URLs and prefixes don't have a trailing slash."""
        if v is None:
            return v
        return v.rstrip("/")

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.upper()

    @property
    def storage_endpoint(self) -> str | None:
        """S3 endpoint for R2, derived from the account id unless overridden."""
        if self.r2_endpoint_url:
            return self.r2_endpoint_url
        if self.r2_account_id:
            return f"https://{self.r2_account_id}.r2.cloudflarestorage.com"
        return None

    @property
    def storage_configured(self) -> bool:
        return bool(
            self.storage_endpoint
            and self.r2_access_key_id
            and self.r2_secret_access_key
            and self.r2_bucket_name
        )

    @property
    def max_upload_bytes(self) -> int:
        return int(self.max_upload_mb * 1024 * 1024)


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.

    Uses LRU cache to ensure settings are only loaded once.
    """
    return Settings()
