# investigator/config.py
"""
Centralized configuration with validation.

Uses pydantic-settings to load and validate all environment variables at startup.
Fail fast with clear error messages if required config is missing.
"""

from functools import lru_cache
from typing import ClassVar

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # App registration used against every backend
    DIRECTORY_TENANT_ID: str = Field(
        ...,
        description="Tenant ID (GUID or domain) hosting the directory and mailboxes",
    )
    CLIENT_ID: str = Field(
        ...,
        description="Application (client) ID of the app registration",
    )
    CLIENT_SECRET: str = Field(
        ...,
        description="Client secret of the app registration",
    )

    # Identity
    USER_DOMAIN: str = Field(
        ...,
        description="UPN suffix appended to an alias (e.g. contoso.com)",
    )

    # Adapter behavior
    ADAPTER_TIMEOUT_SECONDS: float = Field(
        default=30.0,
        gt=0,
        description="Upper bound for a single backend call",
    )
    ADAPTER_MAX_ATTEMPTS: int = Field(
        default=3,
        ge=1,
        le=10,
        description="Attempts per backend request when the backend throttles (429/503)",
    )

    # Output
    REPORT_DIR: str = Field(
        default=".",
        description="Directory the HTML report is written to",
    )

    # Logging
    LOG_JSON: bool = Field(
        default=False,
        description="Emit single-line JSON logs instead of human-readable lines",
    )
    LOG_LEVEL: str = Field(
        default="INFO",
        description="Log level: DEBUG, INFO, WARNING, ERROR",
    )

    VALID_LOG_LEVELS: ClassVar[set[str]] = {"DEBUG", "INFO", "WARNING", "ERROR"}

    @field_validator("LOG_LEVEL")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper().strip()
        if level not in cls.VALID_LOG_LEVELS:
            raise ValueError(f"LOG_LEVEL must be one of {sorted(cls.VALID_LOG_LEVELS)}, got '{v}'")
        return level

    @field_validator("USER_DOMAIN")
    @classmethod
    def normalize_domain(cls, v: str) -> str:
        """Accept '@contoso.com' as well as 'contoso.com'."""
        return v.strip().lstrip("@").lower()

    class Config:
        env_file = ".env"
        env_file_encoding = "utf-8"
        case_sensitive = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached application settings. Call at startup to validate config."""
    return Settings()
