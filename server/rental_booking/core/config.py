"""Configuration settings for the rental booking quote service."""

from typing import Optional

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings with Pydantic validation."""

    # Environment settings
    environment: str = Field(
        default="development",
        description="Application environment"
    )

    # Logging settings
    log_level: str = Field(
        default="INFO",
        description="Application log level"
    )

    # CORS settings
    cors_origins: list[str] = Field(
        default=["http://localhost:3000", "http://localhost:3001"],
        description="Allowed CORS origins (the dashboard front-end)"
    )

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Server host"
    )

    port: int = Field(
        default=8000,
        description="Server port"
    )

    # Tracing settings
    otlp_endpoint: Optional[str] = Field(
        default=None,
        description="OTLP collector endpoint; tracing export is disabled when unset"
    )

    # Rental backend settings
    rental_api_base_url: str = Field(
        default="http://localhost:8082",
        description="Base URL of the rental backend (catalog, pricing, bookings)"
    )

    rental_api_timeout_seconds: float = Field(
        default=10.0,
        gt=0,
        description="Timeout for a single rental backend request"
    )

    offering_catalog_page_size: int = Field(
        default=100,
        ge=1,
        le=1000,
        description="Page size used when loading the offering catalog"
    )

    # Draft settings
    draft_ttl_seconds: int = Field(
        default=3600,
        ge=60,
        description="Idle time after which an abandoned booking draft is discarded"
    )

    draft_store_size: int = Field(
        default=1000,
        ge=1,
        description="Maximum number of booking drafts kept in memory"
    )

    draft_expiry_interval_seconds: int = Field(
        default=60,
        ge=1,
        description="How often the draft expiry worker runs"
    )

    @field_validator("environment")
    @classmethod
    def validate_environment(cls, v: str) -> str:
        """Validate environment value."""
        valid_environments = ["development", "staging", "production"]
        if v.lower() not in valid_environments:
            raise ValueError(f"Environment must be one of: {valid_environments}")
        return v.lower()

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level value."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @field_validator("cors_origins", mode="before")
    @classmethod
    def parse_cors_origins(cls, v: str | list[str]) -> list[str]:
        """Parse CORS origins from string or list."""
        if isinstance(v, str):
            return [origin.strip() for origin in v.split(",")]
        return v

    @field_validator("rental_api_base_url")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        """Remove a trailing slash so paths can be appended directly."""
        return v.rstrip("/")

    @property
    def debug(self) -> bool:
        """Return True if in development mode."""
        return self.environment == "development"

    @property
    def is_production(self) -> bool:
        """Return True if in production mode."""
        return self.environment == "production"

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
    }


# Global settings instance
settings = Settings()
