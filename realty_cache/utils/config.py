"""
Environment configuration loader with validation for the location cache.

Connection settings for the cache service itself live in
``realty_cache.cache.config.ValkeyConfig``; this module covers the
application-level knobs.
"""

import os
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field, ValidationError, field_validator, model_validator
from dotenv import load_dotenv

from ..cache.exceptions import ConfigurationError


class Settings(BaseModel):
    """Application settings with validation."""

    # Database Configuration
    database_url: Optional[str] = Field(
        default=None,
        description="Database connection URL; built from the DB_* variables when unset",
    )

    # Location tiers
    static_content_ttl: int = Field(
        default=24 * 3600, ge=1, description="TTL for static location content in seconds"
    )
    dynamic_stats_ttl: int = Field(
        default=5 * 60, ge=1, description="TTL for dynamic location statistics in seconds"
    )
    compute_timeout_ms: int = Field(
        default=5000, ge=1, description="Upper bound for a single cache-miss computation"
    )

    # Health
    unhealthy_connection_errors: int = Field(
        default=10, ge=0, description="Connection errors after which the cache reports unhealthy"
    )

    # Behaviour
    cache_single_flight: bool = Field(
        default=False, description="Share one computation between concurrent misses"
    )
    log_level: str = Field(default="INFO", description="Logging level")

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        """Validate log level is one of the standard levels."""
        valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
        if v.upper() not in valid_levels:
            raise ValueError(f"Log level must be one of: {valid_levels}")
        return v.upper()

    @model_validator(mode="after")
    def validate_tier_ttls(self) -> "Settings":
        """Static content must not expire before the statistics derived alongside it."""
        if self.static_content_ttl < self.dynamic_stats_ttl:
            raise ValueError(
                "STATIC_CONTENT_TTL must be greater than or equal to DYNAMIC_STATS_TTL"
            )
        return self


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).lower() in ("true", "1", "yes", "on")


def load_config(env_file: Optional[str] = None) -> Settings:
    """
    Load configuration from environment variables and .env file.

    Args:
        env_file: Optional path to .env file. If None, looks for .env in current directory.

    Returns:
        Settings: Validated configuration object

    Raises:
        ConfigurationError: If configuration is missing or invalid
    """
    if env_file is None:
        env_file = ".env"

    if os.path.exists(env_file):
        load_dotenv(env_file)

    try:
        config_data: Dict[str, Any] = {
            "database_url": os.getenv("DATABASE_URL"),
            "static_content_ttl": int(os.getenv("STATIC_CONTENT_TTL", str(24 * 3600))),
            "dynamic_stats_ttl": int(os.getenv("DYNAMIC_STATS_TTL", str(5 * 60))),
            "compute_timeout_ms": int(os.getenv("COMPUTE_TIMEOUT_MS", "5000")),
            "unhealthy_connection_errors": int(os.getenv("UNHEALTHY_CONNECTION_ERRORS", "10")),
            "cache_single_flight": _env_bool("CACHE_SINGLE_FLIGHT", "false"),
            "log_level": os.getenv("LOG_LEVEL", "INFO"),
        }
        return Settings(**config_data)
    except (ValueError, ValidationError) as e:
        raise ConfigurationError(f"Configuration validation failed: {e}")
