"""Configuration for Handy Core.

Pydantic Settings-based configuration with environment variable and .env
support.

Usage:
    from handy_core.config import get_config

    config = get_config()
    print(config.logging.level)
    print(config.compliance_map.urgent_days)
"""

from enum import Enum
from functools import lru_cache

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class LogFormat(str, Enum):
    """Renderer used for structured log output."""

    JSON = "json"
    CONSOLE = "console"


class LoggingConfig(BaseSettings):
    """Logging settings.

    Environment Variables:
        HANDY_LOG_LEVEL: Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)
        HANDY_LOG_FORMAT: Output renderer (json, console)
    """

    model_config = SettingsConfigDict(
        env_prefix="HANDY_LOG_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    level: str = Field(
        default="INFO",
        description="Minimum level emitted",
    )
    format: LogFormat = Field(
        default=LogFormat.JSON,
        description="json for aggregation, console for local development",
    )

    @field_validator("level")
    @classmethod
    def validate_level(cls, v: str) -> str:
        """Validate and normalize log level."""
        valid_levels = {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}
        v_upper = v.upper().strip()
        if v_upper not in valid_levels:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {valid_levels}")
        return v_upper


class ComplianceMapConfig(BaseSettings):
    """Deadline urgency windows for the compliance map.

    Environment Variables:
        HANDY_MAP_URGENT_DAYS: Days before a deadline it counts as urgent
        HANDY_MAP_UPCOMING_DAYS: Days before a deadline it counts as upcoming
    """

    model_config = SettingsConfigDict(
        env_prefix="HANDY_MAP_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    urgent_days: int = Field(
        default=30,
        ge=0,
        description="Deadlines within this many days are urgent",
    )
    upcoming_days: int = Field(
        default=90,
        ge=0,
        description="Deadlines within this many days are upcoming",
    )

    @model_validator(mode="after")
    def check_window_order(self) -> "ComplianceMapConfig":
        if self.upcoming_days < self.urgent_days:
            raise ValueError("upcoming_days must be >= urgent_days")
        return self


class HandyConfig(BaseSettings):
    """Root configuration.

    Environment Variables:
        HANDY_ENV: Environment name (development, staging, production, test)

    Example:
        config = HandyConfig(
            logging=LoggingConfig(level="DEBUG", format="console"),
        )
    """

    model_config = SettingsConfigDict(
        env_prefix="HANDY_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    env: str = Field(
        default="development",
        description="Environment name (development, staging, production, test)",
    )

    logging: LoggingConfig = Field(default_factory=LoggingConfig)
    compliance_map: ComplianceMapConfig = Field(default_factory=ComplianceMapConfig)

    @field_validator("env")
    @classmethod
    def validate_env(cls, v: str) -> str:
        """Validate environment name."""
        valid_envs = {"development", "staging", "production", "test"}
        v_lower = v.lower().strip()
        if v_lower not in valid_envs:
            raise ValueError(f"Invalid environment: {v}. Must be one of: {valid_envs}")
        return v_lower


@lru_cache
def get_config() -> HandyConfig:
    """
    Get the cached configuration loaded from the environment.

    Call ``get_config.cache_clear()`` after changing HANDY_* variables.
    """
    return HandyConfig()
