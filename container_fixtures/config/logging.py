"""Logging configuration."""

from pydantic import Field, validator
from pydantic_settings import BaseSettings


class LoggingConfig(BaseSettings):
    """structlog output settings."""

    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @validator("log_level")
    def normalize_log_level(cls, v):
        """Accept lowercase level names."""
        level = v.upper()
        if level not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Unknown log level: {v}")
        return level

    @validator("log_format")
    def validate_log_format(cls, v):
        """Only console and json renderers are supported."""
        if v not in ("console", "json"):
            raise ValueError("log_format must be 'console' or 'json'")
        return v

    class Config:
        env_prefix = "CONTAINER_FIXTURES_"
        extra = "ignore"
