"""Configuration management for container-fixtures.

A single Settings class reads ``CONTAINER_FIXTURES_*`` environment variables
(and an optional ``.env`` file) and exposes them both flat and grouped.

Usage:
    from container_fixtures.config import settings

    # Grouped access
    settings.wait.startup_timeout_seconds
    settings.docker.stop_timeout_seconds

    # Flat access
    settings.startup_timeout_seconds
"""

from typing import Optional

from pydantic import Field, validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from .docker import DockerConfig
from .logging import LoggingConfig
from .wait import MIN_POLL_INTERVAL, WaitConfig


class Settings(BaseSettings):
    """Library settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_prefix="CONTAINER_FIXTURES_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Docker engine
    docker_host: Optional[str] = Field(
        default=None,
        description="Engine URL; falls back to DOCKER_HOST and the local socket",
    )
    docker_timeout: int = Field(default=60, ge=1, le=600)
    host_override: Optional[str] = Field(
        default=None,
        description="Address reported by StartedContainer.get_host()",
    )
    pull_missing_images: bool = Field(default=True)
    default_log_driver: str = Field(default="json-file")
    label_prefix: str = Field(default="com.container-fixtures")
    stop_timeout_seconds: int = Field(default=10, ge=0, le=300)

    # Wait strategies
    startup_timeout_seconds: float = Field(default=60.0, gt=0, le=3600)
    port_mapping_timeout_seconds: float = Field(default=5.0, ge=0, le=120)
    port_mapping_poll_interval: float = Field(default=0.1, gt=0, le=5)
    port_wait_interval: float = Field(default=0.1, gt=0, le=5)
    port_connect_timeout: float = Field(default=1.0, gt=0, le=30)
    port_resolution_attempts: int = Field(default=10, ge=1, le=1000)
    log_wait_reopen_interval: float = Field(default=0.1, gt=0, le=5)
    health_poll_interval: float = Field(default=0.1, le=10)
    running_poll_interval: float = Field(default=0.1, le=10)
    probe_timeout: float = Field(default=5.0, gt=0, le=60)

    # Logging
    log_level: str = Field(default="INFO")
    log_format: str = Field(default="console")

    @validator("health_poll_interval", "running_poll_interval")
    def clamp_poll_interval(cls, v):
        """Never poll the engine in a busy loop."""
        return max(v, MIN_POLL_INTERVAL)

    @validator("log_level")
    def normalize_log_level(cls, v):
        """Accept lowercase level names."""
        return v.upper()

    @property
    def docker(self) -> DockerConfig:
        """Access docker configuration group."""
        return DockerConfig(
            docker_host=self.docker_host,
            docker_timeout=self.docker_timeout,
            host_override=self.host_override,
            pull_missing_images=self.pull_missing_images,
            default_log_driver=self.default_log_driver,
            label_prefix=self.label_prefix,
            stop_timeout_seconds=self.stop_timeout_seconds,
        )

    @property
    def wait(self) -> WaitConfig:
        """Access wait strategy configuration group."""
        return WaitConfig(
            startup_timeout_seconds=self.startup_timeout_seconds,
            port_mapping_timeout_seconds=self.port_mapping_timeout_seconds,
            port_mapping_poll_interval=self.port_mapping_poll_interval,
            port_wait_interval=self.port_wait_interval,
            port_connect_timeout=self.port_connect_timeout,
            port_resolution_attempts=self.port_resolution_attempts,
            log_wait_reopen_interval=self.log_wait_reopen_interval,
            health_poll_interval=self.health_poll_interval,
            running_poll_interval=self.running_poll_interval,
            probe_timeout=self.probe_timeout,
        )

    @property
    def logging(self) -> LoggingConfig:
        """Access logging configuration group."""
        return LoggingConfig(log_level=self.log_level, log_format=self.log_format)


# Global settings instance
settings = Settings()

__all__ = [
    "Settings",
    "settings",
    "DockerConfig",
    "WaitConfig",
    "LoggingConfig",
    "MIN_POLL_INTERVAL",
]
