"""Container engine connection configuration."""

from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings


class DockerConfig(BaseSettings):
    """Docker engine connection and container defaults."""

    docker_host: Optional[str] = Field(default=None)
    docker_timeout: int = Field(default=60, ge=1, le=600)
    host_override: Optional[str] = Field(default=None)
    pull_missing_images: bool = Field(default=True)
    default_log_driver: str = Field(default="json-file")
    label_prefix: str = Field(default="com.container-fixtures")
    stop_timeout_seconds: int = Field(default=10, ge=0, le=300)

    class Config:
        env_prefix = "CONTAINER_FIXTURES_"
        extra = "ignore"
