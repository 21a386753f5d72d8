"""Readiness polling configuration."""

from pydantic import Field
from pydantic_settings import BaseSettings

# Floor for any inspect polling loop
MIN_POLL_INTERVAL = 0.05


class WaitConfig(BaseSettings):
    """Timeouts and polling cadence for wait strategies."""

    # Overall readiness deadline
    startup_timeout_seconds: float = Field(default=60.0, gt=0, le=3600)

    # Port publication can lag container start
    port_mapping_timeout_seconds: float = Field(default=5.0, ge=0, le=120)
    port_mapping_poll_interval: float = Field(default=0.1, gt=0, le=5)

    # Port-Wait
    port_wait_interval: float = Field(default=0.1, gt=0, le=5)
    port_connect_timeout: float = Field(default=1.0, gt=0, le=30)
    port_resolution_attempts: int = Field(default=10, ge=1, le=1000)

    # Log-Wait
    log_wait_reopen_interval: float = Field(default=0.1, gt=0, le=5)

    # Health-Check-Wait and immediate wait
    health_poll_interval: float = Field(default=0.1, ge=MIN_POLL_INTERVAL, le=10)
    running_poll_interval: float = Field(default=0.1, ge=MIN_POLL_INTERVAL, le=10)

    # Sub-timeout for a single inspect call
    probe_timeout: float = Field(default=5.0, gt=0, le=60)

    class Config:
        env_prefix = "CONTAINER_FIXTURES_"
        extra = "ignore"
