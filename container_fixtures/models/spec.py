"""Container specification models.

A ContainerSpec is the frozen snapshot a GenericContainer hands to the
orchestrator. Durations are seconds; ``timedelta`` values are accepted and
converted.
"""

from datetime import timedelta
from typing import Any, Dict, List, Optional, Tuple, Union

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

SHELL_FORMS = ("CMD", "CMD-SHELL", "NONE")


def _to_seconds(v: Any) -> Any:
    if isinstance(v, timedelta):
        return v.total_seconds()
    return v


class HealthCheck(BaseModel):
    """Engine-level health check injected at create time.

    Replaces any HEALTHCHECK defined by the image. A zero duration is sent
    as the engine minimum of one millisecond.
    """

    model_config = ConfigDict(frozen=True)

    test: Union[str, Tuple[str, ...]]
    interval: float = Field(default=30.0, ge=0)
    timeout: float = Field(default=30.0, ge=0)
    retries: int = Field(default=3, ge=1)
    start_period: float = Field(default=0.0, ge=0)

    @field_validator("interval", "timeout", "start_period", mode="before")
    @classmethod
    def accept_timedelta(cls, v):
        return _to_seconds(v)

    @field_validator("test", mode="before")
    @classmethod
    def freeze_test(cls, v):
        if isinstance(v, list):
            return tuple(v)
        return v

    def test_command(self) -> List[str]:
        """Return the test in engine form.

        A plain string runs through the shell; a sequence runs directly
        unless it already names its form.
        """
        if isinstance(self.test, str):
            return ["CMD-SHELL", self.test]
        if self.test and self.test[0] in SHELL_FORMS:
            return list(self.test)
        return ["CMD", *self.test]


class BindMount(BaseModel):
    """Host path mounted into the container."""

    model_config = ConfigDict(frozen=True)

    host_path: str = Field(..., min_length=1)
    container_path: str = Field(..., min_length=1)
    mode: str = Field(default="rw", pattern=r"^(rw|ro)$")


class BuildContext(BaseModel):
    """Directory the engine builds an image from."""

    model_config = ConfigDict(frozen=True)

    path: str = Field(..., min_length=1)
    dockerfile: str = Field(default="Dockerfile")
    build_args: Dict[str, str] = Field(default_factory=dict)


class ContainerSpec(BaseModel):
    """Immutable description of a container to start."""

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    image: Optional[str] = None
    build: Optional[BuildContext] = None
    exposed_ports: Tuple[int, ...] = ()
    env: Dict[str, str] = Field(default_factory=dict)
    cmd: Optional[Tuple[str, ...]] = None
    name: Optional[str] = None
    network_mode: Optional[str] = None
    bind_mounts: Tuple[BindMount, ...] = ()
    tmpfs_mounts: Dict[str, str] = Field(default_factory=dict)
    health_check: Optional[HealthCheck] = None
    # WaitStrategy instance; None selects the default
    wait_strategy: Optional[Any] = None
    startup_timeout: Optional[float] = Field(default=None, gt=0)
    log_driver: Optional[str] = None
    labels: Dict[str, str] = Field(default_factory=dict)

    @field_validator("exposed_ports", mode="before")
    @classmethod
    def normalize_ports(cls, v):
        ports = sorted(set(int(p) for p in v))
        for port in ports:
            if not 1 <= port <= 65535:
                raise ValueError(f"Invalid port number: {port}")
        return tuple(ports)

    @field_validator("startup_timeout", mode="before")
    @classmethod
    def accept_timedelta(cls, v):
        return _to_seconds(v)

    @model_validator(mode="after")
    def check_image_source(self):
        if bool(self.image) == bool(self.build):
            raise ValueError("Exactly one of image or build context is required")
        return self

    @property
    def uses_host_network(self) -> bool:
        return self.network_mode == "host"
