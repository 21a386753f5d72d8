"""Runtime data for created and running containers."""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, NamedTuple, Optional, Tuple

from .spec import BindMount, HealthCheck


@dataclass
class CreateOptions:
    """Engine-neutral create call arguments, derived from a ContainerSpec."""

    image: str
    exposed_ports: Tuple[int, ...] = ()
    publish_ports: bool = True
    env: Dict[str, str] = field(default_factory=dict)
    cmd: Optional[List[str]] = None
    name: Optional[str] = None
    network_mode: Optional[str] = None
    bind_mounts: Tuple[BindMount, ...] = ()
    tmpfs_mounts: Dict[str, str] = field(default_factory=dict)
    health_check: Optional[HealthCheck] = None
    log_driver: Optional[str] = None
    labels: Dict[str, str] = field(default_factory=dict)


@dataclass
class ContainerInspection:
    """Subset of an engine inspect response the orchestrator relies on."""

    container_id: str
    name: str
    status: str  # created, running, exited, ...
    health: Optional[str] = None  # starting, healthy, unhealthy; None if no check
    port_bindings: Dict[int, int] = field(default_factory=dict)
    network_mode: Optional[str] = None
    exit_code: Optional[int] = None

    @property
    def running(self) -> bool:
        return self.status == "running"


@dataclass
class ContainerIdentity:
    """Identity of a started container.

    ``port_bindings`` is None until resolved and is set exactly once.
    """

    container_id: str
    name: str
    host: str
    exposed_ports: Tuple[int, ...] = ()
    network_mode: Optional[str] = None
    started_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    port_bindings: Optional[Dict[int, int]] = None

    def __post_init__(self):
        if not self.container_id:
            raise ValueError("container_id must not be empty")

    @property
    def short_id(self) -> str:
        return self.container_id[:12]

    @property
    def ports_resolved(self) -> bool:
        return self.port_bindings is not None

    def resolve_ports(self, bindings: Dict[int, int]) -> None:
        """Record the published host ports."""
        if self.port_bindings is not None:
            raise RuntimeError(
                f"Port bindings already resolved for container {self.short_id}"
            )
        self.port_bindings = dict(bindings)

    def missing_ports(self, bindings: Dict[int, int]) -> List[int]:
        """Exposed ports that have no entry in ``bindings``."""
        return [p for p in self.exposed_ports if p not in bindings]


class ExecResult(NamedTuple):
    """Combined output and exit code of a command run in a container."""

    output: str
    exit_code: int
