"""Fluent builder for test containers."""

from typing import Dict, List, Optional, Sequence, Union

import structlog

from .config import settings
from .models.spec import BindMount, BuildContext, ContainerSpec, HealthCheck
from .services.engine import DockerEngineClient, EngineClientInterface
from .services.orchestrator import StartupOrchestrator
from .services.started import StartedContainer
from .services.wait import WaitStrategy

logger = structlog.get_logger(__name__)


class GenericContainer:
    """Configure and start a disposable container.

    Every ``with_*`` method mutates this builder and returns it. ``start()``
    freezes the current configuration into a ContainerSpec, so changes made
    afterwards never reach a container that is already starting.

    Usage:
        container = await (
            GenericContainer("cristianrgreco/testcontainer", "1.1.12")
            .with_exposed_ports(8080)
            .with_env("customKey", "customValue")
            .start()
        )
        url = f"http://{container.get_host()}:{container.get_mapped_port(8080)}"
    """

    def __init__(
        self,
        image: Optional[str] = None,
        tag: Optional[str] = None,
        client: Optional[EngineClientInterface] = None,
    ):
        """Initialize the builder.

        Args:
            image: Image repository, optionally with a tag
            tag: Tag appended to ``image``
            client: Engine client; a DockerEngineClient is created per start
                when omitted
        """
        self._image = f"{image}:{tag}" if image and tag else image
        self._build_path: Optional[str] = None
        self._dockerfile = "Dockerfile"
        self._build_args: Dict[str, str] = {}
        self._exposed_ports: List[int] = []
        self._env: Dict[str, str] = {}
        self._cmd: Optional[List[str]] = None
        self._name: Optional[str] = None
        self._network_mode: Optional[str] = None
        self._bind_mounts: List[BindMount] = []
        self._tmpfs: Dict[str, str] = {}
        self._health_check: Optional[HealthCheck] = None
        self._wait_strategy: Optional[WaitStrategy] = None
        self._startup_timeout: Optional[float] = None
        self._log_driver: Optional[str] = None
        self._labels: Dict[str, str] = {}
        self._client = client

    @classmethod
    def from_dockerfile(
        cls,
        context: str,
        dockerfile: str = "Dockerfile",
        client: Optional[EngineClientInterface] = None,
    ) -> "GenericContainer":
        """Container whose image is built from a directory.

        The build runs on ``build()`` or, at the latest, on ``start()``.
        """
        container = cls(client=client)
        container._build_path = str(context)
        container._dockerfile = dockerfile
        return container

    @property
    def image(self) -> Optional[str]:
        return self._image

    def with_exposed_ports(self, *ports: int) -> "GenericContainer":
        for port in ports:
            port = int(port)
            if not 1 <= port <= 65535:
                raise ValueError(f"Invalid port number: {port}")
            if port not in self._exposed_ports:
                self._exposed_ports.append(port)
        return self

    def with_env(self, key: str, value: str) -> "GenericContainer":
        self._env[key] = str(value)
        return self

    def with_cmd(self, cmd: Sequence[str]) -> "GenericContainer":
        if isinstance(cmd, str):
            raise TypeError("cmd must be a sequence of arguments, not a string")
        self._cmd = [str(arg) for arg in cmd]
        return self

    def with_name(self, name: str) -> "GenericContainer":
        self._name = name
        return self

    def with_network_mode(self, network_mode: str) -> "GenericContainer":
        self._network_mode = network_mode
        return self

    def with_bind_mount(
        self, host_path: str, container_path: str, mode: str = "rw"
    ) -> "GenericContainer":
        self._bind_mounts.append(
            BindMount(host_path=str(host_path), container_path=container_path, mode=mode)
        )
        return self

    def with_tmpfs(self, mounts: Dict[str, str]) -> "GenericContainer":
        """Mount tmpfs filesystems, e.g. ``{"/scratch": "rw,size=64m"}``."""
        self._tmpfs.update(mounts)
        return self

    def with_health_check(
        self,
        test: Union[HealthCheck, str, Sequence[str]],
        interval: float = 30.0,
        timeout: float = 30.0,
        retries: int = 3,
        start_period: float = 0.0,
    ) -> "GenericContainer":
        """Inject a health check; replaces the image's own HEALTHCHECK.

        Durations are seconds or ``timedelta``.
        """
        if isinstance(test, HealthCheck):
            self._health_check = test
        else:
            self._health_check = HealthCheck(
                test=test,
                interval=interval,
                timeout=timeout,
                retries=retries,
                start_period=start_period,
            )
        return self

    def with_wait_strategy(self, wait_strategy: WaitStrategy) -> "GenericContainer":
        self._wait_strategy = wait_strategy
        return self

    def with_startup_timeout(self, seconds: float) -> "GenericContainer":
        """Deadline for the wait strategy unless it sets its own."""
        if seconds <= 0:
            raise ValueError("startup timeout must be positive")
        self._startup_timeout = float(seconds)
        return self

    def with_default_log_driver(self) -> "GenericContainer":
        """Use the engine's json-file driver regardless of daemon defaults."""
        self._log_driver = settings.default_log_driver
        return self

    def with_labels(self, labels: Dict[str, str]) -> "GenericContainer":
        self._labels.update(labels)
        return self

    def with_build_arg(self, key: str, value: str) -> "GenericContainer":
        if self._build_path is None:
            raise ValueError("Build arguments require GenericContainer.from_dockerfile()")
        self._build_args[key] = str(value)
        return self

    def to_spec(self) -> ContainerSpec:
        """Snapshot the current configuration."""
        build = None
        if self._build_path is not None:
            build = BuildContext(
                path=self._build_path,
                dockerfile=self._dockerfile,
                build_args=dict(self._build_args),
            )
        return ContainerSpec(
            image=self._image,
            build=build,
            exposed_ports=tuple(self._exposed_ports),
            env=dict(self._env),
            cmd=tuple(self._cmd) if self._cmd is not None else None,
            name=self._name,
            network_mode=self._network_mode,
            bind_mounts=tuple(self._bind_mounts),
            tmpfs_mounts=dict(self._tmpfs),
            health_check=self._health_check,
            wait_strategy=self._wait_strategy,
            startup_timeout=self._startup_timeout,
            log_driver=self._log_driver,
            labels=dict(self._labels),
        )

    async def build(self) -> "GenericContainer":
        """Build the image now instead of on ``start()``.

        Raises:
            BuildFailedError: engine failed to build the image
        """
        if self._build_path is None:
            return self

        client = self._client or DockerEngineClient()
        try:
            self._image = await client.build_image(
                self._build_path, dict(self._build_args), self._dockerfile
            )
        finally:
            if self._client is None:
                await client.close()
        self._build_path = None
        self._build_args = {}
        return self

    async def start(self) -> StartedContainer:
        """Create, start and wait for the container.

        Raises:
            StartupFailedError: startup failed; the container was removed
        """
        spec = self.to_spec()
        logger.debug(
            "Starting container",
            image=spec.image or f"build:{spec.build.path}",
            exposed_ports=list(spec.exposed_ports),
        )
        owns_client = self._client is None
        client = self._client or DockerEngineClient()
        return await StartupOrchestrator(client, owns_client=owns_client).start(spec)

    def __repr__(self) -> str:
        source = self._image or f"build:{self._build_path}"
        return f"GenericContainer({source!r}, ports={self._exposed_ports})"
