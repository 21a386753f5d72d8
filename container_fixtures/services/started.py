"""Handle for a started, ready container."""

import asyncio
from typing import AsyncIterator, Sequence, Union

import structlog

from ..models.errors import ExecFailedError, PortNotExposedError
from ..models.runtime import ContainerIdentity, ExecResult
from .engine.interface import EngineClientInterface

logger = structlog.get_logger(__name__)


class StartedContainer:
    """A running container that passed its wait strategy.

    The handle is the only owner of the container: ``stop()`` stops and
    removes it, and is safe to call more than once.

    Usage:
        async with await GenericContainer("nginx:alpine").with_exposed_ports(80).start() as c:
            port = c.get_mapped_port(80)
    """

    def __init__(
        self,
        client: EngineClientInterface,
        identity: ContainerIdentity,
        owns_client: bool = False,
    ):
        """Initialize the handle.

        Args:
            client: Engine client the container was started with
            identity: Identity of the started container
            owns_client: Close the client when the container is stopped
        """
        self._client = client
        self._identity = identity
        self._owns_client = owns_client
        self._stopped = False
        self._stop_lock = asyncio.Lock()

    @property
    def identity(self) -> ContainerIdentity:
        return self._identity

    @property
    def stopped(self) -> bool:
        return self._stopped

    def get_id(self) -> str:
        return self._identity.container_id

    def get_name(self) -> str:
        """Engine-assigned name, with the engine's leading slash."""
        return self._identity.name

    def get_host(self) -> str:
        """Address on which mapped ports are reachable."""
        return self._identity.host

    def get_mapped_port(self, port: int) -> int:
        """Host port published for a container port.

        Raises:
            PortNotExposedError: port was not declared, or has no host port
        """
        port = int(port)
        if port not in self._identity.exposed_ports:
            raise PortNotExposedError(port, container_id=self.get_id())
        if self._identity.network_mode == "host":
            return port
        bindings = self._identity.port_bindings or {}
        if port not in bindings:
            raise PortNotExposedError(
                port,
                message=f"Port {port} has no published host port",
                container_id=self.get_id(),
            )
        return bindings[port]

    async def exec(self, command: Union[str, Sequence[str]]) -> ExecResult:
        """Run a command in the container.

        A non-zero exit code is returned, not raised.

        Raises:
            ExecFailedError: command could not be dispatched
        """
        if self._stopped:
            raise ExecFailedError(
                message="Container has been stopped", container_id=self.get_id()
            )
        result = await self._client.exec(self.get_id(), command)
        logger.debug(
            "Exec finished",
            container_id=self._identity.short_id,
            exit_code=result.exit_code,
        )
        return result

    def logs(self) -> AsyncIterator[str]:
        """Follow the container log from its first line.

        Each call opens a new stream; close it with ``aclose()`` or by
        leaving an ``async for`` loop through ``contextlib.aclosing``.
        """
        return self._client.stream_logs(self.get_id())

    async def stop(self) -> None:
        """Stop and remove the container. Later calls are no-ops."""
        async with self._stop_lock:
            if self._stopped:
                return

            container_id = self.get_id()
            logger.info(
                "Stopping container",
                container_id=self._identity.short_id,
                name=self._identity.name,
            )
            try:
                await self._client.stop_container(container_id)
            finally:
                await self._client.remove_container(container_id)
            self._stopped = True

            if self._owns_client:
                await self._client.close()

    async def __aenter__(self) -> "StartedContainer":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()

    def __repr__(self) -> str:
        return (
            f"StartedContainer(id={self._identity.short_id!r}, "
            f"name={self._identity.name!r}, stopped={self._stopped})"
        )
