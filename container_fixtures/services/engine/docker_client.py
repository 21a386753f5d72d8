"""Docker SDK implementation of the engine client.

Every SDK call is blocking and runs on the default executor. SDK and
transport exceptions are translated into the container-fixtures taxonomy
here so nothing above this module imports ``docker``.
"""

import os
import threading
import uuid
from typing import Any, AsyncIterator, Dict, Optional, Sequence, Union

import docker
import structlog
from docker.errors import APIError, BuildError, DockerException, ImageNotFound, NotFound
from docker.types import LogConfig
from docker.utils import parse_repository_tag

from ...config import DockerConfig, settings
from ...models.errors import (
    BuildFailedError,
    EngineClientError,
    ExecFailedError,
    StartFailedError,
)
from ...models.runtime import ContainerInspection, CreateOptions, ExecResult
from .interface import EngineClientInterface
from .utils import (
    aiter_lines,
    decode_chunk,
    host_from_engine_url,
    iterate_in_executor,
    run_in_executor,
)

logger = structlog.get_logger(__name__)

NANOSECONDS = 1_000_000_000

# The engine reads a zero health check duration as "inherit from the image"
MIN_HEALTHCHECK_NS = 1_000_000

# SDK and transport failures (requests errors subclass OSError)
ENGINE_ERRORS = (DockerException, OSError)


def _ns(seconds: float) -> int:
    return int(seconds * NANOSECONDS)


def _health_ns(seconds: float) -> int:
    return max(_ns(seconds), MIN_HEALTHCHECK_NS)


class DockerEngineClient(EngineClientInterface):
    """Engine client backed by ``docker.DockerClient``.

    The SDK client is created lazily on first use so constructing this
    object never touches the daemon.
    """

    def __init__(
        self,
        client: Optional[docker.DockerClient] = None,
        config: Optional[DockerConfig] = None,
    ):
        """Initialize the engine client.

        Args:
            client: Existing SDK client to use instead of one built from config
            config: Docker configuration; defaults to the global settings
        """
        self._config = config or settings.docker
        self._client = client
        self._client_lock = threading.Lock()

    def _connect(self) -> docker.DockerClient:
        with self._client_lock:
            if self._client is None:
                try:
                    if self._config.docker_host:
                        self._client = docker.DockerClient(
                            base_url=self._config.docker_host,
                            timeout=self._config.docker_timeout,
                        )
                    else:
                        self._client = docker.from_env(
                            timeout=self._config.docker_timeout
                        )
                except ENGINE_ERRORS as e:
                    raise EngineClientError(
                        f"Cannot connect to Docker engine: {e}"
                    ) from e
                logger.debug(
                    "Docker client initialized",
                    base_url=self._client.api.base_url,
                )
            return self._client

    async def _get_client(self) -> docker.DockerClient:
        if self._client is not None:
            return self._client
        return await run_in_executor(self._connect)

    def get_host(self) -> str:
        if self._config.host_override:
            return self._config.host_override
        if self._config.docker_host:
            return host_from_engine_url(self._config.docker_host)
        if self._client is not None:
            return host_from_engine_url(self._client.api.base_url)
        return host_from_engine_url(os.environ.get("DOCKER_HOST"))

    # ------------------------------------------------------------------
    # Images
    # ------------------------------------------------------------------

    async def build_image(
        self,
        context_path: str,
        build_args: Optional[Dict[str, str]] = None,
        dockerfile: str = "Dockerfile",
    ) -> str:
        client = await self._get_client()
        tag = f"container-fixtures-{uuid.uuid4().hex[:12]}:latest"

        logger.info(
            "Building image",
            context=context_path,
            dockerfile=dockerfile,
            build_args=sorted((build_args or {}).keys()),
        )
        try:
            image, _ = await run_in_executor(
                client.images.build,
                path=context_path,
                dockerfile=dockerfile,
                buildargs=build_args or {},
                tag=tag,
                rm=True,
            )
        except BuildError as e:
            raise BuildFailedError(
                message=f"Image build failed: {e.msg}", cause=e
            ) from e
        except (TypeError, *ENGINE_ERRORS) as e:
            raise BuildFailedError(message=f"Image build failed: {e}", cause=e) from e

        logger.info("Built image", tag=tag, image_id=image.short_id)
        return tag

    async def pull_image(self, image: str) -> None:
        client = await self._get_client()
        try:
            await run_in_executor(client.images.get, image)
            return
        except ImageNotFound:
            if not self._config.pull_missing_images:
                raise BuildFailedError(
                    message=f"Image {image} not present and pulling is disabled"
                )
        except ENGINE_ERRORS as e:
            raise BuildFailedError(
                message=f"Failed to look up image {image}: {e}", cause=e
            ) from e

        repository, tag = parse_repository_tag(image)
        logger.info("Pulling image", repository=repository, tag=tag or "latest")
        try:
            await run_in_executor(client.images.pull, repository, tag=tag or "latest")
        except ENGINE_ERRORS as e:
            raise BuildFailedError(
                message=f"Failed to pull image {image}: {e}", cause=e
            ) from e

    # ------------------------------------------------------------------
    # Containers
    # ------------------------------------------------------------------

    def create_kwargs(self, options: CreateOptions) -> Dict[str, Any]:
        """Translate CreateOptions into ``containers.create`` keyword arguments."""
        kwargs: Dict[str, Any] = {
            "image": options.image,
            "environment": dict(options.env),
            "labels": dict(options.labels),
        }
        if options.cmd is not None:
            kwargs["command"] = list(options.cmd)
        if options.name:
            kwargs["name"] = options.name
        if options.network_mode:
            kwargs["network_mode"] = options.network_mode
        if options.exposed_ports and options.publish_ports:
            kwargs["ports"] = {f"{port}/tcp": None for port in options.exposed_ports}
        if options.bind_mounts:
            kwargs["volumes"] = [
                f"{m.host_path}:{m.container_path}:{m.mode}"
                for m in options.bind_mounts
            ]
        if options.tmpfs_mounts:
            kwargs["tmpfs"] = dict(options.tmpfs_mounts)
        if options.health_check is not None:
            hc = options.health_check
            kwargs["healthcheck"] = {
                "test": hc.test_command(),
                "interval": _health_ns(hc.interval),
                "timeout": _health_ns(hc.timeout),
                "retries": hc.retries,
                "start_period": _health_ns(hc.start_period),
            }
        if options.log_driver:
            kwargs["log_config"] = LogConfig(type=options.log_driver, config={})
        return kwargs

    async def create_container(self, options: CreateOptions) -> str:
        client = await self._get_client()
        kwargs = self.create_kwargs(options)
        try:
            container = await run_in_executor(client.containers.create, **kwargs)
        except ENGINE_ERRORS as e:
            raise StartFailedError(
                message=f"Failed to create container from {options.image}: {e}",
                cause=e,
            ) from e

        logger.debug(
            "Created container",
            container_id=container.id[:12],
            image=options.image,
        )
        return container.id

    async def start_container(self, container_id: str) -> None:
        client = await self._get_client()
        try:
            await run_in_executor(client.api.start, container_id)
        except ENGINE_ERRORS as e:
            raise StartFailedError(
                message=f"Failed to start container: {e}",
                cause=e,
                container_id=container_id,
            ) from e

    async def stop_container(self, container_id: str) -> None:
        client = await self._get_client()
        try:
            await run_in_executor(
                client.api.stop,
                container_id,
                timeout=self._config.stop_timeout_seconds,
            )
        except NotFound:
            logger.debug("Container already gone", container_id=container_id[:12])
        except ENGINE_ERRORS as e:
            raise EngineClientError(
                f"Failed to stop container: {e}", container_id=container_id
            ) from e

    async def remove_container(self, container_id: str) -> None:
        client = await self._get_client()
        try:
            await run_in_executor(
                client.api.remove_container, container_id, v=True, force=True
            )
        except NotFound:
            logger.debug("Container already removed", container_id=container_id[:12])
        except APIError as e:
            # Removal requested twice
            if e.status_code == 409:
                logger.debug(
                    "Container removal already in progress",
                    container_id=container_id[:12],
                )
                return
            raise EngineClientError(
                f"Failed to remove container: {e}", container_id=container_id
            ) from e
        except ENGINE_ERRORS as e:
            raise EngineClientError(
                f"Failed to remove container: {e}", container_id=container_id
            ) from e

    async def inspect_container(self, container_id: str) -> ContainerInspection:
        client = await self._get_client()
        try:
            attrs = await run_in_executor(client.api.inspect_container, container_id)
        except NotFound as e:
            raise EngineClientError(
                "Container not found",
                container_id=container_id,
                details={"not_found": True},
            ) from e
        except ENGINE_ERRORS as e:
            raise EngineClientError(
                f"Failed to inspect container: {e}", container_id=container_id
            ) from e
        return parse_inspection(attrs)

    async def exec(
        self, container_id: str, command: Union[str, Sequence[str]]
    ) -> ExecResult:
        client = await self._get_client()
        cmd = command if isinstance(command, str) else list(command)
        try:
            exec_id = await run_in_executor(
                client.api.exec_create, container_id, cmd, stdout=True, stderr=True
            )
            output = await run_in_executor(client.api.exec_start, exec_id["Id"])
            info = await run_in_executor(client.api.exec_inspect, exec_id["Id"])
        except ENGINE_ERRORS as e:
            raise ExecFailedError(
                message=f"Failed to exec {cmd!r}: {e}", container_id=container_id
            ) from e

        exit_code = info.get("ExitCode")
        return ExecResult(
            output=decode_chunk(output or b""),
            exit_code=exit_code if exit_code is not None else -1,
        )

    async def stream_logs(self, container_id: str) -> AsyncIterator[str]:
        client = await self._get_client()
        try:
            stream = await run_in_executor(
                client.api.logs,
                container_id,
                stream=True,
                follow=True,
                stdout=True,
                stderr=True,
            )
        except ENGINE_ERRORS as e:
            raise EngineClientError(
                f"Failed to open log stream: {e}", container_id=container_id
            ) from e

        try:
            async for line in aiter_lines(iterate_in_executor(stream)):
                yield line
        finally:
            # Unblocks a read still parked in the executor
            close = getattr(stream, "close", None)
            if close is not None:
                close()

    async def close(self) -> None:
        if self._client is not None:
            await run_in_executor(self._client.close)
            self._client = None


def parse_inspection(attrs: Dict[str, Any]) -> ContainerInspection:
    """Build a ContainerInspection from a raw inspect response."""
    state = attrs.get("State") or {}
    health = (state.get("Health") or {}).get("Status")
    host_config = attrs.get("HostConfig") or {}
    ports = (attrs.get("NetworkSettings") or {}).get("Ports") or {}

    bindings: Dict[int, int] = {}
    for key, entries in ports.items():
        port, _, protocol = key.partition("/")
        if protocol not in ("", "tcp") or not entries:
            continue
        host_port = next((e.get("HostPort") for e in entries if e.get("HostPort")), None)
        if host_port:
            bindings[int(port)] = int(host_port)

    return ContainerInspection(
        container_id=attrs.get("Id", ""),
        name=attrs.get("Name", ""),
        status=state.get("Status", "unknown"),
        health=health,
        port_bindings=bindings,
        network_mode=host_config.get("NetworkMode"),
        exit_code=state.get("ExitCode"),
    )
