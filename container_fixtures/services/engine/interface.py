"""Contract between the orchestrator and a container engine."""

from abc import ABC, abstractmethod
from typing import AsyncIterator, Dict, Optional, Sequence, Union

from ...models.runtime import ContainerInspection, CreateOptions, ExecResult


class EngineClientInterface(ABC):
    """Operations the orchestrator, wait strategies and handles need.

    Implementations must be safe to share between concurrent startups.
    Transport failures raise EngineClientError; wait strategies treat that
    as transient.
    """

    @abstractmethod
    async def build_image(
        self,
        context_path: str,
        build_args: Optional[Dict[str, str]] = None,
        dockerfile: str = "Dockerfile",
    ) -> str:
        """Build an image and return its reference. Raises BuildFailedError."""

    @abstractmethod
    async def pull_image(self, image: str) -> None:
        """Make ``image`` available locally. Raises BuildFailedError."""

    @abstractmethod
    async def create_container(self, options: CreateOptions) -> str:
        """Create a container and return its id. Raises StartFailedError."""

    @abstractmethod
    async def start_container(self, container_id: str) -> None:
        """Start a created container. Raises StartFailedError."""

    @abstractmethod
    async def stop_container(self, container_id: str) -> None:
        """Stop a container; a missing container is not an error."""

    @abstractmethod
    async def remove_container(self, container_id: str) -> None:
        """Remove a container; a missing container is not an error."""

    @abstractmethod
    async def inspect_container(self, container_id: str) -> ContainerInspection:
        """Return the current state of a container."""

    @abstractmethod
    async def exec(
        self, container_id: str, command: Union[str, Sequence[str]]
    ) -> ExecResult:
        """Run a command and return its output. Raises ExecFailedError."""

    @abstractmethod
    def stream_logs(self, container_id: str) -> AsyncIterator[str]:
        """Follow container logs from the beginning, one line at a time."""

    @abstractmethod
    def get_host(self) -> str:
        """Address on which published ports are reachable."""

    async def close(self) -> None:
        """Release engine connections."""
