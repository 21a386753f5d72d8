"""Disposable containers for tests.

Builds or pulls an image, starts a container, waits until it is ready and
hands back a StartedContainer that is removed on ``stop()``.
"""

from .config import settings
from .generic_container import GenericContainer
from .models import (
    BindMount,
    BuildContext,
    ContainerSpec,
    ExecResult,
    HealthCheck,
    ContainerFixtureException,
    EngineClientError,
    StartupFailedError,
    BuildFailedError,
    StartFailedError,
    WaitTimedOutError,
    WaitFailedError,
    PortNotExposedError,
    ExecFailedError,
)
from .services import (
    DockerEngineClient,
    EngineClientInterface,
    StartedContainer,
    StartupOrchestrator,
)
from .services.wait import Wait, WaitStrategy
from .utils.logging import setup_logging

__version__ = "0.1.0"

# Keeps any structlog configuration the host application made first
setup_logging()

__all__ = [
    "settings",
    "GenericContainer",
    "StartedContainer",
    "StartupOrchestrator",
    "DockerEngineClient",
    "EngineClientInterface",
    "Wait",
    "WaitStrategy",
    "BindMount",
    "BuildContext",
    "ContainerSpec",
    "ExecResult",
    "HealthCheck",
    "ContainerFixtureException",
    "EngineClientError",
    "StartupFailedError",
    "BuildFailedError",
    "StartFailedError",
    "WaitTimedOutError",
    "WaitFailedError",
    "PortNotExposedError",
    "ExecFailedError",
    "setup_logging",
]
