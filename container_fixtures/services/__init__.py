"""Container startup services."""

from .engine import DockerEngineClient, EngineClientInterface
from .orchestrator import StartupOrchestrator, build_create_options, resolve_wait_strategy
from .started import StartedContainer

__all__ = [
    "DockerEngineClient",
    "EngineClientInterface",
    "StartupOrchestrator",
    "StartedContainer",
    "build_create_options",
    "resolve_wait_strategy",
]
