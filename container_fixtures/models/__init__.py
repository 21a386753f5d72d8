"""Data models for container-fixtures."""

from .spec import BindMount, BuildContext, ContainerSpec, HealthCheck
from .runtime import ContainerIdentity, ContainerInspection, CreateOptions, ExecResult
from .errors import (
    ErrorType,
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

__all__ = [
    # Specification models
    "BindMount",
    "BuildContext",
    "ContainerSpec",
    "HealthCheck",
    # Runtime models
    "ContainerIdentity",
    "ContainerInspection",
    "CreateOptions",
    "ExecResult",
    # Error models
    "ErrorType",
    "ContainerFixtureException",
    "EngineClientError",
    "StartupFailedError",
    "BuildFailedError",
    "StartFailedError",
    "WaitTimedOutError",
    "WaitFailedError",
    "PortNotExposedError",
    "ExecFailedError",
]
