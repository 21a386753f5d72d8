"""Error taxonomy for container startup and interaction."""

from enum import Enum
from typing import Any, Dict, Optional


class ErrorType(str, Enum):
    """Error type enumeration."""

    BUILD_FAILED = "build_failed"
    START_FAILED = "start_failed"
    WAIT_TIMED_OUT = "wait_timed_out"
    WAIT_FAILED = "wait_failed"
    STARTUP_FAILED = "startup_failed"
    PORT_NOT_EXPOSED = "port_not_exposed"
    EXEC_FAILED = "exec_failed"
    ENGINE = "engine"


class ContainerFixtureException(Exception):
    """Base exception for container-fixtures."""

    def __init__(
        self,
        message: str,
        error_type: ErrorType = ErrorType.ENGINE,
        container_id: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ):
        self.message = message
        self.error_type = error_type
        self.container_id = container_id
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> Dict[str, Any]:
        """Flatten the error for structured logging."""
        data = {"error": self.message, "error_type": self.error_type.value}
        if self.container_id:
            data["container_id"] = self.container_id[:12]
        data.update(self.details)
        return data


class EngineClientError(ContainerFixtureException):
    """The container engine could not be reached or rejected a call."""

    def __init__(self, message: str, **kwargs):
        super().__init__(message=message, error_type=ErrorType.ENGINE, **kwargs)


class StartupFailedError(ContainerFixtureException):
    """Container did not reach the ready state.

    ``cause`` holds the primary error that aborted startup.
    """

    def __init__(
        self,
        message: str = None,
        cause: Optional[BaseException] = None,
        error_type: ErrorType = ErrorType.STARTUP_FAILED,
        **kwargs,
    ):
        self.cause = cause
        error_message = message or f"Container startup failed: {cause}"
        super().__init__(message=error_message, error_type=error_type, **kwargs)


class BuildFailedError(StartupFailedError):
    """Image build or pull failed."""

    def __init__(self, message: str = "Image build failed", **kwargs):
        super().__init__(message=message, error_type=ErrorType.BUILD_FAILED, **kwargs)


class StartFailedError(StartupFailedError):
    """Engine rejected container create or start."""

    def __init__(self, message: str = "Container start failed", **kwargs):
        super().__init__(message=message, error_type=ErrorType.START_FAILED, **kwargs)


class WaitTimedOutError(StartupFailedError):
    """Readiness was not observed before the deadline."""

    def __init__(self, timeout: float, message: str = None, **kwargs):
        self.timeout = timeout
        error_message = message or f"Container not ready after {timeout:.1f}s"
        super().__init__(
            message=error_message, error_type=ErrorType.WAIT_TIMED_OUT, **kwargs
        )


class WaitFailedError(StartupFailedError):
    """Readiness probe observed a terminal negative state."""

    def __init__(self, reason: str, message: str = None, **kwargs):
        self.reason = reason
        error_message = message or f"Container failed readiness check: {reason}"
        super().__init__(
            message=error_message, error_type=ErrorType.WAIT_FAILED, **kwargs
        )


class PortNotExposedError(ContainerFixtureException):
    """Caller asked for a port the container does not publish."""

    def __init__(self, port: int, message: str = None, **kwargs):
        self.port = port
        error_message = message or f"Port {port} is not exposed"
        super().__init__(
            message=error_message, error_type=ErrorType.PORT_NOT_EXPOSED, **kwargs
        )


class ExecFailedError(ContainerFixtureException):
    """Command could not be dispatched to the container."""

    def __init__(self, message: str = "Exec failed", **kwargs):
        super().__init__(message=message, error_type=ErrorType.EXEC_FAILED, **kwargs)
