"""Wait strategy base class and per-evaluation state.

A strategy object only holds configuration. Each ``evaluate`` call creates
its own WaitState, so one strategy instance can serve concurrent startups.
"""

import asyncio
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass
from enum import Enum
from typing import Optional

import structlog

from ...config import settings
from ...models.errors import EngineClientError, WaitFailedError, WaitTimedOutError
from ...models.runtime import ContainerIdentity, ContainerInspection
from ..engine.interface import EngineClientInterface

logger = structlog.get_logger(__name__)


class WaitStatus(str, Enum):
    """Terminal result of a readiness evaluation."""

    READY = "ready"
    TIMED_OUT = "timed_out"
    FAILED = "failed"


class Deadline:
    """Monotonic deadline for one evaluation."""

    def __init__(self, timeout: float):
        self.timeout = timeout
        self._started_at = time.monotonic()
        self._expires_at = self._started_at + timeout

    def remaining(self) -> float:
        return max(0.0, self._expires_at - time.monotonic())

    @property
    def expired(self) -> bool:
        return time.monotonic() >= self._expires_at

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self._started_at


@dataclass
class WaitState:
    """Progress of one evaluation; discarded when it terminates."""

    deadline: Deadline
    attempts: int = 0
    last_status: Optional[str] = None

    @property
    def elapsed(self) -> float:
        return self.deadline.elapsed

    def outcome(self, status: WaitStatus, reason: Optional[str] = None) -> "WaitOutcome":
        return WaitOutcome(
            status=status,
            reason=reason,
            attempts=self.attempts,
            elapsed=self.elapsed,
            last_status=self.last_status,
        )


@dataclass
class WaitOutcome:
    """Result of ``WaitStrategy.evaluate``."""

    status: WaitStatus
    reason: Optional[str] = None
    attempts: int = 0
    elapsed: float = 0.0
    last_status: Optional[str] = None

    @property
    def ready(self) -> bool:
        return self.status == WaitStatus.READY


class WaitStrategy(ABC):
    """Readiness predicate evaluated after a container starts."""

    def __init__(self, probe_timeout: Optional[float] = None):
        self._startup_timeout: Optional[float] = None
        self._probe_timeout = probe_timeout or settings.wait.probe_timeout

    @property
    def startup_timeout(self) -> Optional[float]:
        return self._startup_timeout

    def with_startup_timeout(self, seconds: float) -> "WaitStrategy":
        """Override the deadline for this strategy."""
        if seconds <= 0:
            raise ValueError("startup timeout must be positive")
        self._startup_timeout = float(seconds)
        return self

    def resolve_timeout(self, default: Optional[float] = None) -> float:
        if self._startup_timeout is not None:
            return self._startup_timeout
        if default is not None:
            return default
        return settings.wait.startup_timeout_seconds

    async def evaluate(
        self,
        client: EngineClientInterface,
        identity: ContainerIdentity,
        deadline: Deadline,
    ) -> WaitOutcome:
        """Poll until ready, failed, or the deadline passes."""
        state = WaitState(deadline=deadline)
        try:
            outcome = await asyncio.wait_for(
                self._poll(client, identity, state), timeout=deadline.remaining()
            )
        except asyncio.TimeoutError:
            outcome = state.outcome(WaitStatus.TIMED_OUT)

        logger.debug(
            "Wait strategy finished",
            strategy=type(self).__name__,
            container_id=identity.short_id,
            status=outcome.status.value,
            attempts=outcome.attempts,
            elapsed_ms=f"{outcome.elapsed * 1000:.1f}",
        )
        return outcome

    async def wait_until_ready(
        self,
        client: EngineClientInterface,
        identity: ContainerIdentity,
        timeout: Optional[float] = None,
    ) -> WaitOutcome:
        """Evaluate and raise on anything but READY.

        Raises:
            WaitTimedOutError: deadline passed without readiness
            WaitFailedError: probe observed a terminal negative state
        """
        deadline = Deadline(self.resolve_timeout(timeout))
        outcome = await self.evaluate(client, identity, deadline)

        if outcome.status == WaitStatus.READY:
            return outcome
        details = {
            "strategy": type(self).__name__,
            "attempts": outcome.attempts,
            "last_status": outcome.last_status,
        }
        if outcome.status == WaitStatus.TIMED_OUT:
            raise WaitTimedOutError(
                timeout=deadline.timeout,
                container_id=identity.container_id,
                details=details,
            )
        raise WaitFailedError(
            reason=outcome.reason or "unknown",
            container_id=identity.container_id,
            details=details,
        )

    @abstractmethod
    async def _poll(
        self,
        client: EngineClientInterface,
        identity: ContainerIdentity,
        state: WaitState,
    ) -> WaitOutcome:
        """Probe until a terminal outcome; cancelled at the deadline."""

    async def _sleep(self, state: WaitState, interval: float) -> None:
        await asyncio.sleep(min(interval, state.deadline.remaining()))

    async def _inspect(
        self,
        client: EngineClientInterface,
        identity: ContainerIdentity,
        state: WaitState,
    ) -> Optional[ContainerInspection]:
        """Inspect once; transient failures return None."""
        timeout = min(self._probe_timeout, state.deadline.remaining())
        if timeout <= 0:
            return None
        try:
            return await asyncio.wait_for(
                client.inspect_container(identity.container_id), timeout=timeout
            )
        except (EngineClientError, asyncio.TimeoutError) as e:
            state.last_status = f"inspect failed: {str(e) or type(e).__name__}"
            logger.debug(
                "Transient inspect failure",
                container_id=identity.short_id,
                attempt=state.attempts,
                error=str(e),
            )
            return None

    def __repr__(self) -> str:
        return f"{type(self).__name__}(startup_timeout={self._startup_timeout})"
