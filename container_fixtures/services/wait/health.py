"""Health-Check-Wait: ready when the engine reports the container healthy."""

from typing import Optional

from ...config import MIN_POLL_INTERVAL, settings
from ...models.runtime import ContainerIdentity
from ..engine.interface import EngineClientInterface
from .base import WaitOutcome, WaitState, WaitStatus, WaitStrategy


class HealthCheckWait(WaitStrategy):
    """Poll the engine health status.

    ``healthy`` is ready, ``unhealthy`` is a failure, anything else keeps
    polling. The container must carry a health check, either from its image
    or from ``GenericContainer.with_health_check``.
    """

    def __init__(
        self,
        poll_interval: Optional[float] = None,
        probe_timeout: Optional[float] = None,
    ):
        super().__init__(probe_timeout=probe_timeout)
        interval = poll_interval or settings.wait.health_poll_interval
        self._poll_interval = max(interval, MIN_POLL_INTERVAL)

    @property
    def poll_interval(self) -> float:
        return self._poll_interval

    async def _poll(
        self,
        client: EngineClientInterface,
        identity: ContainerIdentity,
        state: WaitState,
    ) -> WaitOutcome:
        while True:
            state.attempts += 1
            inspection = await self._inspect(client, identity, state)
            if inspection is not None:
                state.last_status = inspection.health or inspection.status
                if inspection.health == "healthy":
                    return state.outcome(WaitStatus.READY)
                if inspection.status in ("exited", "dead"):
                    return state.outcome(
                        WaitStatus.FAILED,
                        f"container exited with code {inspection.exit_code}",
                    )
                if inspection.health == "unhealthy":
                    return state.outcome(
                        WaitStatus.FAILED, "health check reported unhealthy"
                    )
                if inspection.health is None and inspection.running:
                    return state.outcome(
                        WaitStatus.FAILED, "container has no health check"
                    )

            await self._sleep(state, self._poll_interval)
