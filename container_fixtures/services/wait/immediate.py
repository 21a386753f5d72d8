"""Immediate wait: ready as soon as the engine reports the container running."""

from typing import Optional

from ...config import MIN_POLL_INTERVAL, settings
from ...models.runtime import ContainerIdentity
from ..engine.interface import EngineClientInterface
from .base import WaitOutcome, WaitState, WaitStatus, WaitStrategy


class ImmediateWait(WaitStrategy):
    """Default when no ports are exposed and no strategy was chosen."""

    def __init__(
        self,
        poll_interval: Optional[float] = None,
        probe_timeout: Optional[float] = None,
    ):
        super().__init__(probe_timeout=probe_timeout)
        interval = poll_interval or settings.wait.running_poll_interval
        self._poll_interval = max(interval, MIN_POLL_INTERVAL)

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
                state.last_status = inspection.status
                if inspection.running:
                    return state.outcome(WaitStatus.READY)
                if inspection.status in ("exited", "dead"):
                    return state.outcome(
                        WaitStatus.FAILED,
                        f"container exited with code {inspection.exit_code}",
                    )
            await self._sleep(state, self._poll_interval)
