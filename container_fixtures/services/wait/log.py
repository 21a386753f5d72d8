"""Log-Wait: ready once a log line matches."""

import re
from contextlib import aclosing
from typing import Optional, Pattern, Union

import structlog

from ...config import settings
from ...models.errors import EngineClientError
from ...models.runtime import ContainerIdentity
from ..engine.interface import EngineClientInterface
from .base import WaitOutcome, WaitState, WaitStatus, WaitStrategy

logger = structlog.get_logger(__name__)


class LogMessageWait(WaitStrategy):
    """Scan the container log from the start for a message.

    A ``str`` message matches as a substring, a compiled pattern with
    ``search``. The stream is re-opened from the beginning whenever it ends
    while the container is still running.
    """

    def __init__(
        self,
        message: Union[str, Pattern[str]],
        reopen_interval: Optional[float] = None,
        probe_timeout: Optional[float] = None,
    ):
        super().__init__(probe_timeout=probe_timeout)
        if not message:
            raise ValueError("log message must not be empty")
        self._message = message
        self._reopen_interval = (
            reopen_interval or settings.wait.log_wait_reopen_interval
        )

    @property
    def message(self) -> Union[str, Pattern[str]]:
        return self._message

    def matches(self, line: str) -> bool:
        if isinstance(self._message, re.Pattern):
            return self._message.search(line) is not None
        return self._message in line

    async def _poll(
        self,
        client: EngineClientInterface,
        identity: ContainerIdentity,
        state: WaitState,
    ) -> WaitOutcome:
        while True:
            state.attempts += 1
            lines_read = 0
            try:
                async with aclosing(client.stream_logs(identity.container_id)) as lines:
                    async for line in lines:
                        lines_read += 1
                        if self.matches(line):
                            state.last_status = f"matched at line {lines_read}"
                            logger.debug(
                                "Log message matched",
                                container_id=identity.short_id,
                                line_number=lines_read,
                                attempt=state.attempts,
                            )
                            return state.outcome(WaitStatus.READY)
            except EngineClientError as e:
                state.last_status = f"log stream failed: {e}"
                logger.debug(
                    "Transient log stream failure",
                    container_id=identity.short_id,
                    error=str(e),
                )
            else:
                state.last_status = f"stream ended after {lines_read} lines"
                inspection = await self._inspect(client, identity, state)
                if inspection is not None and inspection.status in ("exited", "dead"):
                    return state.outcome(
                        WaitStatus.FAILED,
                        f"container exited with code {inspection.exit_code} "
                        "before the log message appeared",
                    )

            await self._sleep(state, self._reopen_interval)

    def __repr__(self) -> str:
        message = getattr(self._message, "pattern", self._message)
        return f"LogMessageWait(message={message!r}, startup_timeout={self._startup_timeout})"
