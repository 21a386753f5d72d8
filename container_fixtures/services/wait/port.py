"""Port-Wait: ready once every exposed port accepts TCP connections."""

import asyncio
from typing import Dict, Iterable, Optional

import structlog

from ...config import settings
from ...models.errors import EngineClientError
from ...models.runtime import ContainerIdentity
from ..engine.interface import EngineClientInterface
from .base import Deadline, WaitOutcome, WaitState, WaitStatus, WaitStrategy

logger = structlog.get_logger(__name__)


async def resolve_port_bindings(
    client: EngineClientInterface,
    identity: ContainerIdentity,
    timeout: Optional[float] = None,
    max_attempts: Optional[int] = None,
    interval: Optional[float] = None,
    probe_timeout: Optional[float] = None,
) -> bool:
    """
    Poll inspect until every exposed port has a published host port.

    The engine may report empty bindings right after start. On success the
    bindings are recorded on ``identity``; host networking resolves to the
    container ports themselves without asking the engine.

    Args:
        client: Engine client
        identity: Started container identity
        timeout: Grace period in seconds
        max_attempts: Maximum number of inspect calls
        interval: Seconds between inspect calls
        probe_timeout: Sub-timeout for one inspect call

    Returns:
        True if bindings are resolved, False if attempts or the grace period ran out
    """
    if identity.ports_resolved:
        return True
    if identity.network_mode == "host":
        identity.resolve_ports({port: port for port in identity.exposed_ports})
        return True
    if not identity.exposed_ports:
        identity.resolve_ports({})
        return True

    wait_config = settings.wait
    if timeout is None and max_attempts is None:
        timeout = wait_config.port_mapping_timeout_seconds
    interval = interval or wait_config.port_mapping_poll_interval
    probe_timeout = probe_timeout or wait_config.probe_timeout
    deadline = Deadline(timeout) if timeout is not None else None

    attempts = 0
    bindings: Dict[int, int] = {}
    while True:
        attempts += 1
        try:
            inspection = await asyncio.wait_for(
                client.inspect_container(identity.container_id), timeout=probe_timeout
            )
            bindings = inspection.port_bindings
        except (EngineClientError, asyncio.TimeoutError) as e:
            logger.debug(
                "Port binding inspect failed",
                container_id=identity.short_id,
                attempt=attempts,
                error=str(e),
            )
        else:
            if not identity.missing_ports(bindings):
                identity.resolve_ports(
                    {port: bindings[port] for port in identity.exposed_ports}
                )
                logger.debug(
                    "Resolved port bindings",
                    container_id=identity.short_id,
                    bindings=identity.port_bindings,
                    attempts=attempts,
                )
                return True

        if max_attempts is not None and attempts >= max_attempts:
            break
        if deadline is not None and deadline.expired:
            break
        pause = interval if deadline is None else min(interval, deadline.remaining())
        await asyncio.sleep(pause)

    logger.warning(
        "Port bindings not published",
        container_id=identity.short_id,
        missing=identity.missing_ports(bindings),
        attempts=attempts,
    )
    return False


class PortWait(WaitStrategy):
    """Wait until TCP connections to the mapped host ports succeed.

    All selected ports must accept a connection; a refused or timed out
    connect only schedules another attempt.
    """

    def __init__(
        self,
        ports: Iterable[int] = (),
        interval: Optional[float] = None,
        connect_timeout: Optional[float] = None,
        resolution_attempts: Optional[int] = None,
        probe_timeout: Optional[float] = None,
    ):
        super().__init__(probe_timeout=probe_timeout)
        self._ports = tuple(sorted(set(int(p) for p in ports)))
        wait_config = settings.wait
        self._interval = interval or wait_config.port_wait_interval
        self._connect_timeout = connect_timeout or wait_config.port_connect_timeout
        self._resolution_attempts = (
            resolution_attempts or wait_config.port_resolution_attempts
        )

    @property
    def ports(self):
        return self._ports

    async def _poll(
        self,
        client: EngineClientInterface,
        identity: ContainerIdentity,
        state: WaitState,
    ) -> WaitOutcome:
        ports = self._ports or identity.exposed_ports
        undeclared = [p for p in ports if p not in identity.exposed_ports]
        if undeclared:
            return state.outcome(
                WaitStatus.FAILED, f"ports {undeclared} were never exposed"
            )
        if not ports:
            return state.outcome(WaitStatus.READY)

        if not identity.ports_resolved:
            resolved = await resolve_port_bindings(
                client,
                identity,
                max_attempts=self._resolution_attempts,
                interval=self._interval,
                probe_timeout=self._probe_timeout,
            )
            if not resolved:
                return state.outcome(
                    WaitStatus.FAILED,
                    f"host ports for {list(ports)} were never published",
                )

        host = identity.host
        pending = set(ports)
        while True:
            state.attempts += 1
            for port in sorted(pending):
                host_port = identity.port_bindings[port]
                if await self._probe(host, host_port, state):
                    pending.discard(port)
                    logger.debug(
                        "Port reachable",
                        container_id=identity.short_id,
                        port=port,
                        host_port=host_port,
                        attempt=state.attempts,
                    )
            if not pending:
                return state.outcome(WaitStatus.READY)

            state.last_status = f"waiting for ports {sorted(pending)}"
            await self._sleep(state, self._interval)

    async def _probe(self, host: str, port: int, state: WaitState) -> bool:
        timeout = min(self._connect_timeout, state.deadline.remaining())
        if timeout <= 0:
            return False
        try:
            _, writer = await asyncio.wait_for(
                asyncio.open_connection(host, port), timeout=timeout
            )
        except (OSError, asyncio.TimeoutError):
            return False
        writer.close()
        try:
            await writer.wait_closed()
        except OSError:
            pass
        return True

    def __repr__(self) -> str:
        return f"PortWait(ports={list(self._ports)}, startup_timeout={self._startup_timeout})"
