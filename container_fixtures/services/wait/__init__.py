"""Wait strategies deciding when a started container is ready.

- base.py: WaitStrategy contract, deadline and per-evaluation state
- port.py: TCP reachability of mapped ports, port binding resolution
- log.py: log line match
- health.py: engine health status
- immediate.py: running state only
"""

from typing import Optional, Pattern, Union

from .base import Deadline, WaitOutcome, WaitState, WaitStatus, WaitStrategy
from .health import HealthCheckWait
from .immediate import ImmediateWait
from .log import LogMessageWait
from .port import PortWait, resolve_port_bindings


class Wait:
    """Factory for wait strategies.

    Usage:
        GenericContainer("redis:7").with_exposed_ports(6379).with_wait_strategy(
            Wait.for_log_message("Ready to accept connections")
        )
    """

    @staticmethod
    def for_listening_ports(*ports: int) -> PortWait:
        """Every given port (all exposed ports if none given) accepts TCP."""
        return PortWait(ports)

    @staticmethod
    def for_log_message(message: Union[str, Pattern[str]]) -> LogMessageWait:
        return LogMessageWait(message)

    @staticmethod
    def for_health_check(poll_interval: Optional[float] = None) -> HealthCheckWait:
        return HealthCheckWait(poll_interval=poll_interval)

    @staticmethod
    def no_wait() -> ImmediateWait:
        return ImmediateWait()


__all__ = [
    "Wait",
    "WaitStrategy",
    "WaitStatus",
    "WaitOutcome",
    "WaitState",
    "Deadline",
    "PortWait",
    "LogMessageWait",
    "HealthCheckWait",
    "ImmediateWait",
    "resolve_port_bindings",
]
