"""Container engine client services.

This package provides the boundary to the container engine:
- interface.py: Abstract engine client contract
- docker_client.py: Docker SDK implementation
- utils.py: Executor and stream helpers for blocking SDK calls
"""

from .interface import EngineClientInterface
from .docker_client import DockerEngineClient, parse_inspection
from .utils import run_in_executor, iterate_in_executor, host_from_engine_url

__all__ = [
    "EngineClientInterface",
    "DockerEngineClient",
    "parse_inspection",
    "run_in_executor",
    "iterate_in_executor",
    "host_from_engine_url",
]
