"""Pytest configuration and shared fixtures."""

import asyncio
import socket
import time
import uuid
from typing import Dict, List, Optional

import pytest
import pytest_asyncio

from container_fixtures.config import settings
from container_fixtures.models import (
    ContainerIdentity,
    ContainerInspection,
    CreateOptions,
    EngineClientError,
    ExecResult,
)
from container_fixtures.services.engine.interface import EngineClientInterface


class FakeEngineClient(EngineClientInterface):
    """In-memory engine client.

    Inspections are either scripted per call through ``inspections`` (dicts
    of ContainerInspection overrides, or exceptions to raise; the last entry
    repeats) or derived from ``status``, ``health`` and ``port_bindings``.
    ``bindings_delay`` hides the bindings for that many seconds after start.
    """

    def __init__(self, host: str = "127.0.0.1"):
        self.host = host
        self.status = "running"
        self.health: Optional[str] = None
        self.exit_code: Optional[int] = None
        self.port_bindings: Dict[int, int] = {}
        self.named_port_bindings: Dict[str, Dict[int, int]] = {}
        self.bindings_delay = 0.0
        self.inspections: List = []
        self.log_lines: List[str] = []
        self.log_line_delay = 0.0
        self.follow_logs = False
        self.exec_result = ExecResult(output="", exit_code=0)

        self.built: List[Dict] = []
        self.pulled: List[str] = []
        self.created: List[CreateOptions] = []
        self.started: List[str] = []
        self.stopped: List[str] = []
        self.removed: List[str] = []
        self.execs: List = []
        self.inspect_calls = 0
        self.open_streams = 0
        self.streams_opened = 0
        self.closed = False

        self.build_error: Optional[Exception] = None
        self.pull_error: Optional[Exception] = None
        self.create_error: Optional[Exception] = None
        self.start_error: Optional[Exception] = None
        self.stop_error: Optional[Exception] = None
        self.remove_error: Optional[Exception] = None
        self.exec_error: Optional[Exception] = None

        self._started_at: Dict[str, float] = {}
        self._names: Dict[str, str] = {}
        self._bindings: Dict[str, Dict[int, int]] = {}

    async def build_image(self, context_path, build_args=None, dockerfile="Dockerfile"):
        if self.build_error:
            raise self.build_error
        self.built.append(
            {"path": context_path, "build_args": dict(build_args or {}), "dockerfile": dockerfile}
        )
        return f"built-{len(self.built)}:latest"

    async def pull_image(self, image):
        if self.pull_error:
            raise self.pull_error
        self.pulled.append(image)

    async def create_container(self, options):
        if self.create_error:
            raise self.create_error
        container_id = uuid.uuid4().hex + uuid.uuid4().hex
        self.created.append(options)
        self._names[container_id] = f"/{options.name or 'fake_' + container_id[:6]}"
        if options.name in self.named_port_bindings:
            self._bindings[container_id] = dict(self.named_port_bindings[options.name])
        return container_id

    async def start_container(self, container_id):
        if self.start_error:
            raise self.start_error
        self.started.append(container_id)
        self._started_at[container_id] = time.monotonic()

    async def stop_container(self, container_id):
        self.stopped.append(container_id)
        if self.stop_error:
            raise self.stop_error

    async def remove_container(self, container_id):
        self.removed.append(container_id)
        if self.remove_error:
            raise self.remove_error

    async def inspect_container(self, container_id):
        self.inspect_calls += 1
        overrides = {}
        if self.inspections:
            entry = self.inspections.pop(0) if len(self.inspections) > 1 else self.inspections[0]
            if isinstance(entry, Exception):
                raise entry
            overrides = entry

        started_at = self._started_at.get(container_id, time.monotonic())
        published = time.monotonic() - started_at >= self.bindings_delay
        bindings = dict(self._bindings.get(container_id, self.port_bindings))
        fields = {
            "container_id": container_id,
            "name": self._names.get(container_id, "/fake"),
            "status": self.status,
            "health": self.health,
            "port_bindings": bindings if published else {},
            "network_mode": "bridge",
            "exit_code": self.exit_code,
        }
        fields.update(overrides)
        return ContainerInspection(**fields)

    async def exec(self, container_id, command):
        if self.exec_error:
            raise self.exec_error
        self.execs.append((container_id, command))
        return self.exec_result

    async def stream_logs(self, container_id):
        self.open_streams += 1
        self.streams_opened += 1
        try:
            for line in self.log_lines:
                if self.log_line_delay:
                    await asyncio.sleep(self.log_line_delay)
                yield line
            if self.follow_logs:
                await asyncio.Event().wait()
        finally:
            self.open_streams -= 1

    def get_host(self):
        return self.host

    async def close(self):
        self.closed = True


def unused_port() -> int:
    """A local port nothing is listening on."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as sock:
        sock.bind(("127.0.0.1", 0))
        return sock.getsockname()[1]


def make_identity(ports=(), bindings=None, network_mode="bridge", host="127.0.0.1"):
    """ContainerIdentity with optionally resolved bindings."""
    identity = ContainerIdentity(
        container_id="c0ffee" * 10 + "abcd",
        name="/test_container",
        host=host,
        exposed_ports=tuple(ports),
        network_mode=network_mode,
    )
    if bindings is not None:
        identity.resolve_ports(bindings)
    return identity


@pytest.fixture(autouse=True)
def fast_settings(request, monkeypatch):
    """Shrink polling intervals and grace periods for unit tests."""
    if request.node.get_closest_marker("integration"):
        yield
        return
    monkeypatch.setattr(settings, "port_mapping_timeout_seconds", 0.5)
    monkeypatch.setattr(settings, "port_mapping_poll_interval", 0.05)
    monkeypatch.setattr(settings, "port_wait_interval", 0.05)
    monkeypatch.setattr(settings, "port_connect_timeout", 0.5)
    monkeypatch.setattr(settings, "log_wait_reopen_interval", 0.05)
    monkeypatch.setattr(settings, "health_poll_interval", 0.05)
    monkeypatch.setattr(settings, "running_poll_interval", 0.05)
    monkeypatch.setattr(settings, "probe_timeout", 1.0)
    monkeypatch.setattr(settings, "startup_timeout_seconds", 5.0)
    yield


@pytest.fixture
def fake_client():
    """Fresh in-memory engine client."""
    return FakeEngineClient()


@pytest_asyncio.fixture
async def tcp_server():
    """Factory starting asyncio TCP servers on 127.0.0.1.

    ``await tcp_server()`` listens on a fresh port; ``await tcp_server(port)``
    listens on a given one. Returns the port.
    """
    servers = []

    async def handle(reader, writer):
        writer.close()

    async def start(port: int = 0) -> int:
        server = await asyncio.start_server(handle, "127.0.0.1", port)
        servers.append(server)
        return server.sockets[0].getsockname()[1]

    yield start

    for server in servers:
        server.close()
        await server.wait_closed()


@pytest.fixture
def engine_error():
    return EngineClientError("engine unavailable")


@pytest.fixture
def identity_factory():
    return make_identity


@pytest.fixture
def free_port():
    return unused_port()
