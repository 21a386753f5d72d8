"""Unit tests for the started container handle."""

import asyncio

import pytest

from container_fixtures.models import (
    EngineClientError,
    ExecFailedError,
    ExecResult,
    PortNotExposedError,
)
from container_fixtures.services.started import StartedContainer


@pytest.fixture
def started(fake_client, identity_factory):
    identity = identity_factory(ports=(8080,), bindings={8080: 32768})
    return StartedContainer(fake_client, identity)


class TestPorts:
    """Tests for mapped port lookup."""

    def test_mapped_port(self, started):
        assert started.get_mapped_port(8080) == 32768

    def test_undeclared_port_raises(self, started):
        with pytest.raises(PortNotExposedError) as exc_info:
            started.get_mapped_port(9090)

        assert exc_info.value.port == 9090
        assert exc_info.value.container_id == started.get_id()

    def test_unresolved_binding_raises(self, fake_client, identity_factory):
        container = StartedContainer(fake_client, identity_factory(ports=(8080,)))

        with pytest.raises(PortNotExposedError, match="no published host port"):
            container.get_mapped_port(8080)

    def test_host_network_returns_container_port(self, fake_client, identity_factory):
        identity = identity_factory(ports=(8080,), network_mode="host")
        container = StartedContainer(fake_client, identity)

        assert container.get_mapped_port(8080) == 8080

    def test_identity_accessors(self, started):
        assert started.get_name() == "/test_container"
        assert started.get_host() == "127.0.0.1"
        assert len(started.get_id()) == 64


class TestExec:
    """Tests for exec."""

    @pytest.mark.asyncio
    async def test_non_zero_exit_is_a_result(self, started, fake_client):
        fake_client.exec_result = ExecResult(output="not found\n", exit_code=1)

        result = await started.exec(["ls", "/missing"])

        assert result.exit_code == 1
        assert result.output == "not found\n"
        assert fake_client.execs == [(started.get_id(), ["ls", "/missing"])]

    @pytest.mark.asyncio
    async def test_dispatch_failure_raises(self, started, fake_client):
        fake_client.exec_error = ExecFailedError("container is paused")

        with pytest.raises(ExecFailedError):
            await started.exec("true")

    @pytest.mark.asyncio
    async def test_exec_after_stop_raises(self, started, fake_client):
        await started.stop()

        with pytest.raises(ExecFailedError):
            await started.exec("true")
        assert fake_client.execs == []


class TestLogs:
    """Tests for log streaming."""

    @pytest.mark.asyncio
    async def test_each_call_starts_from_the_beginning(self, started, fake_client):
        fake_client.log_lines = ["one", "two"]

        first = [line async for line in started.logs()]
        second = [line async for line in started.logs()]

        assert first == second == ["one", "two"]
        assert fake_client.streams_opened == 2


class TestStop:
    """Tests for stop."""

    @pytest.mark.asyncio
    async def test_stop_removes_container(self, started, fake_client):
        await started.stop()

        assert started.stopped
        assert fake_client.stopped == [started.get_id()]
        assert fake_client.removed == [started.get_id()]

    @pytest.mark.asyncio
    async def test_double_stop_is_noop(self, started, fake_client):
        await started.stop()
        await started.stop()

        assert len(fake_client.stopped) == 1
        assert len(fake_client.removed) == 1

    @pytest.mark.asyncio
    async def test_concurrent_stop(self, started, fake_client):
        await asyncio.gather(started.stop(), started.stop(), started.stop())

        assert len(fake_client.removed) == 1

    @pytest.mark.asyncio
    async def test_remove_runs_when_stop_fails(self, started, fake_client):
        fake_client.stop_error = EngineClientError("timeout")

        with pytest.raises(EngineClientError):
            await started.stop()

        assert fake_client.removed == [started.get_id()]

    @pytest.mark.asyncio
    async def test_context_manager(self, fake_client, identity_factory):
        container = StartedContainer(fake_client, identity_factory(bindings={}))

        async with container as c:
            assert c is container

        assert container.stopped
        assert len(fake_client.removed) == 1

    @pytest.mark.asyncio
    async def test_owned_client_closed(self, fake_client, identity_factory):
        container = StartedContainer(
            fake_client, identity_factory(bindings={}), owns_client=True
        )

        await container.stop()

        assert fake_client.closed

    @pytest.mark.asyncio
    async def test_shared_client_left_open(self, started, fake_client):
        await started.stop()

        assert not fake_client.closed
