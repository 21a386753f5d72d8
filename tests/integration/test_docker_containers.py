"""Integration tests against a real Docker daemon.

Uses the cristianrgreco/testcontainer:1.1.12 image, a small HTTP server
listening on 8080 with /hello-world, /env and /cmd endpoints.
"""

from contextlib import aclosing
from pathlib import Path

import docker
import httpx
import pytest
import pytest_asyncio
from docker.errors import DockerException

from container_fixtures import GenericContainer, Wait, WaitTimedOutError

IMAGE = "cristianrgreco/testcontainer"
TAG = "1.1.12"
FIXTURES = Path(__file__).parent / "fixtures"


def docker_available() -> bool:
    try:
        client = docker.from_env()
        client.ping()
        client.close()
        return True
    except (DockerException, OSError):
        return False


pytestmark = [
    pytest.mark.integration,
    pytest.mark.skipif(not docker_available(), reason="Docker daemon not reachable"),
]


@pytest.fixture(scope="module")
def docker_client():
    client = docker.from_env()
    yield client
    client.close()


@pytest_asyncio.fixture
async def managed():
    """Register started containers for stop at test teardown."""
    containers = []

    def register(container):
        containers.append(container)
        return container

    yield register

    for container in containers:
        await container.stop()


def base_url(container) -> str:
    return f"http://{container.get_host()}:{container.get_mapped_port(8080)}"


@pytest.mark.asyncio
async def test_wait_for_port(managed):
    container = managed(await GenericContainer(IMAGE, TAG).with_exposed_ports(8080).start())

    async with httpx.AsyncClient() as http:
        response = await http.get(f"{base_url(container)}/hello-world")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_wait_for_log(managed):
    container = managed(
        await GenericContainer(IMAGE, TAG)
        .with_exposed_ports(8080)
        .with_wait_strategy(Wait.for_log_message("Listening on port 8080"))
        .start()
    )

    async with httpx.AsyncClient() as http:
        response = await http.get(f"{base_url(container)}/hello-world")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_wait_for_image_health_check(managed):
    builder = await GenericContainer.from_dockerfile(
        FIXTURES / "docker-with-health-check"
    ).build()
    container = managed(
        await builder.with_exposed_ports(8080)
        .with_wait_strategy(Wait.for_health_check())
        .start()
    )

    async with httpx.AsyncClient() as http:
        response = await http.get(f"{base_url(container)}/hello-world")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_wait_for_custom_health_check(managed):
    container = managed(
        await GenericContainer(IMAGE, TAG)
        .with_exposed_ports(8080)
        .with_health_check(
            "curl -f http://localhost:8080/hello-world || exit 1",
            interval=1,
            timeout=3,
            retries=5,
            start_period=1,
        )
        .with_wait_strategy(Wait.for_health_check())
        .start()
    )

    async with httpx.AsyncClient() as http:
        response = await http.get(f"{base_url(container)}/hello-world")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_log_message_never_emitted(docker_client):
    with pytest.raises(WaitTimedOutError) as exc_info:
        await (
            GenericContainer(IMAGE, TAG)
            .with_exposed_ports(8080)
            .with_wait_strategy(Wait.for_log_message("this never appears"))
            .with_startup_timeout(3)
            .start()
        )

    leftover = docker_client.containers.list(all=True, filters={"id": exc_info.value.container_id})
    assert leftover == []


@pytest.mark.asyncio
async def test_network_mode(managed, docker_client):
    container = managed(
        await GenericContainer(IMAGE, TAG).with_network_mode("host").start()
    )

    info = docker_client.api.inspect_container(container.get_id())

    assert info["HostConfig"]["NetworkMode"] == "host"


@pytest.mark.asyncio
async def test_environment(managed):
    container = managed(
        await GenericContainer(IMAGE, TAG)
        .with_env("customKey", "customValue")
        .with_exposed_ports(8080)
        .start()
    )

    async with httpx.AsyncClient() as http:
        response = await http.get(f"{base_url(container)}/env")

    assert response.json()["customKey"] == "customValue"


@pytest.mark.asyncio
async def test_command(managed):
    container = managed(
        await GenericContainer(IMAGE, TAG)
        .with_cmd(["node", "index.js", "one", "two", "three"])
        .with_exposed_ports(8080)
        .start()
    )

    async with httpx.AsyncClient() as http:
        response = await http.get(f"{base_url(container)}/cmd")

    assert response.json() == ["/usr/local/bin/node", "/index.js", "one", "two", "three"]


@pytest.mark.asyncio
async def test_name(managed):
    container = managed(
        await GenericContainer(IMAGE, TAG).with_name("special-test-container").start()
    )

    assert container.get_name() == "/special-test-container"


@pytest.mark.asyncio
async def test_bind_mount(managed):
    source = FIXTURES / "docker" / "test.txt"
    container = managed(
        await GenericContainer(IMAGE, TAG)
        .with_bind_mount(str(source), "/tmp/test.txt")
        .with_exposed_ports(8080)
        .start()
    )

    result = await container.exec(["cat", "/tmp/test.txt"])

    assert "hello world" in result.output


@pytest.mark.asyncio
async def test_tmpfs(managed):
    container = managed(
        await GenericContainer(IMAGE, TAG)
        .with_tmpfs({"/testtmpfs": "rw"})
        .with_exposed_ports(8080)
        .start()
    )

    before = await container.exec(["ls", "/testtmpfs/test.file"])
    await container.exec(["touch", "/testtmpfs/test.file"])
    after = await container.exec(["ls", "/testtmpfs/test.file"])

    assert before.exit_code == 1
    assert after.exit_code == 0


@pytest.mark.asyncio
async def test_default_log_driver(managed, docker_client):
    container = managed(
        await GenericContainer(IMAGE, TAG).with_default_log_driver().start()
    )

    info = docker_client.api.inspect_container(container.get_id())

    assert info["HostConfig"]["LogConfig"] == {"Type": "json-file", "Config": {}}


@pytest.mark.asyncio
async def test_exec(managed):
    container = managed(await GenericContainer(IMAGE, TAG).with_exposed_ports(8080).start())

    result = await container.exec(["echo", "hello", "world"])

    assert result.exit_code == 0
    assert "hello world" in result.output


@pytest.mark.asyncio
async def test_stream_logs(managed):
    container = managed(await GenericContainer(IMAGE, TAG).with_exposed_ports(8080).start())

    async with aclosing(container.logs()) as lines:
        first = await anext(lines)

    assert "Listening on port 8080" in first


@pytest.mark.asyncio
async def test_stop_removes_container(docker_client):
    container = await GenericContainer(IMAGE, TAG).with_exposed_ports(8080).start()

    await container.stop()
    await container.stop()

    assert docker_client.containers.list(all=True, filters={"id": container.get_id()}) == []


@pytest.mark.asyncio
async def test_build_and_start(managed):
    builder = await GenericContainer.from_dockerfile(FIXTURES / "docker").build()
    container = managed(await builder.with_exposed_ports(8080).start())

    async with httpx.AsyncClient() as http:
        response = await http.get(f"{base_url(container)}/hello-world")

    assert response.status_code == 200


@pytest.mark.asyncio
async def test_build_arguments(managed):
    builder = await (
        GenericContainer.from_dockerfile(FIXTURES / "docker-with-buildargs")
        .with_build_arg("VERSION", TAG)
        .build()
    )
    container = managed(await builder.with_exposed_ports(8080).start())

    async with httpx.AsyncClient() as http:
        response = await http.get(f"{base_url(container)}/hello-world")

    assert response.status_code == 200
