"""Startup Orchestrator - drives a container from specification to ready.

The orchestrator follows a pipeline pattern:
1. Resolve image (build or pull)
2. Translate specification into create options
3. Create container
4. Start container
5. Resolve port bindings and run the wait strategy
6. Return a StartedContainer handle

Any failure after step 3 stops and removes the container before the error
reaches the caller.

Usage:
    orchestrator = StartupOrchestrator(client)
    container = await orchestrator.start(spec)
"""

import asyncio
import time
import uuid
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

import structlog

from ..config import settings
from ..models.errors import EngineClientError, StartupFailedError, WaitFailedError
from ..models.runtime import ContainerIdentity, ContainerInspection, CreateOptions
from ..models.spec import ContainerSpec
from .engine.interface import EngineClientInterface
from .started import StartedContainer
from .wait import Deadline, ImmediateWait, PortWait, WaitStrategy, resolve_port_bindings

logger = structlog.get_logger(__name__)

# Shared by every container this process creates
SESSION_ID = uuid.uuid4().hex


@dataclass
class StartupContext:
    """Context object passed through the startup pipeline."""

    spec: ContainerSpec
    image: Optional[str] = None
    options: Optional[CreateOptions] = None
    container_id: Optional[str] = None
    identity: Optional[ContainerIdentity] = None
    wait_strategy: Optional[WaitStrategy] = None
    started_at: float = field(default_factory=time.monotonic)

    @property
    def elapsed_ms(self) -> str:
        return f"{(time.monotonic() - self.started_at) * 1000:.1f}"


def resolve_wait_strategy(spec: ContainerSpec) -> WaitStrategy:
    """Configured strategy, else Port-Wait when ports are exposed, else immediate."""
    if spec.wait_strategy is not None:
        return spec.wait_strategy
    if spec.exposed_ports:
        return PortWait()
    return ImmediateWait()


def build_labels(spec: ContainerSpec, prefix: Optional[str] = None) -> Dict[str, str]:
    """Management labels merged with user labels."""
    prefix = prefix or settings.label_prefix
    labels = {
        f"{prefix}.managed": "true",
        f"{prefix}.session-id": SESSION_ID,
        f"{prefix}.created-at": datetime.now(timezone.utc).isoformat(),
    }
    labels.update(spec.labels)
    return labels


def build_create_options(
    spec: ContainerSpec, image: str, labels: Optional[Dict[str, str]] = None
) -> CreateOptions:
    """Map a specification onto engine create options. No side effects."""
    return CreateOptions(
        image=image,
        exposed_ports=spec.exposed_ports,
        # Host networking shares the host's ports; nothing to publish
        publish_ports=not spec.uses_host_network,
        env=dict(spec.env),
        cmd=list(spec.cmd) if spec.cmd is not None else None,
        name=spec.name,
        network_mode=spec.network_mode,
        bind_mounts=spec.bind_mounts,
        tmpfs_mounts=dict(spec.tmpfs_mounts),
        health_check=spec.health_check,
        log_driver=spec.log_driver,
        labels=dict(labels if labels is not None else spec.labels),
    )


class StartupOrchestrator:
    """Sequences image resolution, create, start and readiness."""

    def __init__(self, client: EngineClientInterface, owns_client: bool = False):
        """Initialize the orchestrator.

        Args:
            client: Engine client shared by every startup on this orchestrator
            owns_client: Hand client ownership to the started container, or
                close it when startup fails
        """
        self.client = client
        self.owns_client = owns_client

    async def start(self, spec: ContainerSpec) -> StartedContainer:
        """Start a container and wait until it is ready.

        Raises:
            StartupFailedError: any stage failed; subclasses name the stage
        """
        ctx = StartupContext(spec=spec)

        try:
            # Step 1: Resolve image
            ctx.image = await self._resolve_image(ctx)

            # Step 2: Translate specification
            ctx.options = build_create_options(spec, ctx.image, build_labels(spec))

            # Step 3: Create container
            ctx.container_id = await self.client.create_container(ctx.options)

            # Step 4: Start container
            await self.client.start_container(ctx.container_id)

            # Step 5: Resolve identity and wait for readiness
            ctx.identity = await self._resolve_identity(ctx)
            await self._wait_until_ready(ctx)

            # Step 6: Publish handle
            logger.info(
                "Container ready",
                container_id=ctx.identity.short_id,
                name=ctx.identity.name,
                image=ctx.image,
                startup_ms=ctx.elapsed_ms,
            )
            return StartedContainer(
                self.client, ctx.identity, owns_client=self.owns_client
            )

        except StartupFailedError as e:
            if e.container_id is None:
                e.container_id = ctx.container_id
            await self._cleanup(ctx, e)
            raise
        except asyncio.CancelledError:
            await self._cleanup(ctx, None)
            raise
        except Exception as e:
            await self._cleanup(ctx, e)
            raise StartupFailedError(cause=e, container_id=ctx.container_id) from e

    async def _resolve_image(self, ctx: StartupContext) -> str:
        """Build the image from its context, or pull it when missing."""
        spec = ctx.spec
        if spec.build is not None:
            return await self.client.build_image(
                spec.build.path,
                dict(spec.build.build_args),
                spec.build.dockerfile,
            )
        await self.client.pull_image(spec.image)
        return spec.image

    async def _resolve_identity(self, ctx: StartupContext) -> ContainerIdentity:
        """Read name and port bindings of the started container."""
        inspection = await self._inspect_started(ctx)
        identity = ContainerIdentity(
            container_id=ctx.container_id,
            name=inspection.name,
            host=self.client.get_host(),
            exposed_ports=ctx.spec.exposed_ports,
            network_mode=ctx.spec.network_mode or inspection.network_mode,
        )

        complete = not identity.missing_ports(inspection.port_bindings)
        if identity.network_mode != "host" and identity.exposed_ports and complete:
            identity.resolve_ports(
                {p: inspection.port_bindings[p] for p in identity.exposed_ports}
            )
        else:
            # Publication can lag start; resolution is retried once the
            # wait strategy succeeds if this grace period runs out
            await resolve_port_bindings(
                self.client,
                identity,
                timeout=settings.wait.port_mapping_timeout_seconds,
            )
        return identity

    async def _inspect_started(self, ctx: StartupContext) -> ContainerInspection:
        """Inspect a just-started container, retrying within the grace period."""
        wait_config = settings.wait
        deadline = Deadline(wait_config.port_mapping_timeout_seconds)
        attempts = 0
        while True:
            attempts += 1
            try:
                return await asyncio.wait_for(
                    self.client.inspect_container(ctx.container_id),
                    timeout=wait_config.probe_timeout,
                )
            except (EngineClientError, asyncio.TimeoutError) as e:
                if deadline.expired:
                    raise
                logger.debug(
                    "Inspect after start failed, retrying",
                    container_id=ctx.container_id[:12],
                    attempt=attempts,
                    error=str(e) or type(e).__name__,
                )
            await asyncio.sleep(
                min(wait_config.port_mapping_poll_interval, deadline.remaining())
            )

    async def _wait_until_ready(self, ctx: StartupContext) -> None:
        ctx.wait_strategy = resolve_wait_strategy(ctx.spec)
        logger.debug(
            "Waiting for container",
            container_id=ctx.identity.short_id,
            strategy=repr(ctx.wait_strategy),
        )
        await ctx.wait_strategy.wait_until_ready(
            self.client, ctx.identity, timeout=ctx.spec.startup_timeout
        )

        # Strategies other than Port-Wait never look at the bindings
        if not ctx.identity.ports_resolved:
            wait_config = settings.wait
            resolved = await resolve_port_bindings(
                self.client,
                ctx.identity,
                max_attempts=wait_config.port_resolution_attempts,
                interval=wait_config.port_mapping_poll_interval,
            )
            if not resolved:
                raise WaitFailedError(
                    reason=(
                        f"host ports for {list(ctx.identity.exposed_ports)} "
                        "were never published"
                    ),
                    container_id=ctx.container_id,
                    details={"strategy": repr(ctx.wait_strategy)},
                )

    async def _cleanup(self, ctx: StartupContext, error: Optional[BaseException]) -> None:
        """Best-effort stop and remove; never masks the original error."""
        if ctx.container_id is not None:
            logger.warning(
                "Container startup failed, removing container",
                container_id=ctx.container_id[:12],
                error=str(error) if error else "cancelled",
                error_type=type(error).__name__ if error else "CancelledError",
                elapsed_ms=ctx.elapsed_ms,
            )
            try:
                await self.client.stop_container(ctx.container_id)
            except Exception as e:
                logger.warning(
                    "Failed to stop container during cleanup",
                    container_id=ctx.container_id[:12],
                    error=str(e),
                )
            try:
                await self.client.remove_container(ctx.container_id)
            except Exception as e:
                logger.warning(
                    "Failed to remove container during cleanup",
                    container_id=ctx.container_id[:12],
                    error=str(e),
                )
        else:
            logger.warning(
                "Container startup failed before create",
                image=ctx.spec.image or (ctx.spec.build.path if ctx.spec.build else None),
                error=str(error) if error else "cancelled",
            )

        if self.owns_client:
            try:
                await self.client.close()
            except Exception as e:
                logger.warning("Failed to close engine client", error=str(e))
