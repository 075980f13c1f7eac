from __future__ import annotations

"""
Container lifecycle manager.

This module holds the non-route logic for managed containers:
- Provision: create -> start -> health poll -> ready (or cleaned-up failure)
- Destroy: idempotent stop/remove by derived name plus data directory removal
- wait_for_healthy: the readiness poll, with injectable clock and sleep

Blocking runtime and filesystem calls run in worker threads (asyncio.to_thread),
so one LifecycleManager serves many concurrent provisions.

Failure rules:
- Anything allocated by a failed provision (host port reservation, data
  directory created by this call, the container itself) is released before the
  error propagates.
- Stop-before-remove and data directory deletion are best-effort and logged.
- A cancelled provision runs a shielded best-effort cleanup, then re-raises.
"""

import asyncio
import logging
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Awaitable, Callable, List, Optional

from tmb_server.app.applications.base import ContainerApplication
from tmb_server.app.config import ServerConfig
from tmb_server.app.errors import (
    BlueprintError,
    ContainerNotFound,
    DestroyFailed,
    HealthCheckTimeout,
    ProvisionFailed,
    RuntimeRequestError,
    RuntimeUnavailable,
)
from tmb_server.app.models import ProvisionRequest, ProvisionState
from tmb_server.app.workspaces.core import host_port_from_labels
from tmb_server.app.workspaces.docker_utils import find_container_by_name
from tmb_server.app.workspaces.ports import PortAllocator
from tmb_server.app.workspaces.runtime import ContainerRuntime, ContainerSpec
from tmb_server.app.workspaces.storage import WorkspaceStore
from tmb_server.app.workspaces.tiers import build_run_resource_kwargs, limits_for

__all__ = [
    "ManagedContainer",
    "wait_for_healthy",
    "LifecycleManager",
]

_LOGGER = logging.getLogger("tangle_mcp")

Clock = Callable[[], float]
Sleep = Callable[[float], Awaitable[None]]

_MIN_INSPECT_BUDGET_S = 0.05


@dataclass
class ManagedContainer:
    container_id: str
    name: str
    service_id: int
    host_port: int
    data_path: Optional[Path] = None
    state: ProvisionState = ProvisionState.created


async def wait_for_healthy(
    runtime: ContainerRuntime,
    container_id: str,
    *,
    timeout_s: float = 30.0,
    interval_s: float = 1.0,
    clock: Clock = time.monotonic,
    sleep: Sleep = asyncio.sleep,
    logger: Optional[logging.Logger] = None,
) -> bool:
    """
    Poll the container until it reports running + healthy.

    Returns:
        True when ready; False when the container exited/died, disappeared, or
        the deadline elapsed.

    Inspection errors other than "no such container" are logged and treated as
    not yet healthy. Each inspect is bounded by the time left before the
    deadline, so a hung engine call cannot extend the poll.
    """
    log = logger or _LOGGER
    deadline = clock() + timeout_s
    attempt = 0
    while True:
        attempt += 1
        budget = max(deadline - clock(), _MIN_INSPECT_BUDGET_S)
        try:
            state = await asyncio.wait_for(asyncio.to_thread(runtime.inspect, container_id), timeout=budget)
        except asyncio.TimeoutError:
            log.warning("Health poll: inspect of %s timed out after %.2fs (attempt=%s)", container_id, budget, attempt)
        except ContainerNotFound:
            log.warning("Health poll: container %s disappeared (attempt=%s)", container_id, attempt)
            return False
        except BlueprintError as e:
            log.warning("Health poll: inspect failed for %s (attempt=%s): %s", container_id, attempt, e)
        else:
            log.debug(
                "Health poll: container=%s attempt=%s run_state=%s health=%s",
                container_id, attempt, state.run_state, state.health_state,
            )
            if state.is_ready:
                return True
            if state.is_terminal:
                log.warning("Health poll: container %s is %s", container_id, state.run_state)
                return False

        remaining = deadline - clock()
        if remaining <= 0:
            return False
        await sleep(min(interval_s, remaining))


class LifecycleManager:
    """
    Provision and destroy managed containers for one runtime.
    """

    def __init__(
        self,
        settings: ServerConfig,
        runtime: ContainerRuntime,
        ports: PortAllocator,
        store: Optional[WorkspaceStore] = None,
        *,
        clock: Clock = time.monotonic,
        sleep: Sleep = asyncio.sleep,
        logger: Optional[logging.Logger] = None,
    ) -> None:
        self.settings = settings
        self.runtime = runtime
        self.ports = ports
        self.store = store
        self._clock = clock
        self._sleep = sleep
        self._log = logger or _LOGGER

    # --------------------------
    # Provision
    # --------------------------

    async def provision(self, request: ProvisionRequest, application: ContainerApplication) -> ManagedContainer:
        """
        Create, start and health-check the container for request.service_id.

        Raises:
            RuntimeUnavailable: the engine could not be reached
            ProvisionFailed: create/start rejected, or no host port free
            HealthCheckTimeout: never healthy; the container was removed
            DestroyFailed: never healthy and the forced removal failed
        """
        s = self.settings
        sid = request.service_id
        name = application.container_name(sid)
        self._log.info("Provision %s: service_id=%s name=%s tier=%s", application.kind, sid, name, request.tier.value)

        in_use = await self._ports_in_use()
        host_port = self.ports.allocate(in_use)

        managed = ManagedContainer(container_id="", name=name, service_id=sid, host_port=host_port)
        created_dir = False
        create_fut: Optional[asyncio.Future[str]] = None
        create_returned = False
        ok = False
        try:
            if self.store is not None:
                try:
                    managed.data_path, created_dir = await asyncio.to_thread(
                        self.store.ensure, application.data_subdir, sid
                    )
                except OSError as e:
                    raise ProvisionFailed(
                        f"Failed to prepare data directory for {name}: {e}", service_id=sid
                    ) from e

            spec = self._build_spec(request, application, name, host_port, managed.data_path)

            # shielded: on cancellation the cleanup awaits the same future
            create_fut = asyncio.ensure_future(asyncio.to_thread(self.runtime.create, spec))
            try:
                managed.container_id = await asyncio.shield(create_fut)
                create_returned = True
            except RuntimeUnavailable:
                raise
            except RuntimeRequestError as e:
                raise ProvisionFailed(f"Failed to create container {name}: {e}", service_id=sid) from e
            self._log.info("Provision %s: created container id=%s host_port=%s", name, managed.container_id, host_port)

            managed.state = ProvisionState.starting
            try:
                await asyncio.to_thread(self.runtime.start, managed.container_id)
            except BlueprintError as e:
                self._log.error("Provision %s: start failed: %s", name, e)
                await self._remove_quietly(managed)
                managed.container_id = ""
                raise ProvisionFailed(f"Failed to start container {name}: {e}", service_id=sid) from e

            managed.state = ProvisionState.health_checking
            self._log.info("Provision %s: waiting for healthy (timeout=%ss)", name, s.health_timeout_seconds)
            healthy = await wait_for_healthy(
                self.runtime,
                managed.container_id,
                timeout_s=s.health_timeout_seconds,
                interval_s=s.health_interval_seconds,
                clock=self._clock,
                sleep=self._sleep,
                logger=self._log,
            )
            if not healthy:
                managed.state = ProvisionState.timed_out
                self._log.error("Provision %s: not healthy, cleaning up", name)
                container_id, managed.container_id = managed.container_id, ""
                await self._stop_and_remove(name, container_id, sid)
                raise HealthCheckTimeout(
                    f"Container {name} did not become healthy within {s.health_timeout_seconds:g}s",
                    service_id=sid,
                )

            managed.state = ProvisionState.ready
            self._log.info("Provision %s: ready on host port %s", name, host_port)
            ok = True
            return managed
        except asyncio.CancelledError:
            self._log.warning("Provision %s: cancelled, cleaning up", name)
            pending_create = create_fut if not create_returned else None
            if managed.container_id or pending_create is not None:
                await asyncio.shield(self._cleanup_cancelled(managed, pending_create))
            raise
        finally:
            if not ok:
                self.ports.release(host_port)
                if created_dir:
                    self._purge_quietly(application, sid)

    def _build_spec(
        self,
        request: ProvisionRequest,
        application: ContainerApplication,
        name: str,
        host_port: int,
        data_path: Optional[Path],
    ) -> ContainerSpec:
        s = self.settings
        binds: List[str] = []
        if data_path is not None:
            binds.append(f"{data_path}:{s.container_data_dir}:rw")
        resources = build_run_resource_kwargs(
            limits_for(request.tier),
            enforce_limits=s.enforce_tier_limits,
            enforce_storage=s.enforce_storage_limit,
        )
        return ContainerSpec(
            name=name,
            image=application.default_image(s),
            command=application.command(s),
            environment=application.build_environment(request, s),
            port_bindings={s.container_port_key: host_port},
            binds=binds,
            labels=application.labels(request, host_port),
            resources=resources,
            healthcheck=application.healthcheck(s),
            platform=s.docker_platform,
        )

    async def _ports_in_use(self) -> List[int]:
        try:
            summaries = await asyncio.to_thread(self.runtime.list)
        except RuntimeUnavailable:
            raise
        except RuntimeRequestError as e:
            raise ProvisionFailed(f"Failed to list containers: {e}") from e
        ports: List[int] = []
        for summary in summaries:
            port = host_port_from_labels(summary.labels)
            if port is not None:
                ports.append(port)
        return ports

    async def _stop_and_remove(self, name: str, container_id: str, service_id: int) -> None:
        try:
            await asyncio.to_thread(self.runtime.stop, container_id, self.settings.stop_timeout_seconds)
        except BlueprintError as e:
            self._log.warning("Stop %s failed (continuing with removal): %s", name, e)
        try:
            await asyncio.to_thread(self.runtime.remove, container_id, True)
        except ContainerNotFound:
            self._log.info("Remove %s: already gone", name)
        except BlueprintError as e:
            raise DestroyFailed(f"Failed to remove container {name}: {e}", service_id=service_id) from e

    async def _remove_quietly(self, managed: ManagedContainer) -> None:
        try:
            await asyncio.to_thread(self.runtime.remove, managed.container_id, True)
        except BlueprintError as e:
            self._log.error("Cleanup: failed to remove container %s: %s", managed.name, e)

    async def _cleanup_cancelled(
        self, managed: ManagedContainer, pending_create: Optional[asyncio.Future[str]] = None
    ) -> None:
        container_id = managed.container_id
        try:
            if not container_id and pending_create is not None:
                # the create call keeps running in its worker thread; wait for its outcome
                try:
                    container_id = await pending_create
                except BlueprintError as e:
                    self._log.info("Cleanup: create of %s did not complete: %s", managed.name, e)
                    return
            if not container_id:
                return
            await self._stop_and_remove(managed.name, container_id, managed.service_id)
        except BlueprintError as e:
            self._log.error("Cleanup after cancellation failed for %s: %s", managed.name, e)

    def _purge_quietly(self, application: ContainerApplication, service_id: int) -> None:
        if self.store is None:
            return
        try:
            self.store.purge(application.data_subdir, service_id)
        except OSError as e:
            self._log.error("Failed to remove data directory for service_id=%s: %s", service_id, e)

    # --------------------------
    # Destroy
    # --------------------------

    async def destroy(self, service_id: int, application: ContainerApplication) -> bool:
        """
        Remove the container for service_id (if any) and its data directory.

        Returns True whether or not anything existed.

        Raises:
            RuntimeUnavailable: listing failed because the engine is unreachable
            DestroyFailed: listing was rejected, or forced removal failed
        """
        name = application.container_name(service_id)
        self._log.info("Destroy %s: service_id=%s name=%s", application.kind, service_id, name)
        error: Optional[BlueprintError] = None

        try:
            summaries = await asyncio.to_thread(self.runtime.list)
        except RuntimeUnavailable as e:
            error = e
        except RuntimeRequestError as e:
            error = DestroyFailed(f"Failed to list containers: {e}", service_id=service_id)
        else:
            found = find_container_by_name(summaries, name)
            if found is None:
                self._log.warning("Destroy %s: container not found", name)
            else:
                try:
                    await self._stop_and_remove(name, found.id, service_id)
                except DestroyFailed as e:
                    error = e
                else:
                    self.ports.release(host_port_from_labels(found.labels))
                    self._log.info("Destroy %s: removed container id=%s", name, found.id)

        if self.store is not None:
            try:
                await asyncio.to_thread(self.store.purge, application.data_subdir, service_id)
            except OSError as e:
                self._log.error("Destroy %s: failed to remove data directory: %s", name, e)

        if error is not None:
            raise error
        return True
