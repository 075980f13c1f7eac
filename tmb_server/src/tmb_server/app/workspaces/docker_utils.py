from __future__ import annotations

"""
Docker implementation of the container runtime interface.

This module provides:
- DockerRuntime: blocking ContainerRuntime over the docker SDK (docker.from_env)
- Translation of docker/requests errors into the blueprint error taxonomy
- Name lookup over container listings

Every method blocks; the lifecycle manager calls them through asyncio.to_thread.
"""

import contextlib
import logging
from typing import Dict, Iterator, List, Optional, Sequence

import docker
import requests
from docker import DockerClient
from docker.errors import APIError, DockerException, ImageNotFound, NotFound

from tmb_server.app.errors import (
    ContainerConflict,
    ContainerNotFound,
    RuntimeRequestError,
    RuntimeUnavailable,
)
from tmb_server.app.workspaces.core import name_matches
from tmb_server.app.workspaces.runtime import ContainerSpec, ContainerState, ContainerSummary


__all__ = [
    "DockerRuntime",
    "translate_docker_errors",
    "find_container_by_name",
]

logger = logging.getLogger("tangle_mcp")


@contextlib.contextmanager
def translate_docker_errors(action: str, ref: str = "") -> Iterator[None]:
    """
    Re-raise docker SDK and transport errors as blueprint errors.

    - connection failures / DockerException -> RuntimeUnavailable
    - missing image -> RuntimeRequestError
    - missing container -> ContainerNotFound
    - HTTP 409 -> ContainerConflict
    - any other API error -> RuntimeRequestError
    """
    target = f" {ref}" if ref else ""
    try:
        yield
    except ImageNotFound as e:
        raise RuntimeRequestError(f"{action}{target}: image not found: {e.explanation or e}") from e
    except NotFound as e:
        raise ContainerNotFound(f"{action}{target}: no such container") from e
    except APIError as e:
        status_code = getattr(getattr(e, "response", None), "status_code", None)
        detail = getattr(e, "explanation", None) or str(e)
        if status_code == 409:
            raise ContainerConflict(f"{action}{target}: conflict: {detail}") from e
        raise RuntimeRequestError(f"{action}{target} rejected by Docker ({status_code}): {detail}") from e
    except (requests.exceptions.ConnectionError, requests.exceptions.Timeout) as e:
        raise RuntimeUnavailable(f"{action}{target}: Docker daemon unreachable: {e}") from e
    except DockerException as e:
        raise RuntimeUnavailable(f"{action}{target}: {e}") from e


def find_container_by_name(summaries: Sequence[ContainerSummary], name: str) -> Optional[ContainerSummary]:
    """
    First listed container whose normalized name equals `name`.
    """
    for s in summaries:
        if name_matches(s.names, name):
            return s
    return None


class DockerRuntime:
    """
    ContainerRuntime backed by a docker.DockerClient.

    The DockerClient is thread-safe for independent requests, so one instance is
    shared by all concurrent provisions.
    """

    def __init__(self, client: DockerClient) -> None:
        self._client = client

    @classmethod
    def from_env(cls, timeout: int = 120) -> "DockerRuntime":
        with translate_docker_errors("connect"):
            return cls(docker.from_env(timeout=timeout))

    @property
    def client(self) -> DockerClient:
        return self._client

    def ping(self) -> None:
        with translate_docker_errors("ping"):
            self._client.ping()

    def create(self, spec: ContainerSpec) -> str:
        kwargs: Dict[str, object] = {
            "name": spec.name,
            "environment": dict(spec.environment),
            "labels": dict(spec.labels),
            "detach": True,
        }
        if spec.command:
            kwargs["command"] = list(spec.command)
        if spec.port_bindings:
            kwargs["ports"] = dict(spec.port_bindings)
        if spec.binds:
            kwargs["volumes"] = list(spec.binds)
        if spec.healthcheck:
            kwargs["healthcheck"] = dict(spec.healthcheck)
        if spec.platform:
            kwargs["platform"] = spec.platform
        kwargs.update(spec.resources)

        with translate_docker_errors("create container", spec.name):
            container = self._client.containers.create(spec.image, **kwargs)
        logger.debug("Docker created container name=%s id=%s image=%s", spec.name, container.id, spec.image)
        return container.id

    def start(self, container_id: str) -> None:
        with translate_docker_errors("start container", container_id):
            self._client.containers.get(container_id).start()

    def inspect(self, container_id: str) -> ContainerState:
        with translate_docker_errors("inspect container", container_id):
            attrs = self._client.containers.get(container_id).attrs or {}
        state = attrs.get("State") or {}
        health = state.get("Health") or {}
        return ContainerState(
            run_state=(state.get("Status") or None),
            health_state=(health.get("Status") or None),
        )

    def stop(self, container_id: str, timeout: Optional[int] = None) -> None:
        with translate_docker_errors("stop container", container_id):
            c = self._client.containers.get(container_id)
            if timeout is None:
                c.stop()
            else:
                c.stop(timeout=timeout)

    def remove(self, container_id: str, force: bool = False) -> None:
        with translate_docker_errors("remove container", container_id):
            self._client.containers.get(container_id).remove(force=force)

    def list(self) -> List[ContainerSummary]:
        # sparse listing: one API call, attrs hold the raw /containers/json entry
        with translate_docker_errors("list containers"):
            containers = self._client.containers.list(all=True, sparse=True)
        out: List[ContainerSummary] = []
        for c in containers:
            attrs = getattr(c, "attrs", None) or {}
            out.append(
                ContainerSummary(
                    id=c.id,
                    names=list(attrs.get("Names") or []),
                    labels=dict(attrs.get("Labels") or {}),
                )
            )
        return out

    def close(self) -> None:
        try:
            self._client.close()
        except Exception as e:
            logger.warning("Failed to close Docker client: %s", e)
