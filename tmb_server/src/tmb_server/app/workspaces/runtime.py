"""Container runtime capability interface."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Protocol, Sequence


RUN_STATE_RUNNING = "running"
RUN_STATE_EXITED = "exited"
RUN_STATE_DEAD = "dead"
HEALTH_HEALTHY = "healthy"

TERMINAL_RUN_STATES = frozenset({RUN_STATE_EXITED, RUN_STATE_DEAD})


@dataclass(frozen=True)
class ContainerSpec:
    name: str
    image: str
    command: Optional[List[str]] = None
    environment: Dict[str, str] = field(default_factory=dict)
    # container port key ('3000/tcp') -> host port
    port_bindings: Dict[str, int] = field(default_factory=dict)
    # 'host_path:container_path:mode'
    binds: List[str] = field(default_factory=list)
    labels: Dict[str, str] = field(default_factory=dict)
    resources: Dict[str, object] = field(default_factory=dict)
    healthcheck: Optional[Dict[str, object]] = None
    platform: Optional[str] = None


@dataclass(frozen=True)
class ContainerState:
    run_state: Optional[str]
    health_state: Optional[str] = None

    @property
    def is_ready(self) -> bool:
        return self.run_state == RUN_STATE_RUNNING and self.health_state == HEALTH_HEALTHY

    @property
    def is_terminal(self) -> bool:
        return self.run_state in TERMINAL_RUN_STATES


@dataclass(frozen=True)
class ContainerSummary:
    id: str
    names: Sequence[str]
    labels: Dict[str, str] = field(default_factory=dict)


class ContainerRuntime(Protocol):
    """
    Blocking container engine operations.

    Implementations must be safe to call from several threads at once and raise
    RuntimeUnavailable / RuntimeRequestError (or its subclasses) on failure.
    """

    def ping(self) -> None:
        ...

    def create(self, spec: ContainerSpec) -> str:
        ...

    def start(self, container_id: str) -> None:
        ...

    def inspect(self, container_id: str) -> ContainerState:
        ...

    def stop(self, container_id: str, timeout: Optional[int] = None) -> None:
        ...

    def remove(self, container_id: str, force: bool = False) -> None:
        ...

    def list(self) -> List[ContainerSummary]:
        ...

    def close(self) -> None:
        ...
