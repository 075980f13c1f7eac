"""
Test session bootstrap for the Tangle MCP blueprint.

- Adds tmb_server/src and tmb_client/src to sys.path so the in-repo packages
  import without an editable install.
- Registers the "docker" marker and skips such tests when no Docker daemon is reachable.
- Provides an in-memory container runtime, a fake clock and a wired BlueprintContext.
"""

from __future__ import annotations

import contextlib
import dataclasses
import os
import random
import sys
import threading
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest


def _add_sys_path(p: Path) -> None:
    """
    Prepend a filesystem path to sys.path if it's not already present.
    """
    rp = str(p.resolve())
    if rp not in sys.path:
        sys.path.insert(0, rp)


_THIS_FILE = Path(__file__).resolve()
_TESTS_DIR = _THIS_FILE.parent
_PROJECT_DIR = _TESTS_DIR.parent

for _src in (_PROJECT_DIR / "tmb_server" / "src", _PROJECT_DIR / "tmb_client" / "src"):
    if _src.exists():
        _add_sys_path(_src)

os.environ.setdefault("TMB_ALLOW_INSECURE_HTTP", "true")

from tmb_server.app.config import ServerConfig  # noqa: E402
from tmb_server.app.deps import BlueprintContext, build_context  # noqa: E402
from tmb_server.app.errors import BlueprintError, ContainerConflict, ContainerNotFound  # noqa: E402
from tmb_server.app.workspaces.runtime import ContainerSpec, ContainerState, ContainerSummary  # noqa: E402


# --------------------------
# Docker availability
# --------------------------

def _docker_available() -> Tuple[bool, str]:
    """
    Check if Docker daemon is reachable.
    Returns (available, reason_if_unavailable).
    """
    import docker

    try:
        with contextlib.closing(docker.from_env()) as client:
            client.ping()
        return True, ""
    except Exception as e:
        return False, f"Docker daemon not reachable: {e} (ensure the Docker daemon is running; set DOCKER_HOST for a remote engine)"


def pytest_configure(config: pytest.Config) -> None:
    config.addinivalue_line("markers", "unit: fast tests without external services")
    config.addinivalue_line("markers", "integration: exercises real containers end to end")
    config.addinivalue_line(
        "markers",
        "docker: mark test as requiring Docker (skipped if Docker is unavailable)",
    )


def pytest_collection_modifyitems(config: pytest.Config, items: list[pytest.Item]) -> None:
    if not any("docker" in item.keywords for item in items):
        return
    available, reason = _docker_available()
    if available:
        return
    skip_marker = pytest.mark.skip(reason=reason or "Docker daemon not reachable")
    for item in items:
        if "docker" in item.keywords:
            item.add_marker(skip_marker)


# --------------------------
# In-memory runtime
# --------------------------

class FakeRuntime:
    """
    In-memory ContainerRuntime.

    - healthy_after: inspect call (1-based, per container) from which the
      container reports running + healthy
    - states: explicit inspect script; the last entry repeats
    - fail_on: operation name -> error raised on every call of that operation
    """

    def __init__(self, *, healthy_after: int = 1) -> None:
        self.healthy_after = healthy_after
        self.states: Optional[List[ContainerState]] = None
        self.fail_on: Dict[str, BlueprintError] = {}
        self.containers: Dict[str, Dict[str, object]] = {}
        self.specs: List[ContainerSpec] = []
        self.calls: List[Tuple[object, ...]] = []
        self.closed = False
        self._seq = 0
        self._lock = threading.Lock()

    def _record(self, *call: object) -> None:
        with self._lock:
            self.calls.append(call)
        err = self.fail_on.get(str(call[0]))
        if err is not None:
            raise err

    def count(self, op: str) -> int:
        return sum(1 for c in self.calls if c[0] == op)

    def add_existing(self, name: str, labels: Optional[Dict[str, str]] = None) -> str:
        spec = ContainerSpec(name=name, image="pre-existing:latest", labels=dict(labels or {}))
        with self._lock:
            self._seq += 1
            cid = f"cid-{self._seq}"
            self.containers[cid] = {"name": name, "spec": spec, "running": True, "polls": 0}
        return cid

    def ping(self) -> None:
        self._record("ping")

    def create(self, spec: ContainerSpec) -> str:
        self._record("create", spec.name)
        with self._lock:
            if any(c["name"] == spec.name for c in self.containers.values()):
                raise ContainerConflict(f"create container {spec.name}: conflict: name already in use")
            self._seq += 1
            cid = f"cid-{self._seq}"
            self.containers[cid] = {"name": spec.name, "spec": spec, "running": False, "polls": 0}
            self.specs.append(spec)
        return cid

    def _get(self, container_id: str) -> Dict[str, object]:
        c = self.containers.get(container_id)
        if c is None:
            raise ContainerNotFound(f"no such container {container_id}")
        return c

    def start(self, container_id: str) -> None:
        self._record("start", container_id)
        self._get(container_id)["running"] = True

    def inspect(self, container_id: str) -> ContainerState:
        self._record("inspect", container_id)
        c = self._get(container_id)
        c["polls"] = int(c["polls"]) + 1
        polls = int(c["polls"])
        if self.states is not None:
            return self.states[min(polls, len(self.states)) - 1]
        if polls >= self.healthy_after:
            return ContainerState(run_state="running", health_state="healthy")
        return ContainerState(run_state="running", health_state="starting")

    def stop(self, container_id: str, timeout: Optional[int] = None) -> None:
        self._record("stop", container_id, timeout)
        self._get(container_id)["running"] = False

    def remove(self, container_id: str, force: bool = False) -> None:
        self._record("remove", container_id, force)
        with self._lock:
            if self.containers.pop(container_id, None) is None:
                raise ContainerNotFound(f"no such container {container_id}")

    def list(self) -> List[ContainerSummary]:
        self._record("list")
        with self._lock:
            return [
                ContainerSummary(id=cid, names=["/" + str(c["name"])], labels=dict(c["spec"].labels))
                for cid, c in self.containers.items()
            ]

    def close(self) -> None:
        self.closed = True


class FakeClock:
    """
    Monotonic clock advanced only by its own sleep().
    """

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start
        self.sleeps: List[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


# --------------------------
# Fixtures
# --------------------------

def make_settings(data_dir: Optional[Path], **overrides) -> ServerConfig:
    base = ServerConfig.from_env(dotenv=False)
    values = dict(
        data_dir=data_dir,
        service_id=None,
        api_keys=[],
        api_key_header_name="X-API-Key",
        workspace_image="tangle-mcp:0.1.0",
        project_image="mcp-server:latest",
        project_command=["serve"],
        container_port=3000,
        container_data_dir="/blueprint",
        healthcheck_command=None,
        host_port_min=10000,
        host_port_max=20000,
        public_host="localhost",
        health_timeout_seconds=30.0,
        health_interval_seconds=1.0,
        stop_timeout_seconds=10,
        enforce_tier_limits=True,
        enforce_storage_limit=False,
        docker_platform=None,
    )
    values.update(overrides)
    return dataclasses.replace(base, **values)


@pytest.fixture
def fake_runtime() -> FakeRuntime:
    return FakeRuntime()


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def data_root(tmp_path: Path) -> Path:
    root = tmp_path / "blueprint-data"
    root.mkdir()
    return root


@pytest.fixture
def settings(data_root: Path) -> ServerConfig:
    return make_settings(data_root)


@pytest.fixture
def context(settings: ServerConfig, fake_runtime: FakeRuntime, fake_clock: FakeClock) -> BlueprintContext:
    return build_context(
        settings,
        fake_runtime,
        rng=random.Random(1234),
        clock=fake_clock,
        sleep=fake_clock.sleep,
    )


@pytest.fixture
def settings_factory(data_root: Path):
    def _make(**overrides) -> ServerConfig:
        overrides.setdefault("data_dir", data_root)
        return make_settings(**overrides)

    return _make


@pytest.fixture
def context_factory(settings_factory, fake_runtime: FakeRuntime, fake_clock: FakeClock):
    def _make(**overrides) -> BlueprintContext:
        return build_context(
            settings_factory(**overrides),
            fake_runtime,
            rng=random.Random(1234),
            clock=fake_clock,
            sleep=fake_clock.sleep,
        )

    return _make
