import asyncio

import pytest

from tmb_server.app.errors import DestroyFailed, RuntimeRequestError, RuntimeUnavailable
from tmb_server.app.jobs.create_workspace import create_workspace
from tmb_server.app.jobs.destroy_project import destroy_project
from tmb_server.app.jobs.destroy_workspace import destroy_workspace
from tmb_server.app.models import CreateWorkspaceParams
from tmb_server.app.workspaces.core import LABEL_HOST_PORT


def _provision(ctx, service_id: int) -> str:
    return asyncio.run(create_workspace(ctx, service_id, CreateWorkspaceParams(owner_public_key="5F3s")))


@pytest.mark.unit
def test_destroy_missing_workspace_is_success(context, fake_runtime, data_root):
    assert asyncio.run(destroy_workspace(context, 999)) is True
    assert fake_runtime.count("remove") == 0
    assert fake_runtime.count("stop") == 0
    assert not (data_root / "workspaces" / "999").exists()


@pytest.mark.unit
def test_destroy_removes_container_data_and_port(context, fake_runtime, data_root):
    _provision(context, 42)
    assert (data_root / "workspaces" / "42").is_dir()
    assert len(context.ports.reserved()) == 1

    assert asyncio.run(destroy_workspace(context, 42)) is True

    assert fake_runtime.containers == {}
    assert not (data_root / "workspaces" / "42").exists()
    assert context.ports.reserved() == set()
    stop_call = [c for c in fake_runtime.calls if c[0] == "stop"][0]
    assert stop_call[2] == 10


@pytest.mark.unit
def test_destroy_is_idempotent(context, fake_runtime):
    _provision(context, 5)
    assert asyncio.run(destroy_workspace(context, 5)) is True
    assert asyncio.run(destroy_workspace(context, 5)) is True
    assert fake_runtime.count("remove") == 1


@pytest.mark.unit
def test_destroy_matches_exact_name_only(context, fake_runtime):
    keep = fake_runtime.add_existing("mcp-svc-9990")
    project = fake_runtime.add_existing("mcp-999")
    assert asyncio.run(destroy_workspace(context, 999)) is True
    assert set(fake_runtime.containers) == {keep, project}


@pytest.mark.unit
def test_destroy_project_targets_project_container(context, fake_runtime, data_root):
    workspace = fake_runtime.add_existing("mcp-svc-5")
    fake_runtime.add_existing("mcp-5")
    (data_root / "projects" / "5").mkdir(parents=True)
    assert asyncio.run(destroy_project(context, 5)) is True
    assert list(fake_runtime.containers) == [workspace]
    assert not (data_root / "projects" / "5").exists()


@pytest.mark.unit
def test_destroy_releases_port_from_container_label(context, fake_runtime):
    fake_runtime.add_existing("mcp-svc-3", {LABEL_HOST_PORT: "12345"})
    context.ports.claim(12345)
    asyncio.run(destroy_workspace(context, 3))
    assert 12345 not in context.ports.reserved()


@pytest.mark.unit
def test_stop_failure_does_not_block_removal(context, fake_runtime):
    fake_runtime.add_existing("mcp-svc-11")
    fake_runtime.fail_on["stop"] = RuntimeRequestError("container not running")
    assert asyncio.run(destroy_workspace(context, 11)) is True
    assert fake_runtime.containers == {}


@pytest.mark.unit
def test_removal_failure_raises_after_data_cleanup(context, fake_runtime, data_root):
    fake_runtime.add_existing("mcp-svc-12")
    (data_root / "workspaces" / "12").mkdir(parents=True)
    fake_runtime.fail_on["remove"] = RuntimeRequestError("removal already in progress")
    with pytest.raises(DestroyFailed):
        asyncio.run(destroy_workspace(context, 12))
    assert not (data_root / "workspaces" / "12").exists()


@pytest.mark.unit
def test_listing_failure_propagates(context, fake_runtime):
    fake_runtime.fail_on["list"] = RuntimeUnavailable("Docker daemon unreachable")
    with pytest.raises(RuntimeUnavailable):
        asyncio.run(destroy_workspace(context, 1))


@pytest.mark.unit
def test_data_dir_failure_is_logged_not_raised(context, fake_runtime, data_root, monkeypatch, caplog):
    (data_root / "workspaces" / "13").mkdir(parents=True)

    def _boom(path, *args, **kwargs):
        raise PermissionError(f"permission denied: {path}")

    monkeypatch.setattr("tmb_server.app.workspaces.storage.shutil.rmtree", _boom)
    with caplog.at_level("ERROR", logger="tangle_mcp"):
        assert asyncio.run(destroy_workspace(context, 13)) is True
    assert "failed to remove data directory" in caplog.text
