import random

import pytest

from tmb_server.app.errors import ProvisionFailed
from tmb_server.app.workspaces.ports import PortAllocator
from tmb_server.app.workspaces.storage import WorkspaceStore


@pytest.mark.unit
def test_allocate_stays_in_range_and_never_repeats():
    alloc = PortAllocator(10000, 10050, rng=random.Random(7))
    seen = {alloc.allocate() for _ in range(50)}
    assert len(seen) == 50
    assert all(10000 <= p < 10050 for p in seen)
    with pytest.raises(ProvisionFailed):
        alloc.allocate()


@pytest.mark.unit
def test_allocate_skips_ports_in_use():
    alloc = PortAllocator(20000, 20004, rng=random.Random(1))
    port = alloc.allocate(in_use=[20000, 20001, 20003, 9999])
    assert port == 20002


@pytest.mark.unit
def test_release_makes_port_available_again():
    alloc = PortAllocator(30000, 30001)
    port = alloc.allocate()
    assert port == 30000
    assert alloc.reserved() == {30000}
    alloc.release(port)
    alloc.release(None)
    assert alloc.reserved() == set()
    assert alloc.allocate() == 30000


@pytest.mark.unit
def test_claim_reserves_port():
    alloc = PortAllocator(30000, 30002)
    alloc.claim(30000)
    assert alloc.allocate() == 30001


@pytest.mark.unit
def test_invalid_range_rejected():
    with pytest.raises(ValueError):
        PortAllocator(20000, 10000)


@pytest.mark.unit
def test_store_paths_are_a_function_of_subdir_and_id(tmp_path):
    store = WorkspaceStore(tmp_path)
    assert store.path_for("workspaces", 42) == tmp_path / "workspaces" / "42"
    assert store.path_for("projects", 42) == tmp_path / "projects" / "42"
    with pytest.raises(ValueError):
        store.path_for("../etc", 1)
    with pytest.raises(ValueError):
        store.path_for("workspaces", -3)


@pytest.mark.unit
def test_store_ensure_reports_creation_and_purge_removes_tree(tmp_path):
    store = WorkspaceStore(tmp_path)
    path, created = store.ensure("workspaces", 7)
    assert created is True
    assert path.is_dir()
    (path / "state.json").write_text("{}", encoding="utf-8")

    _, created_again = store.ensure("workspaces", 7)
    assert created_again is False
    assert store.exists("workspaces", 7)

    assert store.purge("workspaces", 7) is True
    assert not store.exists("workspaces", 7)
    assert store.purge("workspaces", 7) is False
