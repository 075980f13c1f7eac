import pytest

from tmb_server.app.applications import McpProjectApplication, McpWorkspaceApplication, resolve_application
from tmb_server.app.models import CreateWorkspaceParams, ProvisionRequest, ResourceTier
from tmb_server.app.workspaces.core import (
    LABEL_HOST_PORT,
    LABEL_KIND,
    LABEL_MANAGED,
    LABEL_SERVICE_ID,
    LABEL_TIER,
    container_name,
    endpoint_url,
    host_port_from_labels,
    name_matches,
    normalize_container_name,
)
from tmb_server.app.workspaces.tiers import GIB, build_run_resource_kwargs, limits_for


@pytest.mark.unit
def test_tier_limits_table():
    assert (limits_for(ResourceTier.small).cpu, limits_for(ResourceTier.small).memory) == (1.0, 1 * GIB)
    assert limits_for(ResourceTier.medium).storage == 10 * GIB
    large = limits_for(ResourceTier.large)
    assert (large.cpu, large.memory, large.storage) == (4.0, 4 * GIB, 20 * GIB)


@pytest.mark.unit
def test_tier_limits_strictly_increase():
    order = [ResourceTier.small, ResourceTier.medium, ResourceTier.large]
    limits = [limits_for(t) for t in order]
    for lower, higher in zip(limits, limits[1:]):
        assert lower.cpu < higher.cpu
        assert lower.memory < higher.memory
        assert lower.storage < higher.storage


@pytest.mark.unit
def test_limits_for_accepts_wire_value():
    assert limits_for("small") == limits_for(ResourceTier.small)


@pytest.mark.unit
def test_resource_kwargs_respect_enforcement_flags():
    medium = limits_for(ResourceTier.medium)
    assert build_run_resource_kwargs(medium) == {"nano_cpus": 2_000_000_000, "mem_limit": 2 * GIB}
    assert build_run_resource_kwargs(medium, enforce_limits=False) == {}
    with_storage = build_run_resource_kwargs(medium, enforce_storage=True)
    assert with_storage["storage_opt"] == {"size": str(10 * GIB)}


@pytest.mark.unit
def test_tier_defaults_to_medium_and_is_case_insensitive():
    assert CreateWorkspaceParams(owner_public_key="5F3s").tier is ResourceTier.medium
    assert CreateWorkspaceParams(owner_public_key="5F3s", tier="LARGE").tier is ResourceTier.large
    with pytest.raises(ValueError):
        CreateWorkspaceParams(owner_public_key="5F3s", tier="huge")


@pytest.mark.unit
def test_owner_key_must_be_non_empty():
    with pytest.raises(ValueError):
        CreateWorkspaceParams(owner_public_key="   ")


@pytest.mark.unit
def test_container_names_are_deterministic_and_distinct():
    assert container_name(42, "mcp-svc-") == "mcp-svc-42"
    assert container_name(42, "mcp-svc-") == container_name(42, "mcp-svc-")
    names = {container_name(i, "mcp-svc-") for i in [0, 1, 10, 11, 101, 2**64 - 1]}
    assert len(names) == 6
    with pytest.raises(ValueError):
        container_name(-1, "mcp-")


@pytest.mark.unit
def test_endpoint_url_format():
    assert endpoint_url("localhost", 15001) == "http://localhost:15001/sse"


@pytest.mark.unit
def test_name_normalization_strips_leading_slash():
    assert normalize_container_name("/mcp-svc-7") == "mcp-svc-7"
    assert name_matches(["/other", "/mcp-svc-7"], "mcp-svc-7")
    assert not name_matches(["/mcp-svc-70"], "mcp-svc-7")


@pytest.mark.unit
def test_host_port_label_parsing():
    assert host_port_from_labels({LABEL_HOST_PORT: "12345"}) == 12345
    assert host_port_from_labels({LABEL_HOST_PORT: "abc"}) is None
    assert host_port_from_labels(None) is None


@pytest.mark.unit
def test_application_profiles(settings):
    ws = resolve_application("workspace")
    proj = resolve_application("project")
    assert isinstance(ws, McpWorkspaceApplication)
    assert isinstance(proj, McpProjectApplication)
    assert ws.container_name(5) == "mcp-svc-5"
    assert proj.container_name(5) == "mcp-5"
    assert (ws.data_subdir, proj.data_subdir) == ("workspaces", "projects")
    assert ws.default_image(settings) == "tangle-mcp:0.1.0"
    assert ws.command(settings) is None
    assert proj.default_image(settings) == "mcp-server:latest"
    assert proj.command(settings) == ["serve"]
    with pytest.raises(ValueError):
        resolve_application("database")


@pytest.mark.unit
def test_application_environment_and_labels(settings):
    ws = resolve_application("workspace")
    req = ProvisionRequest(owner_public_key="5F3s", tier=ResourceTier.small, workspace_name="demo", service_id=9)
    assert ws.build_environment(req, settings) == {"OWNER_PUBLIC_KEY": "5F3s", "PORT": "3000"}
    labels = ws.labels(req, 12001)
    assert labels[LABEL_MANAGED] == "true"
    assert labels[LABEL_KIND] == "workspace"
    assert labels[LABEL_SERVICE_ID] == "9"
    assert labels[LABEL_TIER] == "small"
    assert labels[LABEL_HOST_PORT] == "12001"


@pytest.mark.unit
def test_healthcheck_override(settings_factory):
    ws = resolve_application("workspace")
    assert ws.healthcheck(settings_factory()) is None
    hc = ws.healthcheck(settings_factory(healthcheck_command="curl -fs localhost:3000/health"))
    assert hc["test"] == ["CMD-SHELL", "curl -fs localhost:3000/health"]
    assert hc["interval"] == 1_000_000_000
