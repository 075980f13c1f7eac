"""
Tangle MCP Blueprint (FastAPI) - README-lite

Overview
- Provisions one isolated MCP server container per blueprint service instance
  ("workspace" or "project"), waits until Docker reports it healthy, and returns
  the SSE endpoint on a published host port.
- Teardown is idempotent: missing containers and directories are not errors.

Key Design Points
- Deterministic naming: workspaces are 'mcp-svc-<service_id>', projects 'mcp-<service_id>'.
- Resource tiers (small/medium/large) map to fixed cpu/memory/storage limits.
- Per-service data directory <BLUEPRINT_DATA_DIR>/<workspaces|projects>/<service_id>,
  bind-mounted read-write at /blueprint.
- Docker is the source of truth: published host ports are recorded in container
  labels, so allocation survives restarts.
- Security: API key authentication via a configurable HTTP header.

Quickstart (local)
  $ python -m venv ./venv && source ./venv/bin/activate
  $ pip install .
  $ BLUEPRINT_DATA_DIR=/var/lib/tangle-mcp tmb-server tmb_server.app.main:app --port 8080
- Health check (unauthenticated): GET http://127.0.0.1:8080/health

Authentication
- Header name: X-API-Key (configurable via BLUEPRINT_API_KEY_HEADER)
- Header value: one of BLUEPRINT_API_KEY / BLUEPRINT_API_KEYS
- With no key configured, authentication is disabled.

Core Endpoints
- POST   /workspaces/{service_id}  {owner_public_key, tier?, workspace_name?}
         -> 201 {service_id, url, status, container_name, host_port}
- DELETE /workspaces/{service_id}  -> {service_id, deleted}
- POST   /projects/{service_id}    {owner_public_key, tier?}
- DELETE /projects/{service_id}
- POST   /jobs/{job_id}            {service_id, args} -> {job_id, service_id, result}
  Job ids: 0 create workspace, 1 destroy workspace, 2 create project, 3 destroy project.

Errors
- 409 provision failed, 504 health check timeout, 503 Docker unavailable,
  500 destroy failed, 404 unknown job, 403 wrong service id, 422 invalid args.
"""

__version__ = "0.1.0"
