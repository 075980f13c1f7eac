from __future__ import annotations

"""
Core helpers for managed containers: naming, addressing, labels, and time.

Everything here is side-effect free and safe to call from any thread.
"""

from datetime import datetime, timezone
from typing import Iterable, Mapping, Optional

# --------------------------
# Labels (public constants)
# --------------------------

LABEL_MANAGED = "tangle.mcp.managed"
LABEL_KIND = "tangle.mcp.kind"
LABEL_SERVICE_ID = "tangle.mcp.service_id"
LABEL_TIER = "tangle.mcp.tier"
LABEL_OWNER = "tangle.mcp.owner"
LABEL_WORKSPACE_NAME = "tangle.mcp.workspace_name"
LABEL_HOST_PORT = "tangle.mcp.host_port"
LABEL_STORAGE_LIMIT = "tangle.mcp.storage_limit"
LABEL_CREATED_AT = "tangle.mcp.created_at"


# --------------------------
# Naming & addressing
# --------------------------

def container_name(service_id: int, prefix: str) -> str:
    """
    Deterministic container name for a service id, e.g. 'mcp-svc-42'.
    """
    if isinstance(service_id, bool) or not isinstance(service_id, int) or service_id < 0:
        raise ValueError(f"service_id must be a non-negative integer, got {service_id!r}")
    return f"{prefix}{service_id}"


def endpoint_url(domain: str, port: int) -> str:
    """
    Externally reachable SSE endpoint for a published host port.
    """
    return f"http://{domain}:{port}/sse"


def normalize_container_name(name: str) -> str:
    """
    Docker reports names with a leading slash ('/mcp-svc-42').
    """
    return name.lstrip("/")


def name_matches(names: Iterable[str], expected: str) -> bool:
    return any(normalize_container_name(n) == expected for n in names or ())


# --------------------------
# Label helpers
# --------------------------

def host_port_from_labels(labels: Optional[Mapping[str, str]]) -> Optional[int]:
    """
    Read the published host port recorded on a managed container.
    """
    raw = (labels or {}).get(LABEL_HOST_PORT)
    if not raw:
        return None
    try:
        return int(raw)
    except ValueError:
        return None


# --------------------------
# Time helpers
# --------------------------

def now_utc_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


__all__ = [
    "LABEL_MANAGED",
    "LABEL_KIND",
    "LABEL_SERVICE_ID",
    "LABEL_TIER",
    "LABEL_OWNER",
    "LABEL_WORKSPACE_NAME",
    "LABEL_HOST_PORT",
    "LABEL_STORAGE_LIMIT",
    "LABEL_CREATED_AT",
    "container_name",
    "endpoint_url",
    "normalize_container_name",
    "name_matches",
    "host_port_from_labels",
    "now_utc_iso",
]
