"""
Centralized constants for tmb_client.

Shared defaults and well-known values used by the blueprint Python client.
"""

from __future__ import annotations

# HTTP/API defaults
DEFAULT_API_KEY_HEADER = "X-API-Key"
DEFAULT_BASE_URL = "https://127.0.0.1:8080"

# Resource tiers accepted by the server (lowercase wire form)
RESOURCE_TIERS = ("small", "medium", "large")
DEFAULT_TIER = "medium"

# Job ids
CREATE_WORKSPACE_JOB_ID = 0
DESTROY_WORKSPACE_JOB_ID = 1
CREATE_PROJECT_JOB_ID = 2
DESTROY_PROJECT_JOB_ID = 3

# Unsigned 64-bit service id bound
MAX_SERVICE_ID = 2**64 - 1

__all__ = [
    "DEFAULT_API_KEY_HEADER",
    "DEFAULT_BASE_URL",
    "RESOURCE_TIERS",
    "DEFAULT_TIER",
    "CREATE_WORKSPACE_JOB_ID",
    "DESTROY_WORKSPACE_JOB_ID",
    "CREATE_PROJECT_JOB_ID",
    "DESTROY_PROJECT_JOB_ID",
    "MAX_SERVICE_ID",
]
