"""
Tangle MCP Blueprint Python Client (minimal SDK)

A thin, synchronous client for the blueprint server (tmb_server).

Features:
- health()
- create_workspace(service_id, owner_public_key, tier="medium", workspace_name="")
- destroy_workspace(service_id)
- create_project(service_id, owner_public_key, tier="medium")
- destroy_project(service_id)
- submit_job(job_id, service_id, args=None)

Errors are raised by the session's raise_for_status(); with the default
requests session that is requests.HTTPError.
"""

from __future__ import annotations

import logging
from typing import Any, Dict, Optional
from urllib.parse import urlparse

import requests

from .config import get_settings as get_client_settings
from .constants import (
    CREATE_PROJECT_JOB_ID,
    CREATE_WORKSPACE_JOB_ID,
    DEFAULT_API_KEY_HEADER,
    DEFAULT_TIER,
    DESTROY_PROJECT_JOB_ID,
    DESTROY_WORKSPACE_JOB_ID,
    MAX_SERVICE_ID,
    RESOURCE_TIERS,
)

logger = logging.getLogger(__name__)


class BlueprintClient:
    """
    Minimal synchronous client for the blueprint API.

    Example:
        client = BlueprintClient(base_url="https://blueprint.example.test", api_key="my-secret")
        ws = client.create_workspace(42, owner_public_key="5F3s...", tier="small")
        print(ws["url"])  # http://<public host>:<port>/sse
        client.destroy_workspace(42)
    """

    def __init__(
        self,
        base_url: Optional[str] = None,
        api_key: Optional[str] = None,
        api_key_header_name: Optional[str] = None,
        session: Optional[requests.Session] = None,
        *,
        allow_insecure_http: Optional[bool] = None,
        request_timeout: Optional[int] = None,
        create_timeout: Optional[int] = None,
    ) -> None:
        cfg = get_client_settings()
        self.allow_insecure_http = bool(cfg.allow_insecure_http if allow_insecure_http is None else allow_insecure_http)

        raw_base_url = (base_url or cfg.base_url_normalized).rstrip("/")
        self._enforce_transport_policy(raw_base_url)
        self.base_url = raw_base_url
        self.api_key = api_key if api_key is not None else cfg.api_key
        self.api_key_header_name = api_key_header_name or cfg.api_key_header_name or DEFAULT_API_KEY_HEADER
        self.request_timeout = int(request_timeout if request_timeout is not None else cfg.request_timeout)
        self.create_timeout = int(create_timeout if create_timeout is not None else cfg.create_timeout)
        self._session = session or requests.Session()

    # -----------------------
    # Internal helpers
    # -----------------------

    def _enforce_transport_policy(self, url: str) -> None:
        """
        Ensure callers explicitly opt in before using insecure HTTP transports.
        """
        parsed = urlparse(url)
        scheme = (parsed.scheme or "").lower()
        if scheme not in ("http", "https"):
            raise ValueError(f"Unsupported blueprint base_url scheme: {scheme or 'missing'}")
        if scheme == "http" and not self.allow_insecure_http:
            raise ValueError(
                "Plain HTTP base URLs are disabled. "
                "Set allow_insecure_http=True (or TMB_ALLOW_INSECURE_HTTP=true) "
                "only when running in a trusted development environment."
            )

    def _headers(self) -> Dict[str, str]:
        h: Dict[str, str] = {}
        if self.api_key:
            h[self.api_key_header_name] = self.api_key
        return h

    @staticmethod
    def _validate_service_id(service_id: int) -> int:
        if isinstance(service_id, bool) or not isinstance(service_id, int):
            raise ValueError(f"service_id must be an integer, got {service_id!r}")
        if service_id < 0 or service_id > MAX_SERVICE_ID:
            raise ValueError(f"service_id {service_id} out of range (0-{MAX_SERVICE_ID})")
        return service_id

    @staticmethod
    def _normalize_tier(tier: Optional[str]) -> str:
        value = (tier or DEFAULT_TIER).strip().lower()
        if value not in RESOURCE_TIERS:
            raise ValueError(f"Unknown tier {tier!r}; expected one of {', '.join(RESOURCE_TIERS)}")
        return value

    @staticmethod
    def _validate_owner_key(owner_public_key: str) -> str:
        key = (owner_public_key or "").strip()
        if not key:
            raise ValueError("owner_public_key must be a non-empty string")
        return key

    def _post(self, path: str, payload: Dict[str, Any], timeout: int) -> Dict[str, Any]:
        r = self._session.post(
            f"{self.base_url}{path}",
            json=payload,
            headers=self._headers(),
            timeout=timeout,
        )
        r.raise_for_status()
        return r.json() or {}

    def _delete(self, path: str, timeout: int) -> Dict[str, Any]:
        r = self._session.delete(f"{self.base_url}{path}", headers=self._headers(), timeout=timeout)
        r.raise_for_status()
        return r.json() or {}

    # -----------------------
    # Public API
    # -----------------------

    def health(self, timeout: int = 5) -> Dict[str, object]:
        r = self._session.get(f"{self.base_url}/health", timeout=timeout)
        r.raise_for_status()
        return r.json() or {}

    def create_workspace(
        self,
        service_id: int,
        owner_public_key: str,
        tier: str = DEFAULT_TIER,
        workspace_name: str = "",
        timeout: Optional[int] = None,
    ) -> Dict[str, Any]:
        """
        Provision the workspace and block until the server reports it healthy.

        Returns the server response JSON: {service_id, url, status, container_name, host_port}.
        """
        sid = self._validate_service_id(service_id)
        payload = {
            "owner_public_key": self._validate_owner_key(owner_public_key),
            "tier": self._normalize_tier(tier),
            "workspace_name": (workspace_name or "").strip(),
        }
        return self._post(f"/workspaces/{sid}", payload, timeout or self.create_timeout)

    def destroy_workspace(self, service_id: int, timeout: Optional[int] = None) -> bool:
        sid = self._validate_service_id(service_id)
        body = self._delete(f"/workspaces/{sid}", timeout or self.request_timeout)
        return bool(body.get("deleted", False))

    def create_project(
        self,
        service_id: int,
        owner_public_key: str,
        tier: str = DEFAULT_TIER,
        timeout: Optional[int] = None,
    ) -> Dict[str, Any]:
        sid = self._validate_service_id(service_id)
        payload = {
            "owner_public_key": self._validate_owner_key(owner_public_key),
            "tier": self._normalize_tier(tier),
        }
        return self._post(f"/projects/{sid}", payload, timeout or self.create_timeout)

    def destroy_project(self, service_id: int, timeout: Optional[int] = None) -> bool:
        sid = self._validate_service_id(service_id)
        body = self._delete(f"/projects/{sid}", timeout or self.request_timeout)
        return bool(body.get("deleted", False))

    def submit_job(
        self,
        job_id: int,
        service_id: int,
        args: Optional[Any] = None,
        timeout: Optional[int] = None,
    ) -> Any:
        """
        Submit a raw job call and return its result (endpoint URL or bool).
        """
        sid = self._validate_service_id(service_id)
        if timeout is None:
            creating = job_id in (CREATE_WORKSPACE_JOB_ID, CREATE_PROJECT_JOB_ID)
            timeout = self.create_timeout if creating else self.request_timeout
        body = self._post(f"/jobs/{int(job_id)}", {"service_id": sid, "args": args}, timeout)
        logger.debug("Job %s for service %s returned %r", job_id, sid, body.get("result"))
        return body.get("result")


__all__ = [
    "BlueprintClient",
    "CREATE_WORKSPACE_JOB_ID",
    "DESTROY_WORKSPACE_JOB_ID",
    "CREATE_PROJECT_JOB_ID",
    "DESTROY_PROJECT_JOB_ID",
]
