from __future__ import annotations

"""
Resource tier catalog.

Maps each ResourceTier to fixed cpu/memory/storage limits and converts them to
Docker create kwargs.
"""

from dataclasses import dataclass
from typing import Dict

from tmb_server.app.models import ResourceTier

GIB = 1024**3


@dataclass(frozen=True)
class TierLimits:
    cpu: float  # cores
    memory: int  # bytes
    storage: int  # bytes

    @property
    def nano_cpus(self) -> int:
        """
        CPU limit in Docker nano_cpus (1.0 CPU == 1e9).
        """
        return int(self.cpu * 1_000_000_000)


_TIER_LIMITS: Dict[ResourceTier, TierLimits] = {
    ResourceTier.small: TierLimits(cpu=1.0, memory=1 * GIB, storage=5 * GIB),
    ResourceTier.medium: TierLimits(cpu=2.0, memory=2 * GIB, storage=10 * GIB),
    ResourceTier.large: TierLimits(cpu=4.0, memory=4 * GIB, storage=20 * GIB),
}

_missing = set(ResourceTier) - set(_TIER_LIMITS)
if _missing:
    raise RuntimeError(f"Tier catalog is missing limits for: {sorted(t.value for t in _missing)}")


def limits_for(tier: ResourceTier) -> TierLimits:
    return _TIER_LIMITS[ResourceTier(tier)]


def build_run_resource_kwargs(
    limits: TierLimits,
    *,
    enforce_limits: bool = True,
    enforce_storage: bool = False,
) -> Dict[str, object]:
    """
    Convert tier limits into Docker create kwargs.
    - cpu -> nano_cpus
    - memory -> mem_limit (bytes)
    - storage -> storage_opt size (only when the storage driver supports quotas)
    """
    kwargs: Dict[str, object] = {}
    if enforce_limits:
        kwargs["nano_cpus"] = limits.nano_cpus
        kwargs["mem_limit"] = limits.memory
    if enforce_storage:
        kwargs["storage_opt"] = {"size": str(limits.storage)}
    return kwargs


__all__ = [
    "TierLimits",
    "limits_for",
    "build_run_resource_kwargs",
]
