from __future__ import annotations

"""
Host port allocation for published container ports.

Ports are drawn uniformly at random from [start, end). A port is unavailable
while it is reserved in this process or recorded on a managed container
(passed in as `in_use`, read from container labels).
"""

import logging
import random
import threading
from typing import Iterable, Optional, Set

from tmb_server.app.errors import ProvisionFailed

logger = logging.getLogger("tangle_mcp")


class PortAllocator:
    def __init__(self, start: int, end: int, rng: Optional[random.Random] = None) -> None:
        if not (0 < start < end <= 65536):
            raise ValueError(f"Invalid port range [{start}, {end})")
        self.start = start
        self.end = end
        self._rng = rng or random.Random()
        self._reserved: Set[int] = set()
        self._lock = threading.Lock()

    @property
    def capacity(self) -> int:
        return self.end - self.start

    def reserved(self) -> Set[int]:
        with self._lock:
            return set(self._reserved)

    def allocate(self, in_use: Iterable[int] = ()) -> int:
        """
        Reserve and return a free host port.

        Raises:
            ProvisionFailed if every port in the range is taken.
        """
        taken = {p for p in in_use if self.start <= p < self.end}
        with self._lock:
            taken |= self._reserved
            free = self.capacity - len(taken)
            if free <= 0:
                raise ProvisionFailed(f"No free host port in range [{self.start}, {self.end})")

            # Rejection sampling while the range is sparse; fall back to an
            # explicit candidate list when it is crowded.
            if len(taken) * 2 < self.capacity:
                while True:
                    port = self._rng.randrange(self.start, self.end)
                    if port not in taken:
                        break
            else:
                candidates = [p for p in range(self.start, self.end) if p not in taken]
                port = self._rng.choice(candidates)

            self._reserved.add(port)
        logger.debug("Reserved host port %s", port)
        return port

    def claim(self, port: int) -> None:
        """
        Mark a port as reserved (e.g. recovered from a container label).
        """
        with self._lock:
            self._reserved.add(port)

    def release(self, port: Optional[int]) -> None:
        if port is None:
            return
        with self._lock:
            self._reserved.discard(port)
        logger.debug("Released host port %s", port)


__all__ = ["PortAllocator"]
